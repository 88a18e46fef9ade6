from __future__ import annotations

import logging
import os
import secrets
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, ClassVar, Optional

from omni_vault.services.errors import SecureRandomUnavailable

logger = logging.getLogger(__name__)

SecureRandomSource = Callable[[int], str]

_OWNER_SECRET_BYTES = 32


def generate_owner_secret(source: Optional[SecureRandomSource] = secrets.token_hex) -> str:
    """Produce a fresh owner secret from a cryptographic random source.

    `source` takes a byte count and returns that many random bytes hex-encoded
    (the `secrets.token_hex` contract). A missing or short source raises; there is no other source.
    """

    if source is None:
        raise SecureRandomUnavailable("No secure random source available to generate the owner secret")

    try:
        token = source(_OWNER_SECRET_BYTES)
    except Exception as exc:
        raise SecureRandomUnavailable("Secure random source failed to produce the owner secret") from exc

    if not isinstance(token, str) or len(token) < _OWNER_SECRET_BYTES * 2:
        raise SecureRandomUnavailable(
            f"Secure random source returned too little entropy (need {_OWNER_SECRET_BYTES} bytes)"
        )
    return token


def _configured_owner_secret() -> Optional[str]:
    return os.getenv("OMNI_VAULT_OWNER_TOKEN") or os.getenv("OWNER_TOKEN") or None


def ensure_owner_secret(source: Optional[SecureRandomSource] = secrets.token_hex) -> str:
    """Return the configured owner secret, generating and exporting one if unset."""

    owner_secret = _configured_owner_secret()
    if owner_secret:
        logger.info("Owner secret set (hidden)")
        return owner_secret

    owner_secret = generate_owner_secret(source)
    os.environ["OMNI_VAULT_OWNER_TOKEN"] = owner_secret
    logger.info("Owner secret generated and exported (hidden)")
    return owner_secret


@dataclass(frozen=True)
class VaultConfig:
    """Runtime configuration for the local lock-gated vault service."""

    owner_secret: str = field(repr=False)
    storage_dir: Path = Path("vault-data")
    _DEFAULT_MAX_UPLOAD_BYTES: ClassVar[int] = 50 * 1024 * 1024
    max_upload_bytes: int = _DEFAULT_MAX_UPLOAD_BYTES
    base_url: str = "http://localhost:8080"

    @staticmethod
    def from_env(
        *,
        generate_missing: bool = False,
        random_source: Optional[SecureRandomSource] = secrets.token_hex,
    ) -> "VaultConfig":
        """Load vault settings from the environment.

        The service side leaves `generate_missing` off and requires
        `OMNI_VAULT_OWNER_TOKEN`. The orchestrating side turns it on: the
        secret is then generated once and exported, so the service it starts
        and every later `from_env()` in this process see the same value.
        """

        if generate_missing:
            owner_secret = ensure_owner_secret(random_source)
        else:
            owner_secret = _configured_owner_secret()
            if not owner_secret:
                raise ValueError("Missing required environment variable: OMNI_VAULT_OWNER_TOKEN")
            logger.info("Owner secret set (hidden)")

        storage_dir = Path(os.getenv("OMNI_VAULT_STORAGE_DIR", "vault-data"))

        max_raw = os.getenv("OMNI_VAULT_MAX_UPLOAD_BYTES")
        max_upload_bytes = VaultConfig._DEFAULT_MAX_UPLOAD_BYTES
        if max_raw:
            try:
                max_upload_bytes = int(max_raw)
            except ValueError as exc:
                raise ValueError("Invalid OMNI_VAULT_MAX_UPLOAD_BYTES; must be an integer") from exc
            if max_upload_bytes <= 0:
                raise ValueError("Invalid OMNI_VAULT_MAX_UPLOAD_BYTES; must be positive")

        base_url = os.getenv("OMNI_VAULT_BASE_URL", "http://localhost:8080").rstrip("/")

        return VaultConfig(
            owner_secret=owner_secret,
            storage_dir=storage_dir,
            max_upload_bytes=max_upload_bytes,
            base_url=base_url,
        )
