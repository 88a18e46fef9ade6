from __future__ import annotations

import hashlib
import hmac
import logging
from dataclasses import dataclass
from typing import Optional

from omni_vault.services.errors import UnauthorizedError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthorizedPrincipal:
    """The only identity the vault knows: whoever holds the owner secret."""

    name: str = "owner"


class AuthGuard:
    """Checks a bearer credential against the configured owner secret.

    Only the sha256 of the secret is retained. Comparison goes through
    `hmac.compare_digest` so timing does not depend on how many leading
    bytes match.
    """

    def __init__(self, *, owner_secret: str) -> None:
        if not owner_secret:
            raise ValueError("owner_secret must be provided")
        self._owner_secret_hash = self._digest(owner_secret)

    @staticmethod
    def _digest(value: str) -> bytes:
        return hashlib.sha256(value.encode("utf-8")).digest()

    @property
    def owner_secret_hash(self) -> str:
        return self._owner_secret_hash.hex()

    def authorize(self, credential: Optional[str]) -> AuthorizedPrincipal:
        if not credential:
            logger.warning("Rejected request without credential")
            raise UnauthorizedError("Missing bearer credential")

        if not hmac.compare_digest(self._digest(credential), self._owner_secret_hash):
            logger.warning("Rejected request with invalid credential")
            raise UnauthorizedError("Invalid bearer credential")

        return AuthorizedPrincipal()

    def authorize_header(self, authorization: Optional[str]) -> AuthorizedPrincipal:
        """Authorize an `Authorization: Bearer <token>` header value."""

        return self.authorize(self.bearer_token(authorization))

    @staticmethod
    def bearer_token(authorization: Optional[str]) -> Optional[str]:
        if not authorization:
            return None
        scheme, _, token = authorization.strip().partition(" ")
        if scheme.lower() != "bearer":
            return None
        return token.strip() or None
