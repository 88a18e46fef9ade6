from __future__ import annotations

import logging
import re
import threading
from datetime import datetime, timedelta
from typing import Any, Optional

import aioboto3
from botocore.exceptions import BotoCoreError, ClientError

from omni_vault.models.cloud import EscalatedSession
from omni_vault.services.errors import MFAError, SessionExpiredError
from omni_vault.services.lock_controller import Clock, utc_now

logger = logging.getLogger(__name__)

_MFA_CODE_PATTERN = re.compile(r"^\d{6}$")


class SessionEscalator:
    """Exchanges an MFA device id + one-time code for temporary credentials.

    One shot per code: a code is consumed before STS is called, so a reused
    or failed code is never retried. Consumed codes are remembered for
    `_CODE_REUSE_WINDOW`, well past a TOTP code's validity, then forgotten.
    Issued sessions live only in this object and are dropped on `close()` or
    once expired.
    """

    _DEFAULT_DURATION_SECONDS: int = 3600
    _CODE_REUSE_WINDOW = timedelta(minutes=5)

    def __init__(
        self,
        *,
        region_name: Optional[str] = None,
        duration_seconds: int = _DEFAULT_DURATION_SECONDS,
        session: Optional[Any] = None,
        clock: Clock = utc_now,
    ) -> None:
        self._region_name = region_name
        self._duration_seconds = duration_seconds
        self._session = session or aioboto3.Session()
        self._clock = clock
        self._guard = threading.Lock()
        self._consumed_codes: dict[tuple[str, str], datetime] = {}
        self._active: Optional[EscalatedSession] = None

    def _consume(self, mfa_serial: str, mfa_code: str) -> None:
        now = self._clock()
        with self._guard:
            cutoff = now - self._CODE_REUSE_WINDOW
            for key in [k for k, used_at in self._consumed_codes.items() if used_at <= cutoff]:
                del self._consumed_codes[key]
            if (mfa_serial, mfa_code) in self._consumed_codes:
                raise MFAError("MFA code was already used; request a fresh code")
            self._consumed_codes[(mfa_serial, mfa_code)] = now

    async def escalate(self, mfa_serial: str, mfa_code: str) -> EscalatedSession:
        if not mfa_serial:
            raise MFAError("MFA device identifier must be provided")
        if not mfa_code or not _MFA_CODE_PATTERN.match(mfa_code):
            raise MFAError("MFA code must be exactly 6 digits")

        self._consume(mfa_serial, mfa_code)

        try:
            sts_client: Any = self._session.client("sts", region_name=self._region_name)
            async with sts_client as sts:
                resp = await sts.get_session_token(
                    DurationSeconds=self._duration_seconds,
                    SerialNumber=mfa_serial,
                    TokenCode=mfa_code,
                )
        except (ClientError, BotoCoreError) as exc:
            logger.warning("MFA session request rejected for device %s", mfa_serial)
            raise MFAError("MFA session request was rejected (wrong, stale or reused code)") from exc

        credentials = resp.get("Credentials") or {}
        try:
            escalated = EscalatedSession(
                access_key_id=credentials["AccessKeyId"],
                secret_key=credentials["SecretAccessKey"],
                session_token=credentials["SessionToken"],
                expires_at=credentials["Expiration"],
            )
        except KeyError as exc:
            raise MFAError("MFA session response did not include credentials") from exc

        if escalated.is_expired(now=self._clock()):
            raise SessionExpiredError("MFA session was issued already expired")

        with self._guard:
            self._active = escalated
        logger.info("MFA session acquired (expires %s)", escalated.expires_at.isoformat())
        return escalated

    def current(self) -> EscalatedSession:
        """Return the live escalated session, discarding it if expired."""

        with self._guard:
            active = self._active
            if active is None:
                raise MFAError("No escalated session; escalate with a fresh MFA code first")
            if active.is_expired(now=self._clock()):
                self._active = None
                raise SessionExpiredError("Escalated session has expired")
            return active

    def close(self) -> None:
        with self._guard:
            if self._active is not None:
                logger.info("Discarding escalated session")
            self._active = None
