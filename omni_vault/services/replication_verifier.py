from __future__ import annotations

import logging
from typing import Optional

from omni_vault.models.cloud import EscalatedSession, ObjectLockAttributes, VerificationReport
from omni_vault.services.errors import (
    AccessDeniedError,
    NotProtectedError,
    ProtectionFailure,
    S3ServiceError,
    SessionExpiredError,
)
from omni_vault.services.lock_controller import Clock, utc_now
from omni_vault.services.polling import BoundedPoller
from omni_vault.services.s3_service import S3Service

logger = logging.getLogger(__name__)


class ReplicationVerifier:
    """Confirms that a replicated object is WORM-protected.

    Two checks per object:
    - its Object Lock attributes carry a mode and a retain-until in the future;
    - a delete of the stored version with ordinary credentials is denied.

    A delete that goes through raises `ProtectionFailure`; it is never
    reported as a warning.
    """

    def __init__(
        self,
        *,
        s3: S3Service,
        poller: Optional[BoundedPoller] = None,
        clock: Clock = utc_now,
    ) -> None:
        self._s3 = s3
        self._poller = poller or BoundedPoller(max_attempts=5, delay_seconds=2.0, retry_on=(S3ServiceError,))
        self._clock = clock

    async def _fetch(self, key: str) -> tuple[ObjectLockAttributes, Optional[str]]:
        # Freshly copied objects can take a moment to become visible.
        return await self._poller.poll(
            lambda: self._s3.get_lock_attributes(key=key),
            description=f"Object Lock lookup for {key}",
        )

    def _require_protected(self, key: str, attributes: ObjectLockAttributes) -> None:
        if attributes.mode is None:
            raise NotProtectedError(f"Object has no Object Lock mode: {key}")
        if not attributes.retention_active(now=self._clock()):
            raise NotProtectedError(
                f"Object retain-until is not in the future: {key} (retain_until={attributes.retain_until})"
            )

    async def check_attributes(self, key: str) -> tuple[ObjectLockAttributes, Optional[str]]:
        attributes, version_id = await self._fetch(key)
        self._require_protected(key, attributes)
        logger.info(
            "Object %s protected: mode=%s retain_until=%s legal_hold=%s",
            key,
            attributes.mode.value if attributes.mode else None,
            attributes.retain_until,
            attributes.legal_hold,
        )
        return attributes, version_id

    async def assert_delete_denied(
        self,
        key: str,
        *,
        version_id: Optional[str],
        escalated: Optional[EscalatedSession] = None,
    ) -> None:
        label = "escalated" if escalated is not None else "unescalated"
        try:
            await self._s3.delete_object(key=key, version_id=version_id, escalated=escalated)
        except AccessDeniedError:
            logger.info("Delete of %s with %s credentials correctly denied", key, label)
            return

        logger.error("Delete of protected object %s with %s credentials SUCCEEDED", key, label)
        raise ProtectionFailure(f"Delete of protected object succeeded with {label} credentials: {key}")

    async def verify(self, key: str) -> ObjectLockAttributes:
        attributes, version_id = await self.check_attributes(key)
        await self.assert_delete_denied(key, version_id=version_id)
        return attributes

    async def verify_escalated(self, key: str, session: EscalatedSession) -> ObjectLockAttributes:
        """An escalated credential still cannot delete a retained object.

        Only meaningful while retention is active; callers get
        `NotProtectedError` otherwise.
        """

        if session.is_expired(now=self._clock()):
            raise SessionExpiredError("Escalated session has expired")

        attributes, version_id = await self.check_attributes(key)
        await self.assert_delete_denied(key, version_id=version_id, escalated=session)
        return attributes

    async def report(self, key: str, *, session: Optional[EscalatedSession] = None) -> VerificationReport:
        attributes = await self.verify(key)
        escalated_denied: Optional[bool] = None
        if session is not None:
            await self.verify_escalated(key, session)
            escalated_denied = True
        return VerificationReport(
            key=key,
            attributes=attributes,
            unescalated_delete_denied=True,
            escalated_delete_denied=escalated_denied,
        )
