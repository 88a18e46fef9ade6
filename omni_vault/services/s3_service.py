from __future__ import annotations

import logging
import mimetypes
from pathlib import Path
from typing import Any, Optional

import aioboto3
from botocore.exceptions import ClientError

from omni_vault.models.cloud import EscalatedSession, ObjectLockAttributes
from omni_vault.services.config import S3Config
from omni_vault.services.errors import AccessDeniedError, S3ServiceError

logger = logging.getLogger(__name__)

_ACCESS_DENIED_CODES = frozenset({"AccessDenied", "403"})


def _error_code(exc: ClientError) -> str:
    return str(exc.response.get("Error", {}).get("Code", ""))


class S3Service:
    """Thin async wrapper over the cloud tier bucket.

    Calls run with the ambient (ordinary) AWS credentials unless an
    `EscalatedSession` is passed explicitly.
    """

    def __init__(self, config: S3Config, *, session: Optional[Any] = None) -> None:
        self._config = config
        self._session = session or aioboto3.Session()

    @property
    def bucket_name(self) -> str:
        return self._config.bucket_name

    def _client(self, escalated: Optional[EscalatedSession] = None) -> Any:
        credentials = escalated.client_kwargs() if escalated is not None else {}
        return self._session.client(
            "s3",
            region_name=self._config.region_name,
            endpoint_url=self._config.endpoint_url,
            **credentials,
        )

    async def upload_local_file(
        self,
        *,
        path: Path,
        key: str,
        content_type: Optional[str] = None,
        legal_hold: bool = False,
    ) -> str:
        """Upload a local file to the bucket.

        Retention comes from the bucket default at write time. `legal_hold`
        only ever turns the hold on; nothing here clears it.
        """

        try:
            if not key:
                raise ValueError("'key' must be provided")
            if not path.exists() or not path.is_file():
                raise FileNotFoundError(str(path))

            body = path.read_bytes()
            effective_content_type = content_type
            if effective_content_type is None:
                guessed, _ = mimetypes.guess_type(str(path))
                effective_content_type = guessed

            extra_args: dict[str, Any] = {}
            if effective_content_type:
                extra_args["ContentType"] = effective_content_type
            if legal_hold:
                extra_args["ObjectLockLegalHoldStatus"] = "ON"

            s3_client: Any = self._client()
            async with s3_client as s3:
                await s3.put_object(
                    Bucket=self._config.bucket_name,
                    Key=key,
                    Body=body,
                    **extra_args,
                )

            return key
        except Exception as exc:
            logger.exception("S3 upload_local_file failed")
            raise S3ServiceError(f"Failed to upload local file to S3 (key={key})") from exc

    async def head_object(self, *, key: str) -> dict[str, Any]:
        try:
            s3_client: Any = self._client()
            async with s3_client as s3:
                return await s3.head_object(Bucket=self._config.bucket_name, Key=key)
        except Exception as exc:
            logger.exception("S3 head_object failed")
            raise S3ServiceError(f"Failed to read object metadata from S3 (key={key})") from exc

    async def get_lock_attributes(self, *, key: str) -> tuple[ObjectLockAttributes, Optional[str]]:
        """Return the object's lock attributes and its current version id."""

        resp = await self.head_object(key=key)
        return ObjectLockAttributes.from_head_object(resp), resp.get("VersionId")

    async def delete_object(
        self,
        *,
        key: str,
        version_id: Optional[str] = None,
        escalated: Optional[EscalatedSession] = None,
    ) -> None:
        """Attempt a delete; raises `AccessDeniedError` when the tier refuses it.

        Deleting a specific version is what Object Lock retention guards; a
        versionless delete on a versioned bucket only adds a delete marker.
        """

        if not key:
            raise ValueError("'key' must be provided")

        kwargs: dict[str, Any] = {"Bucket": self._config.bucket_name, "Key": key}
        if version_id:
            kwargs["VersionId"] = version_id

        try:
            s3_client: Any = self._client(escalated)
            async with s3_client as s3:
                await s3.delete_object(**kwargs)
        except ClientError as exc:
            if _error_code(exc) in _ACCESS_DENIED_CODES:
                raise AccessDeniedError(f"Delete denied by the cloud tier (key={key})") from exc
            logger.exception("S3 delete_object failed")
            raise S3ServiceError(f"Failed to delete object from S3 (key={key})") from exc
        except Exception as exc:
            logger.exception("S3 delete_object failed")
            raise S3ServiceError(f"Failed to delete object from S3 (key={key})") from exc
