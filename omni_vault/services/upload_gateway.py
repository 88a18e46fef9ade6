from __future__ import annotations

import hashlib
import logging
import re
from pathlib import Path
from typing import Optional

from omni_vault.models.vault import FileRecord
from omni_vault.services.catalog_store import CatalogStore
from omni_vault.services.errors import DuplicateNameError, InvalidInputError, VaultServiceError
from omni_vault.services.lock_controller import Clock, LockController, utc_now

logger = logging.getLogger(__name__)

_NAME_PATTERN = re.compile(r"^[A-Za-z0-9._-]{1,255}$")


class UploadGateway:
    """The single mutating entry point into local vault storage.

    The credential check comes first, then the lock check. Validation, hashing,
    the exclusive file write and the catalog append all run while holding the
    vault mutex.
    """

    def __init__(
        self,
        *,
        lock: LockController,
        catalog: CatalogStore,
        storage_dir: Path,
        max_upload_bytes: int,
        clock: Clock = utc_now,
    ) -> None:
        self._lock = lock
        self._catalog = catalog
        self._storage_dir = storage_dir
        self._max_upload_bytes = max_upload_bytes
        self._clock = clock

    @property
    def storage_dir(self) -> Path:
        return self._storage_dir

    @staticmethod
    def checksum(data: bytes) -> str:
        return hashlib.sha256(data).hexdigest()

    @staticmethod
    def validate_name(name: Optional[str]) -> str:
        if not name:
            raise InvalidInputError("A file name must be provided")
        if name.startswith(".") or ".." in name:
            raise InvalidInputError(f"Disallowed file name: {name!r}")
        if not _NAME_PATTERN.match(name):
            raise InvalidInputError(
                f"Disallowed file name: {name!r} (allowed: letters, digits, '.', '_', '-', up to 255 chars)"
            )
        return name

    @property
    def max_upload_bytes(self) -> int:
        return self._max_upload_bytes

    def _validate_payload(self, data: bytes) -> None:
        if not data:
            raise InvalidInputError("Empty upload payload")
        if len(data) > self._max_upload_bytes:
            raise InvalidInputError(f"Upload payload too large (limit {self._max_upload_bytes} bytes)")

    def accept_upload(self, credential: Optional[str], data: bytes, name: Optional[str]) -> FileRecord:
        # Auth, then lock state, then input: a locked vault denies every write.
        with self._lock.write_section(credential):
            name = self.validate_name(name)
            self._validate_payload(data)
            checksum = self.checksum(data)

            if name in self._catalog:
                raise DuplicateNameError(f"File already exists in the vault: {name}")

            self._write_exclusive(name=name, data=data)
            record = FileRecord(
                name=name,
                content_checksum=checksum,
                uploaded_at=self._clock(),
                size_bytes=len(data),
            )
            self._catalog.append(record)

        logger.info("Accepted upload %s (%d bytes, sha256=%s)", name, record.size_bytes, checksum)
        return record

    def _write_exclusive(self, *, name: str, data: bytes) -> None:
        self._storage_dir.mkdir(parents=True, exist_ok=True)
        path = self._storage_dir / name
        try:
            with path.open("xb") as fh:
                fh.write(data)
        except FileExistsError as exc:
            raise DuplicateNameError(f"File already exists in vault storage: {name}") from exc
        except OSError as exc:
            logger.exception("Failed writing upload to vault storage")
            raise VaultServiceError(f"Could not store upload: {name}") from exc
