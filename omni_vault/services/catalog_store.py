from __future__ import annotations

import threading

from omni_vault.models.vault import FileRecord
from omni_vault.services.errors import DuplicateNameError


class CatalogStore:
    """Append-only, insertion-ordered record of accepted files.

    There is no delete or update operation. A `list()` that starts after an
    `append()` returns observes that record.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: list[FileRecord] = []
        self._by_name: dict[str, FileRecord] = {}

    def append(self, record: FileRecord) -> None:
        with self._lock:
            if record.name in self._by_name:
                raise DuplicateNameError(f"File already exists in the vault: {record.name}")
            self._records.append(record)
            self._by_name[record.name] = record

    def list(self) -> list[FileRecord]:
        with self._lock:
            return list(self._records)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._by_name

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
