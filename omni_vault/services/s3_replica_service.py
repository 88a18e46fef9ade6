from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from tqdm import tqdm

from omni_vault.services.errors import S3ServiceError
from omni_vault.services.s3_service import S3Service

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReplicaConfig:
    """Wiring for copying vault artifacts to the cloud tier."""

    api_prefix: str = "api/"
    data_prefix: str = "data/"
    concurrency: int = 10
    legal_hold: bool = True


class S3ReplicaService:
    """Copies accepted vault artifacts to the WORM bucket.

    Copies are at-least-once and never retried here; a failed copy is
    reported and the whole replication raises so the operator re-runs it.
    """

    def __init__(self, *, s3: S3Service, config: Optional[ReplicaConfig] = None) -> None:
        self._s3 = s3
        self._config = config or ReplicaConfig()

    @staticmethod
    def _with_slash(prefix: str) -> str:
        if prefix and not prefix.endswith("/"):
            return prefix + "/"
        return prefix

    def plan(
        self,
        *,
        storage_dir: Path,
        names: Iterable[str],
        api_description: Optional[Path] = None,
    ) -> list[tuple[Path, str]]:
        planned: list[tuple[Path, str]] = []
        if api_description is not None:
            planned.append((api_description, f"{self._with_slash(self._config.api_prefix)}{api_description.name}"))

        data_prefix = self._with_slash(self._config.data_prefix)
        for name in names:
            planned.append((storage_dir / name, f"{data_prefix}{name}"))
        return planned

    async def replicate(self, planned: list[tuple[Path, str]]) -> list[str]:
        """Upload every planned (path, key) pair; return the keys written."""

        if not planned:
            logger.info("Replication: nothing to upload")
            return []

        logger.info("Replication: uploading %d object(s) to s3://%s", len(planned), self._s3.bucket_name)
        semaphore = asyncio.Semaphore(self._config.concurrency)

        async def _upload_one(path: Path, key: str) -> tuple[str, bool, Optional[str]]:
            async with semaphore:
                try:
                    await self._s3.upload_local_file(path=path, key=key, legal_hold=self._config.legal_hold)
                    return (key, True, None)
                except S3ServiceError as exc:
                    return (key, False, str(exc))

        tasks = [asyncio.create_task(_upload_one(path, key)) for path, key in planned]

        written: list[str] = []
        failed: list[str] = []

        for fut in tqdm(
            asyncio.as_completed(tasks),
            total=len(tasks),
            desc="Replicating vault artifacts",
            unit="file",
        ):
            key, ok, err = await fut
            if ok:
                written.append(key)
            else:
                failed.append(key)
                logger.error("Replication upload failed (key=%s): %s", key, err)

        logger.info(
            "Replication complete: planned=%d, succeeded=%d, failed=%d",
            len(planned),
            len(written),
            len(failed),
        )

        if failed:
            raise S3ServiceError(f"Replication failed for {len(failed)} object(s): {', '.join(sorted(failed))}")
        return sorted(written)
