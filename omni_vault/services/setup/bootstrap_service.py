from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass, field
from http import HTTPStatus
from pathlib import Path
from typing import Any, Optional

import aiohttp

from omni_vault.models.cloud import VerificationReport
from omni_vault.models.vault import FileRecord
from omni_vault.services.config import BootstrapConfig, CloudConfig, S3Config, VaultConfig
from omni_vault.services.errors import VerificationError
from omni_vault.services.polling import BoundedPoller
from omni_vault.services.replication_verifier import ReplicationVerifier
from omni_vault.services.s3_replica_service import S3ReplicaService
from omni_vault.services.session_escalator import SessionEscalator
from omni_vault.services.setup.terraform_setup_service import TerraformSetupService, variables_for

logger = logging.getLogger(__name__)


@dataclass
class BootstrapResult:
    uploaded: Optional[FileRecord] = None
    api_description: Optional[Path] = None
    replicated_keys: list[str] = field(default_factory=list)
    reports: list[VerificationReport] = field(default_factory=list)


@dataclass(frozen=True)
class CloudTier:
    """Collaborators needed for the cloud half of the bootstrap."""

    cloud: CloudConfig
    s3: S3Config
    provisioning: TerraformSetupService
    replica: S3ReplicaService
    verifier: ReplicationVerifier
    escalator: SessionEscalator


class VaultBootstrapService:
    """Drives the vault end to end and checks every guarantee it relies on.

    Every check is fatal: an upload that is not refused while locked, a lock
    request that doesn't stick, a checksum that doesn't round-trip or a
    delete that isn't denied raises instead of warning.

    Steps (local):
    1) Poll /health with a bounded poller.
    2) Save /spec as the API description artifact.
    3) Upload while locked; expect 423.
    4) Unlock, upload, list and compare checksums, re-lock.

    Steps (cloud):
    1) terraform init/apply (aborts on failure, before any upload).
    2) Copy the API description and vault files to the bucket.
    3) Verify Object Lock attributes + negative-control delete per object.
    4) With MFA configured: escalate and confirm deletes are still denied.
    """

    def __init__(
        self,
        *,
        http: aiohttp.ClientSession,
        vault: VaultConfig,
        config: BootstrapConfig,
        cloud_tier: Optional[CloudTier] = None,
        poller: Optional[BoundedPoller] = None,
    ) -> None:
        self._http = http
        self._vault = vault
        self._config = config
        self._cloud_tier = cloud_tier
        self._poller = poller or BoundedPoller(
            max_attempts=config.health_attempts,
            delay_seconds=config.health_delay_seconds,
            retry_on=(aiohttp.ClientError,),
        )

    def _url(self, path: str) -> str:
        return f"{self._vault.base_url}{path}"

    def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._vault.owner_secret}"}

    # -----------------
    # Local tier
    # -----------------

    async def wait_healthy(self) -> None:
        async def _check() -> bool:
            async with self._http.get(self._url("/health")) as resp:
                if resp.status != HTTPStatus.OK:
                    return False
                payload = await resp.json()
                return isinstance(payload, dict) and payload.get("status") == "ok"

        await self._poller.poll(_check, description="Vault health check")
        logger.info("Health OK")

    async def fetch_spec(self, *, destination: Path) -> Path:
        async with self._http.get(self._url("/spec")) as resp:
            if resp.status != HTTPStatus.OK:
                raise VerificationError(f"GET /spec returned HTTP {resp.status}")
            payload = await resp.json()

        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
        logger.info("API description saved to %s", destination)
        return destination

    async def _post_upload(self, artifact: Path) -> tuple[int, Any]:
        form = aiohttp.FormData()
        form.add_field(
            "file",
            artifact.read_bytes(),
            filename=artifact.name,
            content_type="application/octet-stream",
        )
        async with self._http.post(self._url("/upload"), data=form, headers=self._auth_headers()) as resp:
            body = await resp.json(content_type=None)
            return resp.status, body

    async def assert_upload_rejected_while_locked(self, artifact: Path) -> None:
        status, _ = await self._post_upload(artifact)
        if status != HTTPStatus.LOCKED:
            raise VerificationError(f"Expected 423 for upload while locked, got {status}")
        logger.info("Upload correctly blocked (423)")

    async def set_lock(self, *, locked: bool) -> None:
        async with self._http.post(
            self._url("/lock"),
            json={"locked": locked},
            headers=self._auth_headers(),
        ) as resp:
            if resp.status != HTTPStatus.OK:
                raise VerificationError(f"POST /lock returned HTTP {resp.status}")
            payload = await resp.json()

        if payload.get("locked") is not locked:
            raise VerificationError(f"Lock state mismatch after request: wanted locked={locked}, got {payload!r}")

    async def upload(self, artifact: Path) -> FileRecord:
        status, body = await self._post_upload(artifact)
        if status != HTTPStatus.OK:
            raise VerificationError(f"Upload while unlocked failed with HTTP {status}: {body!r}")

        record = FileRecord.model_validate(body)
        expected = hashlib.sha256(artifact.read_bytes()).hexdigest()
        if record.content_checksum != expected:
            raise VerificationError(f"Checksum mismatch for {record.name}: {record.content_checksum} != {expected}")
        return record

    async def assert_listed(self, record: FileRecord) -> None:
        async with self._http.get(self._url("/files")) as resp:
            if resp.status != HTTPStatus.OK:
                raise VerificationError(f"GET /files returned HTTP {resp.status}")
            payload = await resp.json()

        listed = [FileRecord.model_validate(f) for f in payload.get("files", [])]
        if not any(f.name == record.name and f.content_checksum == record.content_checksum for f in listed):
            raise VerificationError(f"Uploaded file missing from catalog listing: {record.name}")

    async def run_local(self, *, artifact: Path, api_description: Path) -> BootstrapResult:
        if not artifact.is_file():
            raise VerificationError(f"Artifact to upload not found: {artifact}")

        await self.wait_healthy()
        spec_path = await self.fetch_spec(destination=api_description)

        await self.assert_upload_rejected_while_locked(artifact)

        logger.info("Unlocking, uploading, and re-locking...")
        await self.set_lock(locked=False)
        try:
            record = await self.upload(artifact)
            await self.assert_listed(record)
        finally:
            await self.set_lock(locked=True)
        logger.info("Local vault re-locked")

        return BootstrapResult(uploaded=record, api_description=spec_path)

    # -----------------
    # Cloud tier
    # -----------------

    def _vault_file_names(self) -> list[str]:
        storage_dir = self._vault.storage_dir
        if not storage_dir.is_dir():
            return []
        return sorted(p.name for p in storage_dir.iterdir() if p.is_file())

    async def run_cloud(self, *, api_description: Optional[Path] = None) -> BootstrapResult:
        tier = self._cloud_tier
        if tier is None:
            raise VerificationError("Cloud mode requested but no cloud tier is configured")

        variables = variables_for(
            region=tier.s3.region_name,
            bucket_name=tier.s3.bucket_name,
            owner_arn=tier.cloud.owner_arn,
        )
        await tier.provisioning.provision(variables, auto_approve=tier.cloud.auto_approve)

        planned = tier.replica.plan(
            storage_dir=self._vault.storage_dir,
            names=self._vault_file_names(),
            api_description=api_description if api_description and api_description.is_file() else None,
        )
        keys = await tier.replica.replicate(planned)

        session = None
        try:
            if tier.cloud.escalation_requested:
                logger.info("Requesting MFA session...")
                session = await tier.escalator.escalate(tier.cloud.mfa_serial or "", tier.cloud.mfa_code or "")
            reports = [await tier.verifier.report(key, session=session) for key in keys]
        finally:
            tier.escalator.close()

        return BootstrapResult(replicated_keys=keys, reports=reports)

    async def run(self, *, artifact: Path, api_description: Path) -> BootstrapResult:
        result = BootstrapResult()
        if self._config.mode.includes_local:
            result = await self.run_local(artifact=artifact, api_description=api_description)
        if self._config.mode.includes_cloud:
            cloud = await self.run_cloud(api_description=api_description)
            result.replicated_keys = cloud.replicated_keys
            result.reports = cloud.reports
        logger.info("Omni bootstrap complete (mode=%s)", self._config.mode.value)
        return result
