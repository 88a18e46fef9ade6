from __future__ import annotations

from dataclasses import dataclass

import aiohttp
from fastapi import FastAPI, Request

from omni_vault.services.auth_guard import AuthGuard
from omni_vault.services.catalog_store import CatalogStore
from omni_vault.services.config import BootstrapConfig, CloudConfig, S3Config, VaultConfig
from omni_vault.services.lock_controller import LockController
from omni_vault.services.replication_verifier import ReplicationVerifier
from omni_vault.services.s3_replica_service import S3ReplicaService
from omni_vault.services.s3_service import S3Service
from omni_vault.services.session_escalator import SessionEscalator
from omni_vault.services.setup.bootstrap_service import CloudTier, VaultBootstrapService
from omni_vault.services.setup.terraform_setup_service import TerraformSetupService
from omni_vault.services.upload_gateway import UploadGateway


@dataclass(frozen=True)
class VaultRuntime:
    """Process-lifetime vault state, owned by the app (`app.state.vault`)."""

    config: VaultConfig
    auth: AuthGuard
    lock: LockController
    catalog: CatalogStore
    uploads: UploadGateway


def build_vault_runtime(config: VaultConfig) -> VaultRuntime:
    auth = AuthGuard(owner_secret=config.owner_secret)
    lock = LockController(auth=auth)
    catalog = CatalogStore()
    uploads = UploadGateway(
        lock=lock,
        catalog=catalog,
        storage_dir=config.storage_dir,
        max_upload_bytes=config.max_upload_bytes,
    )
    return VaultRuntime(config=config, auth=auth, lock=lock, catalog=catalog, uploads=uploads)


def get_vault_runtime_from_app(app: FastAPI) -> VaultRuntime:
    runtime = getattr(app.state, "vault", None)
    if runtime is None:
        raise RuntimeError("Vault runtime not initialized (app.state.vault)")
    if not isinstance(runtime, VaultRuntime):
        raise RuntimeError("Unexpected vault runtime type")
    return runtime


def get_vault_runtime(request: Request) -> VaultRuntime:
    return get_vault_runtime_from_app(request.app)


def get_lock_controller(request: Request) -> LockController:
    return get_vault_runtime(request).lock


def get_catalog_store(request: Request) -> CatalogStore:
    return get_vault_runtime(request).catalog


def get_upload_gateway(request: Request) -> UploadGateway:
    return get_vault_runtime(request).uploads


def get_cloud_tier() -> CloudTier:
    """Provider for the cloud-side collaborators, configured from env."""

    s3_config = S3Config.from_env()
    cloud_config = CloudConfig.from_env()
    s3 = S3Service(s3_config)
    return CloudTier(
        cloud=cloud_config,
        s3=s3_config,
        provisioning=TerraformSetupService(terraform_dir=cloud_config.terraform_dir),
        replica=S3ReplicaService(s3=s3),
        verifier=ReplicationVerifier(s3=s3),
        escalator=SessionEscalator(region_name=s3_config.region_name),
    )


def get_bootstrap_service(http: aiohttp.ClientSession) -> VaultBootstrapService:
    """Provider for the bootstrap workflow (non-request context)."""

    config = BootstrapConfig.from_env()
    return VaultBootstrapService(
        http=http,
        vault=VaultConfig.from_env(generate_missing=True),
        config=config,
        cloud_tier=get_cloud_tier() if config.mode.includes_cloud else None,
    )
