"""Shared test fixtures for the vault."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from botocore.exceptions import ClientError
from fastapi.testclient import TestClient

from omni_vault.main import create_app
from omni_vault.services.auth_guard import AuthGuard
from omni_vault.services.catalog_store import CatalogStore
from omni_vault.services.config import S3Config, VaultConfig
from omni_vault.services.lock_controller import LockController
from omni_vault.services.upload_gateway import UploadGateway

OWNER_SECRET = "0f1e2d3c4b5a69788796a5b4c3d2e1f00f1e2d3c4b5a69788796a5b4c3d2e1f0"


@pytest.fixture
def owner_secret() -> str:
    return OWNER_SECRET


@pytest.fixture
def auth_header(owner_secret: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {owner_secret}"}


@pytest.fixture
def vault_config(tmp_path: Path, owner_secret: str) -> VaultConfig:
    """Vault config writing into a temp storage dir."""
    return VaultConfig(owner_secret=owner_secret, storage_dir=tmp_path / "vault-data", max_upload_bytes=1024)


@pytest.fixture
def auth_guard(owner_secret: str) -> AuthGuard:
    return AuthGuard(owner_secret=owner_secret)


@pytest.fixture
def lock_controller(auth_guard: AuthGuard) -> LockController:
    return LockController(auth=auth_guard)


@pytest.fixture
def catalog() -> CatalogStore:
    return CatalogStore()


@pytest.fixture
def upload_gateway(lock_controller: LockController, catalog: CatalogStore, vault_config: VaultConfig) -> UploadGateway:
    return UploadGateway(
        lock=lock_controller,
        catalog=catalog,
        storage_dir=vault_config.storage_dir,
        max_upload_bytes=vault_config.max_upload_bytes,
    )


@pytest.fixture
def client(vault_config: VaultConfig) -> Iterator[TestClient]:
    """TestClient with the lifespan running, so vault state is fresh."""
    with TestClient(create_app(vault_config)) as test_client:
        yield test_client


# ---------------------------------------------------------------------------
# aioboto3 stand-ins
# ---------------------------------------------------------------------------


class FakeClientContext:
    """Async context manager returned by `session.client(...)`."""

    def __init__(self, client: Any) -> None:
        self.client = client

    async def __aenter__(self) -> Any:
        return self.client

    async def __aexit__(self, *exc_info: Any) -> bool:
        return False


@pytest.fixture
def aws_client() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def aws_session(aws_client: AsyncMock) -> MagicMock:
    session = MagicMock()
    session.client.return_value = FakeClientContext(aws_client)
    return session


@pytest.fixture
def s3_config() -> S3Config:
    return S3Config(bucket_name="omni-vault-test", region_name="us-east-1")


@pytest.fixture
def make_client_error() -> Callable[..., ClientError]:
    """Factory fixture: build a botocore ClientError with the given code."""

    def _factory(code: str = "AccessDenied", operation: str = "DeleteObject") -> ClientError:
        return ClientError({"Error": {"Code": code, "Message": code}}, operation)

    return _factory


@pytest.fixture
def protected_head() -> dict[str, Any]:
    """head_object response for an object under COMPLIANCE retention + legal hold."""
    return {
        "VersionId": "v-1",
        "ObjectLockMode": "COMPLIANCE",
        "ObjectLockRetainUntilDate": datetime.now(timezone.utc) + timedelta(days=365),
        "ObjectLockLegalHoldStatus": "ON",
    }
