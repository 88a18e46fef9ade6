from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, File, Header, Request, UploadFile
from starlette.concurrency import run_in_threadpool

from omni_vault.models.vault import FileListResponse, FileRecord, HealthResponse, LockRequest, LockStateResponse
from omni_vault.services.auth_guard import AuthGuard
from omni_vault.services.catalog_store import CatalogStore
from omni_vault.services.dependencies import get_catalog_store, get_lock_controller, get_upload_gateway
from omni_vault.services.lock_controller import LockController
from omni_vault.services.upload_gateway import UploadGateway

router = APIRouter(tags=["vault"])


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    return HealthResponse()


@router.get("/spec")
async def spec(request: Request) -> dict[str, Any]:
    return request.app.openapi()


@router.get("/lock", response_model=LockStateResponse)
async def lock_state(lock: LockController = Depends(get_lock_controller)) -> LockStateResponse:
    state = lock.state
    return LockStateResponse(locked=state.locked, last_transition_at=state.last_transition_at)


@router.post("/lock", response_model=LockStateResponse)
async def set_lock(
    payload: LockRequest,
    authorization: Optional[str] = Header(default=None),
    lock: LockController = Depends(get_lock_controller),
) -> LockStateResponse:
    state = await run_in_threadpool(
        lock.set_lock,
        AuthGuard.bearer_token(authorization),
        locked=payload.locked,
    )
    return LockStateResponse(locked=state.locked, last_transition_at=state.last_transition_at)


@router.post("/upload", response_model=FileRecord)
async def upload(
    file: UploadFile = File(...),
    authorization: Optional[str] = Header(default=None),
    uploads: UploadGateway = Depends(get_upload_gateway),
) -> FileRecord:
    # One byte past the limit is enough for the gateway to reject oversize uploads.
    data = await file.read(uploads.max_upload_bytes + 1)
    return await run_in_threadpool(
        uploads.accept_upload,
        AuthGuard.bearer_token(authorization),
        data,
        file.filename,
    )


@router.get("/files", response_model=FileListResponse)
async def list_files(catalog: CatalogStore = Depends(get_catalog_store)) -> FileListResponse:
    files = catalog.list()
    return FileListResponse(count=len(files), files=files)
