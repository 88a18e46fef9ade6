from __future__ import annotations

from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field


class FileRecord(BaseModel):
    """Catalog entry for an accepted upload. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="File name as accepted by the vault")
    content_checksum: str = Field(..., description="sha256 hex digest of the accepted bytes")
    uploaded_at: datetime
    size_bytes: int = Field(..., ge=1)


class FileListResponse(BaseModel):
    count: int
    files: list[FileRecord]


class LockRequest(BaseModel):
    locked: bool


class LockStateResponse(BaseModel):
    locked: bool
    last_transition_at: datetime


class HealthResponse(BaseModel):
    status: str = "ok"
