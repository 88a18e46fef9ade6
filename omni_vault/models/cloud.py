from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr


class ObjectLockMode(str, Enum):
    GOVERNANCE = "GOVERNANCE"
    COMPLIANCE = "COMPLIANCE"


class ObjectLockAttributes(BaseModel):
    model_config = ConfigDict(frozen=True)

    mode: Optional[ObjectLockMode] = None
    retain_until: Optional[datetime] = None
    legal_hold: bool = False

    @staticmethod
    def from_head_object(resp: dict[str, Any]) -> "ObjectLockAttributes":
        mode_raw = resp.get("ObjectLockMode")
        return ObjectLockAttributes(
            mode=ObjectLockMode(mode_raw) if mode_raw else None,
            retain_until=resp.get("ObjectLockRetainUntilDate"),
            legal_hold=(resp.get("ObjectLockLegalHoldStatus") or "").upper() == "ON",
        )

    def retention_active(self, *, now: Optional[datetime] = None) -> bool:
        if self.retain_until is None:
            return False
        now = now or datetime.now(timezone.utc)
        retain_until = self.retain_until
        if retain_until.tzinfo is None:
            retain_until = retain_until.replace(tzinfo=timezone.utc)
        return retain_until > now


class EscalatedSession(BaseModel):
    """Temporary credentials issued against a second-factor proof.

    Held in process memory only; the secret parts are `SecretStr` so they do
    not show up in reprs or logs.
    """

    model_config = ConfigDict(frozen=True)

    access_key_id: str
    secret_key: SecretStr
    session_token: SecretStr
    expires_at: datetime

    def is_expired(self, *, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now(timezone.utc)
        expires_at = self.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return expires_at <= now

    def client_kwargs(self) -> dict[str, str]:
        return {
            "aws_access_key_id": self.access_key_id,
            "aws_secret_access_key": self.secret_key.get_secret_value(),
            "aws_session_token": self.session_token.get_secret_value(),
        }


class VerificationReport(BaseModel):
    key: str
    attributes: ObjectLockAttributes
    unescalated_delete_denied: bool = Field(..., description="Negative-control delete was rejected")
    escalated_delete_denied: Optional[bool] = None
