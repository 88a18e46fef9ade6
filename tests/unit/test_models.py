"""Tests for the cloud-side models."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from omni_vault.models.cloud import EscalatedSession, ObjectLockAttributes, ObjectLockMode


class TestObjectLockAttributes:
    def test_from_head_object(self, protected_head):
        attributes = ObjectLockAttributes.from_head_object(protected_head)
        assert attributes.mode is ObjectLockMode.COMPLIANCE
        assert attributes.legal_hold is True
        assert attributes.retention_active() is True

    def test_unprotected_head(self):
        attributes = ObjectLockAttributes.from_head_object({"VersionId": "v"})
        assert attributes.mode is None
        assert attributes.legal_hold is False
        assert attributes.retention_active() is False

    def test_naive_retain_until_treated_as_utc(self):
        now = datetime(2026, 6, 1, tzinfo=timezone.utc)
        attributes = ObjectLockAttributes(
            mode=ObjectLockMode.GOVERNANCE,
            retain_until=datetime(2026, 6, 2),
        )
        assert attributes.retention_active(now=now) is True
        assert attributes.retention_active(now=now + timedelta(days=2)) is False


class TestEscalatedSession:
    def test_secrets_hidden_and_exposed_for_clients(self):
        session = EscalatedSession(
            access_key_id="ASIA",
            secret_key="s3cr3t",
            session_token="t0k3n",
            expires_at=datetime.now(timezone.utc) + timedelta(hours=1),
        )
        assert "s3cr3t" not in repr(session)
        assert "t0k3n" not in session.model_dump_json()
        assert session.client_kwargs()["aws_session_token"] == "t0k3n"
        assert session.is_expired() is False
