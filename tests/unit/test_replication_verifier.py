"""Tests for ReplicationVerifier: retention checks and negative-control deletes."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from omni_vault.models.cloud import EscalatedSession, ObjectLockMode
from omni_vault.services.errors import NotProtectedError, ProtectionFailure, S3ServiceError, SessionExpiredError
from omni_vault.services.polling import BoundedPoller
from omni_vault.services.replication_verifier import ReplicationVerifier
from omni_vault.services.s3_service import S3Service


async def _no_sleep(seconds: float) -> None:
    return None


@pytest.fixture
def verifier(s3_config, aws_session) -> ReplicationVerifier:
    return ReplicationVerifier(
        s3=S3Service(s3_config, session=aws_session),
        poller=BoundedPoller(max_attempts=3, delay_seconds=0, retry_on=(S3ServiceError,), sleep=_no_sleep),
    )


@pytest.fixture
def escalated_session() -> EscalatedSession:
    return EscalatedSession(
        access_key_id="ASIATEST",
        secret_key="secret",
        session_token="token",
        expires_at=datetime.now(timezone.utc) + timedelta(hours=1),
    )


class TestVerify:
    @pytest.mark.asyncio
    async def test_protected_object_passes(self, verifier, aws_client, protected_head, make_client_error):
        aws_client.head_object.return_value = protected_head
        aws_client.delete_object.side_effect = make_client_error("AccessDenied")

        attributes = await verifier.verify("api/omni_api.json")

        assert attributes.mode is ObjectLockMode.COMPLIANCE
        assert attributes.retain_until > datetime.now(timezone.utc)
        aws_client.delete_object.assert_awaited_once_with(
            Bucket="omni-vault-test", Key="api/omni_api.json", VersionId="v-1"
        )

    @pytest.mark.asyncio
    async def test_missing_mode_not_protected(self, verifier, aws_client, protected_head):
        protected_head.pop("ObjectLockMode")
        aws_client.head_object.return_value = protected_head
        with pytest.raises(NotProtectedError):
            await verifier.verify("data/a.ttl")
        aws_client.delete_object.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_expired_retention_not_protected(self, verifier, aws_client, protected_head):
        protected_head["ObjectLockRetainUntilDate"] = datetime.now(timezone.utc) - timedelta(seconds=1)
        aws_client.head_object.return_value = protected_head
        with pytest.raises(NotProtectedError):
            await verifier.verify("data/a.ttl")

    @pytest.mark.asyncio
    async def test_successful_delete_is_fatal(self, verifier, aws_client, protected_head):
        aws_client.head_object.return_value = protected_head
        aws_client.delete_object.return_value = {}
        with pytest.raises(ProtectionFailure):
            await verifier.verify("data/a.ttl")

    @pytest.mark.asyncio
    async def test_lookup_retried_until_visible(self, verifier, aws_client, protected_head, make_client_error):
        aws_client.head_object.side_effect = [make_client_error("404", "HeadObject"), protected_head]
        aws_client.delete_object.side_effect = make_client_error("AccessDenied")
        attributes = await verifier.verify("data/a.ttl")
        assert attributes.legal_hold is True
        assert aws_client.head_object.await_count == 2


class TestVerifyEscalated:
    @pytest.mark.asyncio
    async def test_escalated_delete_still_denied(
        self, verifier, aws_client, protected_head, make_client_error, escalated_session
    ):
        aws_client.head_object.return_value = protected_head
        aws_client.delete_object.side_effect = make_client_error("AccessDenied")
        report = await verifier.report("data/a.ttl", session=escalated_session)
        assert report.unescalated_delete_denied is True
        assert report.escalated_delete_denied is True
        assert aws_client.delete_object.await_count == 2

    @pytest.mark.asyncio
    async def test_escalated_delete_success_is_fatal(self, verifier, aws_client, protected_head, escalated_session):
        aws_client.head_object.return_value = protected_head
        aws_client.delete_object.return_value = {}
        with pytest.raises(ProtectionFailure, match="escalated"):
            await verifier.verify_escalated("data/a.ttl", escalated_session)

    @pytest.mark.asyncio
    async def test_expired_session_rejected(self, verifier, aws_client):
        expired = EscalatedSession(
            access_key_id="ASIATEST",
            secret_key="secret",
            session_token="token",
            expires_at=datetime.now(timezone.utc) - timedelta(minutes=1),
        )
        with pytest.raises(SessionExpiredError):
            await verifier.verify_escalated("data/a.ttl", expired)
        aws_client.head_object.assert_not_awaited()
