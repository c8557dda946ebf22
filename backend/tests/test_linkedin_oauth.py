"""Tests for the LinkedIn OAuth flow and token storage."""

from datetime import datetime, timedelta
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from leadwatch.core.config import settings
from leadwatch.core.exceptions import AuthenticationError, LinkedInAPIError
from leadwatch.core.security import decrypt_credential, encrypt_credential
from leadwatch.dependencies import get_linkedin_oauth
from leadwatch.main import app
from leadwatch.models import LinkedInOAuthCredential, OAuthState
from leadwatch.services.linkedin_oauth import (
    TOKEN_URL,
    USERINFO_URL,
    LinkedInOAuthService,
    cleanup_expired_states,
    is_expiring_soon,
)


def linkedin_handler(calls=None, token_status=200):
    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request)
        if str(request.url) == TOKEN_URL:
            form = parse_qs(request.content.decode())
            if token_status != 200:
                return httpx.Response(token_status, text="invalid_grant")
            if form["grant_type"] == ["refresh_token"]:
                return httpx.Response(200, json={"access_token": "refreshed-token", "expires_in": 3600})
            return httpx.Response(200, json={
                "access_token": "access-123",
                "refresh_token": "refresh-456",
                "expires_in": 5184000,
                "scope": "openid profile w_member_social",
            })
        if str(request.url) == USERINFO_URL:
            return httpx.Response(200, json={"sub": "member-789", "name": "Alice"})
        return httpx.Response(404)

    return handler


@pytest.fixture
def oauth_service():
    return LinkedInOAuthService(transport=httpx.MockTransport(linkedin_handler()))


@pytest.fixture
def credential(db_session, team, user):
    record = LinkedInOAuthCredential(
        team_id=team.id,
        access_token=encrypt_credential("stored-token"),
        refresh_token=encrypt_credential("stored-refresh"),
        expires_at=datetime.utcnow() + timedelta(days=30),
        scope="w_member_social",
        connected_by=user.id,
    )
    db_session.add(record)
    db_session.commit()
    return record


@pytest.mark.unit
def test_encryption_round_trip():
    token = encrypt_credential("secret")

    assert token != "secret"
    assert decrypt_credential(token) == "secret"


@pytest.mark.unit
def test_is_expiring_soon():
    now = datetime(2025, 1, 1, 12, 0)

    assert is_expiring_soon(now + timedelta(minutes=4), now)
    assert not is_expiring_soon(now + timedelta(minutes=10), now)


class TestAuthorization:

    def test_authorization_url_and_state(self, db_session, team, user, oauth_service):
        result = oauth_service.build_authorization_url(db_session, team.id, user.id)

        query = parse_qs(urlparse(result["auth_url"]).query)
        assert query["client_id"] == ["test-client-id"]
        assert query["state"] == [result["state"]]
        assert query["response_type"] == ["code"]

        state = db_session.query(OAuthState).one()
        assert state.team_id == team.id
        assert state.provider == "linkedin"
        assert state.expires_at > datetime.utcnow()

    @pytest.mark.asyncio
    async def test_callback_stores_encrypted_tokens(self, db_session, team, user, oauth_service):
        state = oauth_service.build_authorization_url(db_session, team.id, user.id)["state"]

        credential = await oauth_service.handle_callback(db_session, "auth-code", state)

        assert credential.team_id == team.id
        assert credential.access_token != "access-123"
        assert decrypt_credential(credential.access_token) == "access-123"
        assert decrypt_credential(credential.refresh_token) == "refresh-456"
        assert credential.linkedin_member_urn == "member-789"
        assert credential.connected_by == user.id

    @pytest.mark.asyncio
    async def test_state_is_single_use(self, db_session, team, user, oauth_service):
        state = oauth_service.build_authorization_url(db_session, team.id, user.id)["state"]
        await oauth_service.handle_callback(db_session, "auth-code", state)

        with pytest.raises(AuthenticationError) as exc_info:
            await oauth_service.handle_callback(db_session, "auth-code", state)

        assert exc_info.value.error_code == "INVALID_OAUTH_STATE"

    @pytest.mark.asyncio
    async def test_expired_state(self, db_session, team, user, oauth_service):
        db_session.add(OAuthState(
            state="old-state",
            team_id=team.id,
            user_id=user.id,
            provider="linkedin",
            expires_at=datetime.utcnow() - timedelta(minutes=1),
        ))
        db_session.commit()

        with pytest.raises(AuthenticationError):
            await oauth_service.handle_callback(db_session, "auth-code", "old-state")

    @pytest.mark.asyncio
    async def test_failed_code_exchange_still_burns_state(self, db_session, team, user):
        calls = []
        service = LinkedInOAuthService(
            transport=httpx.MockTransport(linkedin_handler(calls, token_status=400))
        )
        state = service.build_authorization_url(db_session, team.id, user.id)["state"]

        with pytest.raises(LinkedInAPIError):
            await service.handle_callback(db_session, "auth-code", state)
        db_session.rollback()

        record = db_session.query(OAuthState).filter(OAuthState.state == state).one()
        assert record.used is True

        with pytest.raises(AuthenticationError) as exc_info:
            await service.handle_callback(db_session, "auth-code", state)
        assert exc_info.value.error_code == "INVALID_OAUTH_STATE"
        assert len(calls) == 1

    def test_cleanup_expired_states(self, db_session, team, user):
        now = datetime.utcnow()
        db_session.add_all([
            OAuthState(state="a", team_id=team.id, user_id=user.id, provider="linkedin",
                       expires_at=now - timedelta(minutes=1)),
            OAuthState(state="b", team_id=team.id, user_id=user.id, provider="linkedin",
                       expires_at=now + timedelta(minutes=5)),
        ])
        db_session.commit()

        assert cleanup_expired_states(db_session, now) == 1
        assert db_session.query(OAuthState).count() == 1


class TestAccessTokens:

    @pytest.mark.asyncio
    async def test_valid_token_is_decrypted(self, db_session, team, credential, oauth_service):
        assert await oauth_service.get_valid_access_token(db_session, team.id) == "stored-token"

    @pytest.mark.asyncio
    async def test_expiring_token_is_refreshed(self, db_session, team, credential):
        calls = []
        service = LinkedInOAuthService(transport=httpx.MockTransport(linkedin_handler(calls)))
        credential.expires_at = datetime.utcnow() + timedelta(minutes=1)
        db_session.commit()

        token = await service.get_valid_access_token(db_session, team.id)

        assert token == "refreshed-token"
        assert len(calls) == 1
        db_session.refresh(credential)
        assert decrypt_credential(credential.access_token) == "refreshed-token"
        assert credential.last_refreshed_at is not None

    @pytest.mark.asyncio
    async def test_failed_refresh_deactivates(self, db_session, team, credential):
        service = LinkedInOAuthService(transport=httpx.MockTransport(linkedin_handler(token_status=400)))
        credential.expires_at = datetime.utcnow() - timedelta(days=1)
        db_session.commit()

        assert await service.get_valid_access_token(db_session, team.id) is None
        db_session.refresh(credential)
        assert credential.is_active is False

    @pytest.mark.asyncio
    async def test_missing_refresh_token_deactivates(self, db_session, team, credential):
        calls = []
        service = LinkedInOAuthService(transport=httpx.MockTransport(linkedin_handler(calls)))
        credential.refresh_token = None
        credential.expires_at = datetime.utcnow() + timedelta(minutes=1)
        db_session.commit()

        assert await service.get_valid_access_token(db_session, team.id) is None
        assert calls == []
        db_session.refresh(credential)
        assert credential.is_active is False

    @pytest.mark.asyncio
    async def test_missing_client_secret_keeps_current_token(
        self, db_session, team, credential, monkeypatch
    ):
        calls = []
        service = LinkedInOAuthService(transport=httpx.MockTransport(linkedin_handler(calls)))
        monkeypatch.setattr(settings, "LINKEDIN_CLIENT_SECRET", "")
        credential.expires_at = datetime.utcnow() + timedelta(minutes=1)
        db_session.commit()

        assert await service.get_valid_access_token(db_session, team.id) == "stored-token"
        assert calls == []
        db_session.refresh(credential)
        assert credential.is_active is True

    @pytest.mark.asyncio
    async def test_no_credential(self, db_session, team, oauth_service):
        assert await oauth_service.get_valid_access_token(db_session, team.id) is None

    def test_connection_status(self, db_session, team, credential, oauth_service):
        status = oauth_service.get_connection_status(db_session, team.id)

        assert status["is_connected"] is True
        assert status["connected_by"] == "Alice Martin"
        assert status["is_expiring_soon"] is False


@pytest.mark.integration
class TestOAuthEndpoints:

    @pytest.fixture(autouse=True)
    def mocked_oauth(self, client, oauth_service):
        app.dependency_overrides[get_linkedin_oauth] = lambda: oauth_service

    def test_authorize_then_callback(self, client, auth_headers):
        authorize = client.get("/api/v1/integrations/linkedin/authorize", headers=auth_headers)
        state = authorize.json()["state"]

        callback = client.get(
            "/api/v1/integrations/linkedin/callback",
            params={"code": "auth-code", "state": state},
        )
        status = client.get("/api/v1/integrations/linkedin/status", headers=auth_headers)

        assert callback.status_code == 200
        assert callback.json()["is_connected"] is True
        assert status.json()["connected_by"] == "Alice Martin"

    def test_callback_error_from_linkedin(self, client):
        response = client.get(
            "/api/v1/integrations/linkedin/callback",
            params={"error": "user_cancelled_login", "error_description": "The user cancelled"},
        )

        assert response.status_code == 401
        assert response.json()["error"] == "LINKEDIN_AUTHORIZATION_DENIED"

    def test_callback_without_code(self, client):
        response = client.get("/api/v1/integrations/linkedin/callback", params={"state": "abc"})

        assert response.status_code == 400
        assert response.json()["error"] == "MISSING_REQUIRED_FIELD"

    def test_disconnect(self, client, auth_headers, credential):
        response = client.delete("/api/v1/integrations/linkedin", headers=auth_headers)
        status = client.get("/api/v1/integrations/linkedin/status", headers=auth_headers)

        assert response.json() == {"success": True}
        assert status.json()["is_connected"] is False
