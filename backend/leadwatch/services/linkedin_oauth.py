"""
LinkedIn OAuth 2.0 (3-legged) for post publishing

- Authorization URL with a short-lived, single-use ``state`` row
- Code exchange and member lookup on callback
- Transparent refresh when the access token is about to expire

Access and refresh tokens are Fernet-encrypted at rest.
"""
import secrets
from datetime import datetime, timedelta
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx
from sqlalchemy.orm import Session

from leadwatch.core.config import settings
from leadwatch.core.exceptions import AuthenticationError, ConfigurationError, LinkedInAPIError
from leadwatch.core.logging import setup_logging
from leadwatch.core.security import decrypt_credential, encrypt_credential
from leadwatch.models.integration import LinkedInOAuthCredential, OAuthState
from leadwatch.models.tenancy import User

logger = setup_logging(__name__)

AUTHORIZATION_URL = "https://www.linkedin.com/oauth/v2/authorization"
TOKEN_URL = "https://www.linkedin.com/oauth/v2/accessToken"
USERINFO_URL = "https://api.linkedin.com/v2/userinfo"

PROVIDER = "linkedin"
DEFAULT_EXPIRES_IN = 5184000  # 60 days
REFRESH_MARGIN = timedelta(minutes=5)


def create_oauth_state(db: Session, team_id: int, user_id: int, provider: str) -> str:
    state = secrets.token_urlsafe(32)
    db.add(OAuthState(
        state=state,
        team_id=team_id,
        user_id=user_id,
        provider=provider,
        expires_at=datetime.utcnow() + timedelta(minutes=settings.OAUTH_STATE_TTL_MINUTES),
    ))
    db.commit()
    return state


def consume_oauth_state(db: Session, state: str, provider: str) -> OAuthState:
    """
    Validate a callback state and burn it.

    The state is committed as used before the caller exchanges the code.
    """
    record = (
        db.query(OAuthState)
        .filter(OAuthState.state == state, OAuthState.provider == provider)
        .first()
    )
    if record is None or record.used:
        raise AuthenticationError("Invalid OAuth state", error_code="INVALID_OAUTH_STATE")
    if record.expires_at < datetime.utcnow():
        raise AuthenticationError("OAuth state expired", error_code="INVALID_OAUTH_STATE")

    record.used = True
    db.commit()
    return record


def is_expiring_soon(expires_at: datetime, now: Optional[datetime] = None) -> bool:
    now = now or datetime.utcnow()
    return expires_at < now + REFRESH_MARGIN


class LinkedInOAuthService:
    """Token lifecycle for the team's LinkedIn connection."""

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=30.0, transport=self.transport)

    # ------------------------------------------------------------------
    # Authorization
    # ------------------------------------------------------------------

    def build_authorization_url(self, db: Session, team_id: int, user_id: int) -> Dict[str, str]:
        if not settings.LINKEDIN_CLIENT_ID:
            raise ConfigurationError("LINKEDIN_CLIENT_ID not configured")

        state = create_oauth_state(db, team_id, user_id, PROVIDER)

        params = {
            "response_type": "code",
            "client_id": settings.LINKEDIN_CLIENT_ID,
            "redirect_uri": settings.LINKEDIN_REDIRECT_URI,
            "scope": settings.LINKEDIN_SCOPES,
            "state": state,
        }
        return {"auth_url": f"{AUTHORIZATION_URL}?{urlencode(params)}", "state": state}

    async def _token_request(self, data: Dict[str, str]) -> Dict[str, Any]:
        async with self._client() as client:
            response = await client.post(
                TOKEN_URL,
                data=data,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )
        if response.is_error:
            raise LinkedInAPIError(
                f"LinkedIn token endpoint returned {response.status_code}",
                details={"body": response.text[:200]},
            )
        return response.json()

    async def fetch_userinfo(self, access_token: str) -> Dict[str, Any]:
        async with self._client() as client:
            response = await client.get(USERINFO_URL, headers={"Authorization": f"Bearer {access_token}"})
        if response.is_error:
            raise LinkedInAPIError(f"LinkedIn userinfo returned {response.status_code}")
        return response.json()

    async def handle_callback(self, db: Session, code: str, state: str) -> LinkedInOAuthCredential:
        record = consume_oauth_state(db, state, PROVIDER)
        if not settings.LINKEDIN_CLIENT_SECRET:
            raise ConfigurationError("LINKEDIN_CLIENT_SECRET not configured")

        token = await self._token_request({
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": settings.LINKEDIN_REDIRECT_URI,
            "client_id": settings.LINKEDIN_CLIENT_ID,
            "client_secret": settings.LINKEDIN_CLIENT_SECRET,
        })
        userinfo = await self.fetch_userinfo(token["access_token"])
        now = datetime.utcnow()

        credential = (
            db.query(LinkedInOAuthCredential)
            .filter(LinkedInOAuthCredential.team_id == record.team_id)
            .first()
        )
        if credential is None:
            credential = LinkedInOAuthCredential(team_id=record.team_id)
            db.add(credential)

        credential.access_token = encrypt_credential(token["access_token"])
        credential.refresh_token = (
            encrypt_credential(token["refresh_token"]) if token.get("refresh_token") else None
        )
        credential.expires_at = now + timedelta(seconds=token.get("expires_in") or DEFAULT_EXPIRES_IN)
        credential.scope = token.get("scope") or settings.LINKEDIN_SCOPES
        credential.token_type = token.get("token_type") or "Bearer"
        credential.linkedin_member_urn = userinfo.get("sub")
        credential.connected_by = record.user_id
        credential.connected_at = now
        credential.is_active = True
        db.commit()
        db.refresh(credential)

        logger.info(f"LinkedIn connected for team {record.team_id}")
        return credential

    # ------------------------------------------------------------------
    # Tokens
    # ------------------------------------------------------------------

    def _mark_inactive(self, db: Session, credential: LinkedInOAuthCredential) -> None:
        credential.is_active = False
        db.commit()

    async def _refresh(self, db: Session, credential: LinkedInOAuthCredential) -> Optional[str]:
        if not credential.refresh_token:
            logger.error(f"No refresh token available for team {credential.team_id}")
            self._mark_inactive(db, credential)
            return None

        if not settings.LINKEDIN_CLIENT_SECRET:
            logger.error("LINKEDIN_CLIENT_SECRET not configured, keeping current token")
            return decrypt_credential(credential.access_token)

        try:
            token = await self._token_request({
                "grant_type": "refresh_token",
                "refresh_token": decrypt_credential(credential.refresh_token),
                "client_id": settings.LINKEDIN_CLIENT_ID,
                "client_secret": settings.LINKEDIN_CLIENT_SECRET,
            })
        except (LinkedInAPIError, httpx.HTTPError) as e:
            logger.error(f"LinkedIn token refresh failed for team {credential.team_id}: {e}")
            self._mark_inactive(db, credential)
            return None

        now = datetime.utcnow()
        credential.access_token = encrypt_credential(token["access_token"])
        if token.get("refresh_token"):
            credential.refresh_token = encrypt_credential(token["refresh_token"])
        credential.expires_at = now + timedelta(seconds=token.get("expires_in") or DEFAULT_EXPIRES_IN)
        credential.last_refreshed_at = now
        db.commit()

        logger.info(f"LinkedIn token refreshed for team {credential.team_id}")
        return token["access_token"]

    async def get_valid_access_token(self, db: Session, team_id: int) -> Optional[str]:
        credential = (
            db.query(LinkedInOAuthCredential)
            .filter(LinkedInOAuthCredential.team_id == team_id)
            .first()
        )
        if credential is None or not credential.is_active:
            return None

        if is_expiring_soon(credential.expires_at):
            return await self._refresh(db, credential)
        return decrypt_credential(credential.access_token)

    def get_connection_status(self, db: Session, team_id: int) -> Dict[str, Any]:
        credential = (
            db.query(LinkedInOAuthCredential)
            .filter(LinkedInOAuthCredential.team_id == team_id)
            .first()
        )
        if credential is None:
            return {
                "is_connected": False,
                "connected_at": None,
                "connected_by": None,
                "expires_at": None,
                "last_refreshed_at": None,
                "is_expiring_soon": False,
            }

        user = db.get(User, credential.connected_by)
        return {
            "is_connected": credential.is_active,
            "connected_at": credential.connected_at,
            "connected_by": (user.name or user.email) if user else None,
            "expires_at": credential.expires_at,
            "last_refreshed_at": credential.last_refreshed_at,
            "is_expiring_soon": is_expiring_soon(credential.expires_at),
        }

    def disconnect(self, db: Session, team_id: int) -> None:
        db.query(LinkedInOAuthCredential).filter(LinkedInOAuthCredential.team_id == team_id).delete()
        db.commit()
        logger.info(f"LinkedIn disconnected for team {team_id}")


def cleanup_expired_states(db: Session, now: Optional[datetime] = None) -> int:
    now = now or datetime.utcnow()
    deleted = db.query(OAuthState).filter(OAuthState.expires_at < now).delete(synchronize_session=False)
    db.commit()
    logger.info(f"Deleted {deleted} expired OAuth states")
    return deleted
