"""
Google OAuth for the team's Gmail connection

Same state handling as the LinkedIn flow (``provider='google'``). Tokens are
Fernet-encrypted at rest and refreshed once expired, when a client is built.
"""
from datetime import datetime, timedelta
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx
from sqlalchemy.orm import Session

from leadwatch.core.config import settings
from leadwatch.core.exceptions import ConfigurationError, GmailAPIError, GmailNotConnectedError
from leadwatch.core.logging import setup_logging
from leadwatch.core.security import decrypt_credential, encrypt_credential
from leadwatch.models.integration import GmailConnection
from leadwatch.models.tenancy import User
from leadwatch.services.gmail_client import GmailClient
from leadwatch.services.linkedin_oauth import consume_oauth_state, create_oauth_state

logger = setup_logging(__name__)

AUTHORIZATION_URL = "https://accounts.google.com/o/oauth2/v2/auth"
TOKEN_URL = "https://oauth2.googleapis.com/token"
USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"

PROVIDER = "google"
DEFAULT_EXPIRES_IN = 3600
EXPIRY_WARNING = timedelta(hours=24)


def is_expiring_soon(expires_at: datetime, now: Optional[datetime] = None) -> bool:
    """Less than a day left, but not expired yet."""
    remaining = expires_at - (now or datetime.utcnow())
    return timedelta(0) < remaining < EXPIRY_WARNING


class GmailOAuthService:
    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=30.0, transport=self.transport)

    def _get_connection(self, db: Session, team_id: int) -> Optional[GmailConnection]:
        return db.query(GmailConnection).filter(GmailConnection.team_id == team_id).first()

    def build_authorization_url(self, db: Session, team_id: int, user_id: int) -> Dict[str, str]:
        if not settings.GOOGLE_CLIENT_ID or not settings.GOOGLE_REDIRECT_URI:
            raise ConfigurationError("Google OAuth not configured")

        state = create_oauth_state(db, team_id, user_id, PROVIDER)
        params = {
            "client_id": settings.GOOGLE_CLIENT_ID,
            "redirect_uri": settings.GOOGLE_REDIRECT_URI,
            "response_type": "code",
            "scope": settings.GMAIL_SCOPES,
            "access_type": "offline",
            "prompt": "consent",
            "state": state,
        }
        return {"auth_url": f"{AUTHORIZATION_URL}?{urlencode(params)}", "state": state}

    async def _token_request(self, data: Dict[str, str]) -> Dict[str, Any]:
        async with self._client() as client:
            response = await client.post(TOKEN_URL, data=data)
        if response.is_error:
            raise GmailAPIError(
                f"Google token endpoint returned {response.status_code}",
                details={"body": response.text[:200]},
            )
        return response.json()

    async def handle_callback(self, db: Session, code: str, state: str) -> GmailConnection:
        record = consume_oauth_state(db, state, PROVIDER)

        token = await self._token_request({
            "code": code,
            "client_id": settings.GOOGLE_CLIENT_ID,
            "client_secret": settings.GOOGLE_CLIENT_SECRET,
            "redirect_uri": settings.GOOGLE_REDIRECT_URI,
            "grant_type": "authorization_code",
        })
        async with self._client() as client:
            userinfo = await client.get(
                USERINFO_URL, headers={"Authorization": f"Bearer {token['access_token']}"}
            )
        google_email = userinfo.json().get("email") if not userinfo.is_error else None

        now = datetime.utcnow()
        connection = self._get_connection(db, record.team_id)
        if connection is None:
            connection = GmailConnection(team_id=record.team_id, connected_by=record.user_id, connected_at=now)
            db.add(connection)
        else:
            connection.last_refreshed_at = now

        connection.access_token = encrypt_credential(token["access_token"])
        if token.get("refresh_token"):
            connection.refresh_token = encrypt_credential(token["refresh_token"])
        connection.expires_at = now + timedelta(seconds=token.get("expires_in") or DEFAULT_EXPIRES_IN)
        connection.scope = token.get("scope") or settings.GMAIL_SCOPES
        connection.token_type = token.get("token_type") or "Bearer"
        connection.google_email = google_email
        connection.is_active = True
        db.commit()
        db.refresh(connection)

        logger.info(f"Gmail connected for team {record.team_id} ({google_email})")
        return connection

    async def _refresh(self, db: Session, connection: GmailConnection) -> str:
        if not connection.refresh_token:
            raise GmailAPIError("No refresh token available")

        try:
            token = await self._token_request({
                "client_id": settings.GOOGLE_CLIENT_ID,
                "client_secret": settings.GOOGLE_CLIENT_SECRET,
                "refresh_token": decrypt_credential(connection.refresh_token),
                "grant_type": "refresh_token",
            })
        except GmailAPIError as e:
            raise GmailAPIError("Failed to refresh access token", details=e.details)

        now = datetime.utcnow()
        connection.access_token = encrypt_credential(token["access_token"])
        connection.expires_at = now + timedelta(seconds=token.get("expires_in") or DEFAULT_EXPIRES_IN)
        connection.last_refreshed_at = now
        db.commit()

        logger.info(f"Gmail token refreshed for team {connection.team_id}")
        return token["access_token"]

    async def get_client(self, db: Session, team_id: int) -> GmailClient:
        """Gmail client for the team, refreshing an expired token first."""
        connection = self._get_connection(db, team_id)
        if connection is None or not connection.is_active:
            raise GmailNotConnectedError(team_id)

        if datetime.utcnow() >= connection.expires_at:
            access_token = await self._refresh(db, connection)
        else:
            access_token = decrypt_credential(connection.access_token)
        return GmailClient(access_token, transport=self.transport)

    def get_connection_status(self, db: Session, team_id: int) -> Dict[str, Any]:
        connection = self._get_connection(db, team_id)
        if connection is None or not connection.is_active:
            return {"is_connected": False}

        user = db.get(User, connection.connected_by)
        return {
            "is_connected": True,
            "google_email": connection.google_email,
            "connected_at": connection.connected_at,
            "connected_by": (user.name or user.email) if user else None,
            "expires_at": connection.expires_at,
            "last_refreshed_at": connection.last_refreshed_at,
            "is_expiring_soon": is_expiring_soon(connection.expires_at),
        }

    def disconnect(self, db: Session, team_id: int) -> None:
        db.query(GmailConnection).filter(GmailConnection.team_id == team_id).update(
            {GmailConnection.is_active: False}, synchronize_session="fetch"
        )
        db.commit()
        logger.info(f"Gmail disconnected for team {team_id}")
