"""
Authentication dependencies for FastAPI endpoints.

- Cron, scheduler and ingest endpoints: shared ``INGEST_API_TOKEN`` bearer token
- Dashboard endpoints: acting user from the ``X-User-ID`` header, tenant from
  the user's team membership
- Chrome extension: per-team ``x-api-key``
"""
import secrets
from typing import Optional

from fastapi import Depends, Header
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from leadwatch.core.config import settings
from leadwatch.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConfigurationError,
    InvalidIngestTokenError,
)
from leadwatch.core.logging import setup_logging
from leadwatch.models.database import get_db
from leadwatch.models.tenancy import Team, TeamMember, User
from leadwatch.services.api_keys import api_key_service

logger = setup_logging(__name__)

# auto_error=False so a missing header maps to our own 401 payload
bearer_scheme = HTTPBearer(auto_error=False)


async def require_ingest_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> None:
    """
    Guard for machine-to-machine endpoints.

    Raises:
        ConfigurationError: INGEST_API_TOKEN is not configured (500)
        InvalidIngestTokenError: header missing, not Bearer, or wrong token (401)
    """
    expected = settings.INGEST_API_TOKEN
    if not expected:
        raise ConfigurationError("Server misconfiguration: INGEST_API_TOKEN is not set")

    if credentials is None or credentials.scheme.lower() != "bearer":
        logger.warning("Unauthorized ingestion attempt: missing or invalid Authorization header")
        raise InvalidIngestTokenError("Missing or invalid Authorization header")

    if not secrets.compare_digest(credentials.credentials, expected):
        logger.warning("Unauthorized ingestion attempt: invalid token")
        raise InvalidIngestTokenError("Invalid token")


async def get_current_user(
    x_user_id: Optional[int] = Header(None, alias="X-User-ID"),
    db: Session = Depends(get_db),
) -> User:
    if x_user_id is None:
        raise AuthenticationError("Missing X-User-ID header")

    user = db.get(User, x_user_id)
    if user is None:
        raise AuthenticationError("Unknown user")
    return user


async def get_current_team(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Team:
    membership = (
        db.query(TeamMember)
        .filter(TeamMember.user_id == user.id)
        .order_by(TeamMember.joined_at, TeamMember.id)
        .first()
    )
    if membership is None:
        raise AuthorizationError("User does not belong to any team")
    return membership.team


async def get_api_key_team_id(
    x_api_key: Optional[str] = Header(None, alias="x-api-key"),
    db: Session = Depends(get_db),
) -> int:
    """Resolve the team owning the extension API key."""
    record = api_key_service.authenticate(db, x_api_key)
    return record.team_id
