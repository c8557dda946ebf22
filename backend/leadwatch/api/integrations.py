"""
Integration endpoints

- Chrome extension API key (one per team; plaintext shown only on creation)
- LinkedIn OAuth connection used for publishing
- Gmail OAuth connection used for campaign emails, plus a small inbox API
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from leadwatch.core.exceptions import AuthenticationError, MissingRequiredFieldError
from leadwatch.core.logging import setup_logging
from leadwatch.dependencies import get_current_team, get_current_user, get_gmail_oauth, get_linkedin_oauth
from leadwatch.models import Team, User, get_db
from leadwatch.schemas.campaign import GmailAuthorizeResponse, GmailSendRequest, GmailStatusResponse
from leadwatch.schemas.integration import (
    ApiKeyCreatedResponse,
    ApiKeyResponse,
    LinkedInAuthorizeResponse,
    LinkedInStatusResponse,
)
from leadwatch.services.api_keys import api_key_service
from leadwatch.services.gmail_oauth import GmailOAuthService
from leadwatch.services.linkedin_oauth import LinkedInOAuthService

logger = setup_logging(__name__)

router = APIRouter(prefix="/integrations", tags=["integrations"])


def _created_response(record, key: str) -> ApiKeyCreatedResponse:
    return ApiKeyCreatedResponse(key=key, **ApiKeyResponse.model_validate(record).model_dump())


@router.get("/api-key", response_model=Optional[ApiKeyResponse])
async def get_api_key(
    team: Team = Depends(get_current_team),
    db: Session = Depends(get_db),
):
    return api_key_service.get(db, team.id)


@router.post("/api-key", response_model=ApiKeyCreatedResponse, status_code=201)
async def create_api_key(
    team: Team = Depends(get_current_team),
    db: Session = Depends(get_db),
):
    record, key = api_key_service.create(db, team.id)
    return _created_response(record, key)


@router.post("/api-key/regenerate", response_model=ApiKeyCreatedResponse)
async def regenerate_api_key(
    team: Team = Depends(get_current_team),
    db: Session = Depends(get_db),
):
    record, key = api_key_service.regenerate(db, team.id)
    return _created_response(record, key)


@router.delete("/api-key")
async def delete_api_key(
    team: Team = Depends(get_current_team),
    db: Session = Depends(get_db),
):
    api_key_service.delete(db, team.id)
    return {"success": True}


@router.get("/linkedin/authorize", response_model=LinkedInAuthorizeResponse)
async def linkedin_authorize(
    user: User = Depends(get_current_user),
    team: Team = Depends(get_current_team),
    db: Session = Depends(get_db),
    oauth: LinkedInOAuthService = Depends(get_linkedin_oauth),
):
    return oauth.build_authorization_url(db, team.id, user.id)


@router.get("/linkedin/callback", response_model=LinkedInStatusResponse)
async def linkedin_callback(
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
    error_description: Optional[str] = None,
    db: Session = Depends(get_db),
    oauth: LinkedInOAuthService = Depends(get_linkedin_oauth),
):
    """OAuth redirect target; the state token identifies the team and user."""
    if error:
        raise AuthenticationError(
            error_description or f"LinkedIn authorization failed: {error}",
            error_code="LINKEDIN_AUTHORIZATION_DENIED",
            details={"error": error},
        )
    if not code:
        raise MissingRequiredFieldError("code")
    if not state:
        raise MissingRequiredFieldError("state")

    credential = await oauth.handle_callback(db, code, state)
    return oauth.get_connection_status(db, credential.team_id)


@router.get("/linkedin/status", response_model=LinkedInStatusResponse)
async def linkedin_status(
    team: Team = Depends(get_current_team),
    db: Session = Depends(get_db),
    oauth: LinkedInOAuthService = Depends(get_linkedin_oauth),
):
    return oauth.get_connection_status(db, team.id)


@router.delete("/linkedin")
async def linkedin_disconnect(
    team: Team = Depends(get_current_team),
    db: Session = Depends(get_db),
    oauth: LinkedInOAuthService = Depends(get_linkedin_oauth),
):
    oauth.disconnect(db, team.id)
    return {"success": True}


@router.get("/gmail/authorize", response_model=GmailAuthorizeResponse)
async def gmail_authorize(
    user: User = Depends(get_current_user),
    team: Team = Depends(get_current_team),
    db: Session = Depends(get_db),
    oauth: GmailOAuthService = Depends(get_gmail_oauth),
):
    return oauth.build_authorization_url(db, team.id, user.id)


@router.get("/gmail/callback", response_model=GmailStatusResponse)
async def gmail_callback(
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
    db: Session = Depends(get_db),
    oauth: GmailOAuthService = Depends(get_gmail_oauth),
):
    if error:
        raise AuthenticationError(
            f"Google authorization failed: {error}",
            error_code="GMAIL_AUTHORIZATION_DENIED",
            details={"error": error},
        )
    if not code:
        raise MissingRequiredFieldError("code")
    if not state:
        raise MissingRequiredFieldError("state")

    connection = await oauth.handle_callback(db, code, state)
    return oauth.get_connection_status(db, connection.team_id)


@router.get("/gmail/status", response_model=GmailStatusResponse)
async def gmail_status(
    team: Team = Depends(get_current_team),
    db: Session = Depends(get_db),
    oauth: GmailOAuthService = Depends(get_gmail_oauth),
):
    return oauth.get_connection_status(db, team.id)


@router.post("/gmail/send")
async def gmail_send(
    request: GmailSendRequest,
    team: Team = Depends(get_current_team),
    db: Session = Depends(get_db),
    oauth: GmailOAuthService = Depends(get_gmail_oauth),
):
    client = await oauth.get_client(db, team.id)
    result = await client.send_email(request.to, request.subject, request.body)
    return {"success": True, "message_id": result.get("id"), "thread_id": result.get("threadId")}


@router.get("/gmail/messages")
async def gmail_list_messages(
    max_results: int = Query(20, ge=1, le=100),
    page_token: Optional[str] = None,
    team: Team = Depends(get_current_team),
    db: Session = Depends(get_db),
    oauth: GmailOAuthService = Depends(get_gmail_oauth),
):
    client = await oauth.get_client(db, team.id)
    return await client.list_messages(max_results=max_results, page_token=page_token)


@router.get("/gmail/messages/{message_id}")
async def gmail_get_message(
    message_id: str,
    team: Team = Depends(get_current_team),
    db: Session = Depends(get_db),
    oauth: GmailOAuthService = Depends(get_gmail_oauth),
):
    client = await oauth.get_client(db, team.id)
    return await client.get_message(message_id)


@router.delete("/gmail")
async def gmail_disconnect(
    team: Team = Depends(get_current_team),
    db: Session = Depends(get_db),
    oauth: GmailOAuthService = Depends(get_gmail_oauth),
):
    oauth.disconnect(db, team.id)
    return {"success": True}
