"""FastAPI dependencies."""
from .auth import (
    require_ingest_token,
    get_current_user,
    get_current_team,
    get_api_key_team_id,
)
from .clients import (
    get_linkup_client,
    get_apify_client,
    get_openai_service,
    get_linkedin_oauth,
    get_linkedin_publisher,
    get_gmail_oauth,
    get_email_service,
)

__all__ = [
    "require_ingest_token",
    "get_current_user",
    "get_current_team",
    "get_api_key_team_id",
    "get_linkup_client",
    "get_apify_client",
    "get_openai_service",
    "get_linkedin_oauth",
    "get_linkedin_publisher",
    "get_gmail_oauth",
    "get_email_service",
]
