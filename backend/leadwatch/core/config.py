"""Application configuration using pydantic settings."""

from functools import lru_cache
from typing import List, Optional
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings."""

    # Project info
    PROJECT_NAME: str = "LeadWatch API"
    VERSION: str = "0.1.0"

    # API Configuration
    API_V1_PREFIX: str = "/api/v1"

    # CORS
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",  # Dashboard dev server
        "chrome-extension://*",
    ]

    # Database - MUST be provided via environment variable (.env file)
    DATABASE_URL: str
    DATABASE_ECHO: bool = False
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_RECYCLE: int = 3600
    DB_POOL_TIMEOUT: int = 30

    # Redis (Celery broker + result backend)
    REDIS_URL: str = "redis://localhost:6379/0"

    # Shared bearer token for cron, scheduler and ingest endpoints
    INGEST_API_TOKEN: Optional[str] = None

    # LinkUp scraping API
    LINKUP_API_BASE: str = "https://api.linkupapi.com"
    LINKUP_API_KEY: str = ""
    LINKUP_MOCK: bool = False
    LINKUP_MAX_ATTEMPTS: int = 5
    LINKUP_TIMEOUT_SECONDS: float = 30.0

    # Apify actors
    APIFY_API_KEY: str = ""
    APIFY_BASE_URL: str = "https://api.apify.com/v2"
    APIFY_PROFILE_POSTS_ACTOR: str = "apify~linkedin-profile-scraper"
    APIFY_POST_REACTIONS_ACTOR: str = "apimaestro~linkedin-post-reactions"
    APIFY_POST_COMMENTS_ACTOR: str = "apimaestro~linkedin-post-comments-replies-engagements-scraper-no-cookies"
    APIFY_TIMEOUT_SECONDS: float = 120.0

    # OpenAI
    OPENAI_API_KEY: str = ""
    OPENAI_MODEL: str = "gpt-4o"

    # LinkedIn OAuth
    LINKEDIN_CLIENT_ID: str = ""
    LINKEDIN_CLIENT_SECRET: str = ""
    LINKEDIN_REDIRECT_URI: str = "http://localhost:8000/api/v1/integrations/linkedin/callback"
    LINKEDIN_SCOPES: str = "openid profile email w_member_social"

    # Google OAuth (Gmail sending for campaigns)
    GOOGLE_CLIENT_ID: str = ""
    GOOGLE_CLIENT_SECRET: str = ""
    GOOGLE_REDIRECT_URI: str = "http://localhost:8000/api/v1/integrations/gmail/callback"
    GMAIL_SCOPES: str = (
        "https://www.googleapis.com/auth/gmail.readonly "
        "https://www.googleapis.com/auth/gmail.send "
        "https://www.googleapis.com/auth/userinfo.email"
    )

    # Fernet key used to encrypt OAuth tokens at rest
    CREDENTIAL_ENCRYPTION_KEY: str = ""

    # Post monitoring pipeline
    DEFAULT_COLLECTION_DELAY_HOURS: int = 24
    DEFAULT_MAX_REACTIONS: int = 50
    DEFAULT_MAX_COMMENTS: int = 50
    EXTRACT_BATCH_SIZE: int = 10
    COLLECT_BATCH_SIZE: int = 50
    DETECT_INTERVAL_SECONDS: float = 300.0
    EXTRACT_INTERVAL_SECONDS: float = 300.0
    PUBLISH_INTERVAL_SECONDS: float = 300.0
    OAUTH_STATE_TTL_MINUTES: int = 10

    # Campaigns
    CAMPAIGN_BATCH_SIZE: int = 50
    CAMPAIGN_INTERVAL_SECONDS: float = 300.0
    WORKFLOW_INTERVAL_SECONDS: float = 60.0

    # Error tracking
    SENTRY_DSN: Optional[str] = None

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = True

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignore extra environment variables not defined in Settings


@lru_cache()
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return settings


# Create global settings instance
settings = Settings()
