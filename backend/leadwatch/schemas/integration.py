"""
Pydantic schemas for integrations (extension API key, LinkedIn OAuth)
and the bearer-token ingestion endpoints
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, HttpUrl
from pydantic.alias_generators import to_camel


class ApiKeyResponse(BaseModel):
    key_preview: str
    is_active: bool
    created_at: datetime
    last_used_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ApiKeyCreatedResponse(ApiKeyResponse):
    """Only response that ever carries the plaintext key"""
    key: str


class LinkedInAuthorizeResponse(BaseModel):
    auth_url: str
    state: str


class LinkedInStatusResponse(BaseModel):
    is_connected: bool
    connected_at: Optional[datetime] = None
    connected_by: Optional[str] = None
    expires_at: Optional[datetime] = None
    last_refreshed_at: Optional[datetime] = None
    is_expiring_soon: bool = False


class IngestEngagementRequest(BaseModel):
    post_url: HttpUrl

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class IngestLeadsRequest(BaseModel):
    post_url: Optional[HttpUrl] = None
    keywords: Optional[str] = None
    industry: Optional[str] = None
    limit: int = Field(10, ge=1, le=100)

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
