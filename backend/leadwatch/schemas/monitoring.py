"""
Pydantic schemas for post monitoring (companies, posts, collections, webhook)
"""
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field

from leadwatch.models.monitoring import CollectionStatus, ProfileType


class LinkedInWebhookPayload(BaseModel):
    """Body pushed by the LinkUp webhook account for every new post"""
    event_type: Optional[str] = None
    platform: Optional[str] = None
    post_id: Optional[str] = None
    post_url: Optional[str] = None
    author_name: Optional[str] = None
    author_url: Optional[str] = None
    content: Optional[str] = None
    media_urls: Optional[List[str]] = None
    published_at: Optional[Union[str, int, float]] = None
    company_url: Optional[str] = None
    company_id: Optional[str] = None
    timestamp: Optional[Union[str, int, float]] = None

    model_config = {
        "extra": "allow",
        "json_schema_extra": {
            "examples": [
                {
                    "event_type": "new_post",
                    "platform": "linkedin",
                    "post_id": "7250000000000000000",
                    "post_url": "https://www.linkedin.com/posts/acme_launch-activity-7250000000000000000",
                    "author_name": "Acme",
                    "content": "We just launched...",
                    "published_at": "2025-10-04T09:00:00Z",
                    "company_url": "https://www.linkedin.com/company/acme",
                }
            ]
        },
    }


class MonitoredCompanyCreate(BaseModel):
    linkedin_url: str = Field(..., min_length=1, description="Company page or personal profile URL")
    company_name: str = Field(..., min_length=1, max_length=255)
    profile_type: ProfileType = ProfileType.COMPANY


class CollectionConfigUpdate(BaseModel):
    delay_hours: int = Field(24, ge=0, le=24 * 30)
    max_reactions: int = Field(50, ge=0, le=1000)
    max_comments: int = Field(50, ge=0, le=1000)
    is_enabled: bool = True


class CollectionConfigResponse(BaseModel):
    id: int
    delay_hours: int
    max_reactions: int
    max_comments: int
    is_enabled: bool

    model_config = {"from_attributes": True}


class MonitoredCompanyResponse(BaseModel):
    id: int
    linkedin_company_url: str
    company_name: str
    profile_type: ProfileType
    is_active: bool
    added_at: datetime
    last_post_at: Optional[datetime] = None
    last_checked_at: Optional[datetime] = None
    total_posts_received: int
    config: Optional[CollectionConfigResponse] = None
    new_posts_count: int = 0

    model_config = {"from_attributes": True}


class ScheduledCollectionResponse(BaseModel):
    id: int
    post_id: int
    scheduled_for: datetime
    status: CollectionStatus
    max_reactions_override: Optional[int] = None
    max_comments_override: Optional[int] = None
    collected_at: Optional[datetime] = None
    reactions_collected: int
    comments_collected: int
    leads_created: int
    credits_used: int
    error_message: Optional[str] = None

    model_config = {"from_attributes": True}


class CompanyPostResponse(BaseModel):
    id: int
    monitored_company_id: int
    post_id: str
    post_url: str
    author_name: Optional[str] = None
    content: Optional[str] = None
    media_urls: Optional[List[Any]] = None
    published_at: datetime
    received_at: datetime
    is_new: bool

    model_config = {"from_attributes": True}


class PostCollectionRequest(BaseModel):
    """Per-post collection settings (overrides the company config)"""
    delay_hours: int = Field(24, ge=0, le=24 * 30)
    max_reactions: int = Field(50, ge=0, le=1000)
    max_comments: int = Field(50, ge=0, le=1000)
    enabled: bool = True


class PostCollectionResponse(BaseModel):
    collection: ScheduledCollectionResponse
    estimated_credits: int
    message: str


class WebhookAccountCreate(BaseModel):
    account_name: str = Field(..., min_length=1, max_length=255)
    webhook_url: str = Field(..., min_length=1)
    login_token: str = Field(..., min_length=1, description="LinkUp LinkedIn login token")
    country: str = Field("FR", min_length=2, max_length=10)


class WebhookAccountUpdate(BaseModel):
    account_name: Optional[str] = Field(None, min_length=1, max_length=255)
    webhook_url: Optional[str] = None
    login_token: Optional[str] = None
    country: Optional[str] = Field(None, min_length=2, max_length=10)


class WebhookAccountResponse(BaseModel):
    id: int
    linkup_account_id: str
    account_name: str
    webhook_url: str
    country: str
    is_active: bool
    created_at: datetime
    last_started_at: Optional[datetime] = None
    last_stopped_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class MonitoringStatusResponse(BaseModel):
    has_account: bool
    is_active: bool
    account: Optional[WebhookAccountResponse] = None


class MonitoringToggleRequest(BaseModel):
    action: Literal["start", "stop"]


class MonitoringOverviewResponse(BaseModel):
    companies: List[MonitoredCompanyResponse]
    recent_posts: List[CompanyPostResponse]
    webhook_status: MonitoringStatusResponse
    new_posts_count: int


class UpcomingCollection(BaseModel):
    id: int
    company_name: str
    post_url: str
    scheduled_for: datetime


class SchedulerRunResponse(BaseModel):
    """Aggregate returned by the scheduler endpoints"""
    message: str
    timestamp: datetime
    details: Dict[str, Any] = Field(default_factory=dict)
