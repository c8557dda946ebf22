"""Pydantic schemas for request/response validation."""

from .monitoring import (
    LinkedInWebhookPayload,
    MonitoredCompanyCreate,
    MonitoredCompanyResponse,
    CollectionConfigUpdate,
    CollectionConfigResponse,
    CompanyPostResponse,
    PostCollectionRequest,
    PostCollectionResponse,
    ScheduledCollectionResponse,
    WebhookAccountCreate,
    WebhookAccountUpdate,
    WebhookAccountResponse,
    MonitoringStatusResponse,
    MonitoringToggleRequest,
    MonitoringOverviewResponse,
    UpcomingCollection,
)
from .prospect import (
    ProspectImportItem,
    ProspectImportRequest,
    ProspectImportResponse,
    ProspectResponse,
    ProspectScoreResponse,
)
from .lead import (
    ICPCriteria,
    LeadResponse,
    LeadDetailResponse,
    LeadUpdate,
    LeadScoreRequest,
    BatchScoreRequest,
    LeadScoreResponse,
    BatchScoreResponse,
    ImportFromPostRequest,
    ImportFromPostResponse,
)
from .outreach import (
    MessageType,
    CompanyInfo,
    MessageGenerateRequest,
    MessageUpdate,
    MessageResponse,
    PostCreate,
    PostGenerateRequest,
    PostImproveRequest,
    PostUpdate,
    PostResponse,
    ICPProfileRequest,
    ICPProfileResponse,
)
from .integration import (
    ApiKeyResponse,
    ApiKeyCreatedResponse,
    LinkedInAuthorizeResponse,
    LinkedInStatusResponse,
    IngestEngagementRequest,
    IngestLeadsRequest,
)

__all__ = [
    "LinkedInWebhookPayload",
    "MonitoredCompanyCreate",
    "MonitoredCompanyResponse",
    "CollectionConfigUpdate",
    "CollectionConfigResponse",
    "CompanyPostResponse",
    "PostCollectionRequest",
    "PostCollectionResponse",
    "ScheduledCollectionResponse",
    "WebhookAccountCreate",
    "WebhookAccountUpdate",
    "WebhookAccountResponse",
    "MonitoringStatusResponse",
    "MonitoringToggleRequest",
    "MonitoringOverviewResponse",
    "UpcomingCollection",
    "ProspectImportItem",
    "ProspectImportRequest",
    "ProspectImportResponse",
    "ProspectResponse",
    "ProspectScoreResponse",
    "ICPCriteria",
    "LeadResponse",
    "LeadDetailResponse",
    "LeadUpdate",
    "LeadScoreRequest",
    "BatchScoreRequest",
    "LeadScoreResponse",
    "BatchScoreResponse",
    "ImportFromPostRequest",
    "ImportFromPostResponse",
    "MessageType",
    "CompanyInfo",
    "MessageGenerateRequest",
    "MessageUpdate",
    "MessageResponse",
    "PostCreate",
    "PostGenerateRequest",
    "PostImproveRequest",
    "PostUpdate",
    "PostResponse",
    "ICPProfileRequest",
    "ICPProfileResponse",
    "ApiKeyResponse",
    "ApiKeyCreatedResponse",
    "LinkedInAuthorizeResponse",
    "LinkedInStatusResponse",
    "IngestEngagementRequest",
    "IngestLeadsRequest",
]
