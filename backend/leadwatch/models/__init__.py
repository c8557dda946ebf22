"""
Database models for the LeadWatch application
"""
from .database import Base, get_db, engine, SessionLocal
from .tenancy import Team, User, TeamMember, TeamRole
from .lead import Lead, LeadStatus, SourceMode, EngagementType
from .prospect import (
    ProspectFolder,
    ProspectCandidate,
    ProspectStatus,
    ProspectSource,
    ProspectAction,
)
from .monitoring import (
    WebhookAccount,
    MonitoredCompany,
    CompanyPost,
    LeadCollectionConfig,
    ScheduledCollection,
    ProfileType,
    CollectionStatus,
)
from .outreach import (
    ICPProfile,
    Message,
    MessageStatus,
    MessageChannel,
    LinkedInPost,
    PostType,
    PostStatus,
)
from .integration import ApiKey, LinkedInOAuthCredential, GmailConnection, OAuthState
from .campaign import (
    Campaign,
    CampaignBlock,
    CampaignProspect,
    CampaignExecution,
    CampaignFolder,
    WorkflowNode,
    WorkflowEdge,
    WorkflowProspectState,
    BlockType,
    ExecutionStatus,
    NodeType,
    WorkflowStatus,
)

__all__ = [
    "Base",
    "get_db",
    "engine",
    "SessionLocal",
    "Team",
    "User",
    "TeamMember",
    "TeamRole",
    "Lead",
    "LeadStatus",
    "SourceMode",
    "EngagementType",
    "ProspectFolder",
    "ProspectCandidate",
    "ProspectStatus",
    "ProspectSource",
    "ProspectAction",
    "WebhookAccount",
    "MonitoredCompany",
    "CompanyPost",
    "LeadCollectionConfig",
    "ScheduledCollection",
    "ProfileType",
    "CollectionStatus",
    "ICPProfile",
    "Message",
    "MessageStatus",
    "MessageChannel",
    "LinkedInPost",
    "PostType",
    "PostStatus",
    "ApiKey",
    "LinkedInOAuthCredential",
    "GmailConnection",
    "OAuthState",
    "Campaign",
    "CampaignBlock",
    "CampaignProspect",
    "CampaignExecution",
    "CampaignFolder",
    "WorkflowNode",
    "WorkflowEdge",
    "WorkflowProspectState",
    "BlockType",
    "ExecutionStatus",
    "NodeType",
    "WorkflowStatus",
]
