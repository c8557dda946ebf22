"""
Pydantic schemas for campaigns, workflow graphs and the Gmail integration
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

from leadwatch.models.campaign import BlockType, NodeType


class CampaignCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    blocks: List[Dict[str, Any]] = Field(default_factory=list)


class CampaignUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    blocks: Optional[List[Dict[str, Any]]] = None
    is_active: Optional[bool] = None


class CampaignResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    blocks: List[Dict[str, Any]] = []
    is_active: bool
    prospect_count: int = 0
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class EmailBlockConfig(BaseModel):
    subject: str = Field(..., min_length=1)
    body: str = Field(..., min_length=1)


class BlockResponse(BaseModel):
    id: int
    campaign_id: int
    type: BlockType
    config: Dict[str, Any]
    order: int

    model_config = {"from_attributes": True}


class BlockReorderRequest(BaseModel):
    block_ids: List[int] = Field(..., min_length=1)

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CampaignProspectAdd(BaseModel):
    prospect_id: int

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ExecutionStats(BaseModel):
    pending: int = 0
    done: int = 0
    failed: int = 0


class CampaignProspectResponse(BaseModel):
    id: int
    name: Optional[str] = None
    title: Optional[str] = None
    company: Optional[str] = None
    email: Optional[str] = None
    execution_stats: ExecutionStats


class FolderAssignRequest(BaseModel):
    folder_id: int
    assign: bool = True

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FolderAssignResponse(BaseModel):
    success: bool = True
    prospect_count: int


class CampaignFolderResponse(BaseModel):
    id: int
    name: str
    color: str
    icon: str

    model_config = {"from_attributes": True}


class NodeCreate(BaseModel):
    type: NodeType
    config: Dict[str, Any] = Field(default_factory=dict)
    position_x: int = 0
    position_y: int = 0

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class NodeUpdate(BaseModel):
    config: Dict[str, Any]
    position_x: Optional[int] = None
    position_y: Optional[int] = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class NodeResponse(BaseModel):
    id: int
    campaign_id: int
    type: NodeType
    config: Dict[str, Any]
    position_x: int
    position_y: int

    model_config = {"from_attributes": True}


class NodePosition(BaseModel):
    id: int
    x: int
    y: int


class NodePositionsUpdate(BaseModel):
    positions: List[NodePosition] = Field(..., min_length=1)


class EdgeCreate(BaseModel):
    source_node_id: int
    target_node_id: int
    source_handle: Optional[str] = None
    label: Optional[str] = None
    condition_type: Optional[str] = None
    condition_value: Any = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class EdgeResponse(BaseModel):
    id: int
    campaign_id: int
    source_node_id: int
    target_node_id: int
    source_handle: Optional[str] = None
    label: Optional[str] = None
    condition_type: Optional[str] = None
    condition_value: Any = None

    model_config = {"from_attributes": True}


class WorkflowResponse(BaseModel):
    nodes: List[NodeResponse]
    edges: List[EdgeResponse]


class ExecutionPlanStep(BaseModel):
    step: int
    node_id: int
    type: str
    config: Dict[str, Any]
    path: str


class CampaignStartResponse(BaseModel):
    success: bool = True
    message: str
    prospect_count: int
    execution_plan: List[ExecutionPlanStep]


class GmailAuthorizeResponse(BaseModel):
    auth_url: str
    state: str


class GmailSendRequest(BaseModel):
    to: EmailStr
    subject: str = Field(..., min_length=1)
    body: str = Field(..., min_length=1)


class GmailStatusResponse(BaseModel):
    is_connected: bool
    google_email: Optional[str] = None
    connected_at: Optional[datetime] = None
    connected_by: Optional[str] = None
    expires_at: Optional[datetime] = None
    last_refreshed_at: Optional[datetime] = None
    is_expiring_soon: bool = False
