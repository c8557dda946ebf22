"""
Campaign models

Two execution models live side by side:

- Linear campaigns: ordered ``campaign_blocks``; every prospect gets one
  ``campaign_executions`` row per block, picked up by the execute-campaigns cron.
- Workflow campaigns: a graph of ``workflow_nodes`` joined by ``workflow_edges``
  (condition nodes branch on the ``yes`` / ``no`` source handles). Each prospect
  walks the graph through its ``workflow_prospect_state`` row, advanced by the
  process-workflows cron.
"""
from datetime import datetime
from enum import Enum

from sqlalchemy import (
    Column, Integer, String, Text, DateTime, JSON, Boolean, ForeignKey, Index, UniqueConstraint
)
from sqlalchemy.orm import relationship

from leadwatch.models.database import Base, str_enum


class BlockType(str, Enum):
    EMAIL = "email"


class ExecutionStatus(str, Enum):
    PENDING = "pending"
    DONE = "done"
    FAILED = "failed"


class NodeType(str, Enum):
    START = "start"
    EMAIL = "email"
    CALL = "call"
    TASK = "task"
    CONDITION = "condition"
    DELAY = "delay"
    WAIT_UNTIL = "waitUntil"
    TIME_SLOT = "timeSlot"
    VISIT_LINKEDIN = "visitLinkedIn"
    ADD_CONNECTION = "addConnection"
    LINKEDIN_MESSAGE = "linkedInMessage"
    TRANSFER = "transfer"


class WorkflowStatus(str, Enum):
    """Prospect position in a workflow: waiting (timer) | ready -> executing -> completed"""
    WAITING = "waiting"
    READY = "ready"
    EXECUTING = "executing"
    COMPLETED = "completed"


class Campaign(Base):
    __tablename__ = "campaigns"

    id = Column(Integer, primary_key=True, index=True)
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text)
    blocks = Column(JSON, default=list, nullable=False)  # builder draft, not executed
    is_active = Column(Boolean, default=True, nullable=False)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    campaign_blocks = relationship(
        "CampaignBlock",
        back_populates="campaign",
        cascade="all, delete-orphan",
        order_by="CampaignBlock.order",
    )
    prospects = relationship("CampaignProspect", back_populates="campaign", cascade="all, delete-orphan")
    folders = relationship("CampaignFolder", cascade="all, delete-orphan")
    nodes = relationship("WorkflowNode", back_populates="campaign", cascade="all, delete-orphan")
    edges = relationship("WorkflowEdge", cascade="all, delete-orphan")


class CampaignBlock(Base):
    __tablename__ = "campaign_blocks"

    id = Column(Integer, primary_key=True, index=True)
    campaign_id = Column(Integer, ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(str_enum(BlockType), nullable=False)
    config = Column(JSON, nullable=False)  # email: {subject, body}
    order = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    campaign = relationship("Campaign", back_populates="campaign_blocks")
    executions = relationship("CampaignExecution", back_populates="block", cascade="all, delete-orphan")


class CampaignProspect(Base):
    __tablename__ = "campaign_prospects"

    id = Column(Integer, primary_key=True, index=True)
    campaign_id = Column(Integer, ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False, index=True)
    prospect_id = Column(
        Integer, ForeignKey("prospect_candidates.id", ondelete="CASCADE"), nullable=False, index=True
    )
    added_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    added_by = Column(Integer, ForeignKey("users.id"))  # NULL when added through a folder

    campaign = relationship("Campaign", back_populates="prospects")
    prospect = relationship("ProspectCandidate")
    executions = relationship("CampaignExecution", back_populates="campaign_prospect", cascade="all, delete-orphan")
    workflow_state = relationship(
        "WorkflowProspectState", back_populates="campaign_prospect", uselist=False, cascade="all, delete-orphan"
    )

    __table_args__ = (
        UniqueConstraint("campaign_id", "prospect_id", name="uq_campaign_prospects_campaign_prospect"),
    )


class CampaignExecution(Base):
    """One block to run for one prospect"""
    __tablename__ = "campaign_executions"

    id = Column(Integer, primary_key=True, index=True)
    campaign_prospect_id = Column(
        Integer, ForeignKey("campaign_prospects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    block_id = Column(Integer, ForeignKey("campaign_blocks.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(str_enum(ExecutionStatus, length=20), default=ExecutionStatus.PENDING, nullable=False)
    scheduled_at = Column(DateTime, nullable=False)
    executed_at = Column(DateTime)
    error = Column(Text)
    result = Column(JSON)

    campaign_prospect = relationship("CampaignProspect", back_populates="executions")
    block = relationship("CampaignBlock", back_populates="executions")

    __table_args__ = (
        Index("idx_campaign_executions_status_scheduled", "status", "scheduled_at"),
    )


class CampaignFolder(Base):
    """Prospect folder attached to a campaign; its prospects are enrolled on assignment"""
    __tablename__ = "campaign_folders"

    id = Column(Integer, primary_key=True, index=True)
    campaign_id = Column(Integer, ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False, index=True)
    folder_id = Column(Integer, ForeignKey("prospect_folders.id", ondelete="CASCADE"), nullable=False)
    added_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    folder = relationship("ProspectFolder")

    __table_args__ = (
        UniqueConstraint("campaign_id", "folder_id", name="uq_campaign_folders_campaign_folder"),
    )


class WorkflowNode(Base):
    __tablename__ = "workflow_nodes"

    id = Column(Integer, primary_key=True, index=True)
    campaign_id = Column(Integer, ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(str_enum(NodeType), nullable=False)
    config = Column(JSON, default=dict, nullable=False)
    position_x = Column(Integer, default=0, nullable=False)
    position_y = Column(Integer, default=0, nullable=False)
    node_metadata = Column("metadata", JSON)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    campaign = relationship("Campaign", back_populates="nodes")


class WorkflowEdge(Base):
    __tablename__ = "workflow_edges"

    id = Column(Integer, primary_key=True, index=True)
    campaign_id = Column(Integer, ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False, index=True)
    source_node_id = Column(Integer, ForeignKey("workflow_nodes.id", ondelete="CASCADE"), nullable=False, index=True)
    target_node_id = Column(Integer, ForeignKey("workflow_nodes.id", ondelete="CASCADE"), nullable=False)
    source_handle = Column(String(20))  # "yes" / "no" out of a condition node, NULL otherwise
    label = Column(String(50))
    condition_type = Column(String(50))
    condition_value = Column(JSON)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class WorkflowProspectState(Base):
    __tablename__ = "workflow_prospect_state"

    id = Column(Integer, primary_key=True, index=True)
    campaign_prospect_id = Column(
        Integer, ForeignKey("campaign_prospects.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    current_node_id = Column(Integer, ForeignKey("workflow_nodes.id", ondelete="SET NULL"))
    status = Column(str_enum(WorkflowStatus, length=20), default=WorkflowStatus.WAITING, nullable=False)
    scheduled_for = Column(DateTime)
    last_executed_at = Column(DateTime)
    completed_at = Column(DateTime)
    error = Column(Text)
    state_metadata = Column("metadata", JSON)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    campaign_prospect = relationship("CampaignProspect", back_populates="workflow_state")
    current_node = relationship("WorkflowNode")

    __table_args__ = (
        Index("idx_workflow_prospect_state_status_scheduled", "status", "scheduled_for"),
    )
