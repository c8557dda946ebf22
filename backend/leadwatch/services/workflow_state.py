"""
Prospect position inside a workflow graph

One ``WorkflowProspectState`` row per enrolled prospect records the node it
sits on and when it may run next.
"""
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.orm import Session

from leadwatch.core.exceptions import ResourceNotFoundError
from leadwatch.core.logging import setup_logging
from leadwatch.models.campaign import (
    CampaignProspect,
    WorkflowEdge,
    WorkflowNode,
    WorkflowProspectState,
    WorkflowStatus,
)
from leadwatch.services.workflow_timing import calculate_next_scheduled_time, is_timing_node

logger = setup_logging(__name__)

RUNNABLE_STATUSES = (WorkflowStatus.READY, WorkflowStatus.WAITING)


def get_prospect_state(db: Session, campaign_prospect_id: int) -> Optional[WorkflowProspectState]:
    return (
        db.query(WorkflowProspectState)
        .filter(WorkflowProspectState.campaign_prospect_id == campaign_prospect_id)
        .first()
    )


def initialize_prospect_workflow(
    db: Session,
    campaign_prospect_id: int,
    start_node_id: int,
    now: Optional[datetime] = None,
) -> WorkflowProspectState:
    """Place the prospect on the start node; an existing state is returned untouched."""
    existing = get_prospect_state(db, campaign_prospect_id)
    if existing is not None:
        return existing

    state = WorkflowProspectState(
        campaign_prospect_id=campaign_prospect_id,
        current_node_id=start_node_id,
        status=WorkflowStatus.READY,
        scheduled_for=now or datetime.utcnow(),
    )
    db.add(state)
    db.commit()
    db.refresh(state)
    return state


def move_prospect_to_next_node(
    db: Session,
    state_id: int,
    next_node_id: Optional[int],
    now: Optional[datetime] = None,
) -> WorkflowProspectState:
    """
    Advance a prospect; ``None`` completes the workflow.

    Entering a timing node parks the prospect as ``waiting`` until the node's
    scheduled time, any other node makes it ``ready`` immediately.
    """
    now = now or datetime.utcnow()
    state = db.get(WorkflowProspectState, state_id)

    if next_node_id is None:
        state.status = WorkflowStatus.COMPLETED
        state.completed_at = now
        state.current_node_id = None
        db.commit()
        return state

    next_node = db.get(WorkflowNode, next_node_id)
    if next_node is None:
        raise ResourceNotFoundError(
            f"Node {next_node_id} not found",
            error_code="WORKFLOW_NODE_NOT_FOUND",
            details={"node_id": next_node_id},
        )

    if is_timing_node(next_node.type):
        state.scheduled_for = calculate_next_scheduled_time(next_node, now)
        state.status = WorkflowStatus.WAITING
    else:
        state.scheduled_for = now
        state.status = WorkflowStatus.READY

    state.current_node_id = next_node_id
    state.last_executed_at = now
    db.commit()
    return state


def get_prospects_ready_to_execute(
    db: Session,
    now: Optional[datetime] = None,
    limit: Optional[int] = None,
) -> List[Tuple[WorkflowProspectState, WorkflowNode, CampaignProspect]]:
    now = now or datetime.utcnow()
    query = (
        db.query(WorkflowProspectState, WorkflowNode, CampaignProspect)
        .join(WorkflowNode, WorkflowProspectState.current_node_id == WorkflowNode.id)
        .join(CampaignProspect, WorkflowProspectState.campaign_prospect_id == CampaignProspect.id)
        .filter(
            WorkflowProspectState.status.in_(RUNNABLE_STATUSES),
            or_(WorkflowProspectState.scheduled_for.is_(None), WorkflowProspectState.scheduled_for <= now),
        )
        .order_by(WorkflowProspectState.scheduled_for, WorkflowProspectState.id)
    )
    if limit is not None:
        query = query.limit(limit)
    return query.all()


def mark_prospect_executing(db: Session, state_id: int) -> None:
    db.query(WorkflowProspectState).filter(WorkflowProspectState.id == state_id).update(
        {WorkflowProspectState.status: WorkflowStatus.EXECUTING, WorkflowProspectState.updated_at: datetime.utcnow()},
        synchronize_session="fetch",
    )
    db.commit()


def get_next_nodes(db: Session, current_node_id: int, source_handle: Optional[str] = None) -> List[int]:
    """Targets of the node's outgoing edges: the given handle, or the unlabelled ones."""
    query = db.query(WorkflowEdge.target_node_id).filter(WorkflowEdge.source_node_id == current_node_id)
    if source_handle:
        query = query.filter(WorkflowEdge.source_handle == source_handle)
    else:
        query = query.filter(or_(WorkflowEdge.source_handle.is_(None), WorkflowEdge.source_handle == ""))
    return [target_id for (target_id,) in query.order_by(WorkflowEdge.id).all()]


def record_prospect_error(db: Session, state_id: int, error: str) -> None:
    """Keep the prospect on its node, ready to be retried on the next run."""
    db.query(WorkflowProspectState).filter(WorkflowProspectState.id == state_id).update(
        {
            WorkflowProspectState.status: WorkflowStatus.READY,
            WorkflowProspectState.error: error,
            WorkflowProspectState.updated_at: datetime.utcnow(),
        },
        synchronize_session="fetch",
    )
    db.commit()
    logger.warning(f"Workflow state {state_id} failed: {error}")
