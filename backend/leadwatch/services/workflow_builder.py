"""
Workflow graph editing and campaign start

Nodes and edges always belong to one campaign of the team. Starting a
campaign places every enrolled prospect on the start node; the
process-workflows cron moves them along from there.
"""
from collections import deque
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from leadwatch.core.exceptions import ResourceNotFoundError, ValidationError
from leadwatch.core.logging import setup_logging
from leadwatch.models.campaign import (
    Campaign,
    CampaignBlock,
    CampaignProspect,
    NodeType,
    WorkflowEdge,
    WorkflowNode,
    WorkflowProspectState,
)
from leadwatch.services.campaigns import get_campaign
from leadwatch.services.workflow_state import initialize_prospect_workflow

logger = setup_logging(__name__)

CONDITION_HANDLES = ("yes", "no")
MIGRATION_X = 250
MIGRATION_START_Y = 50
MIGRATION_FIRST_Y = 150
MIGRATION_STEP_Y = 120


def _node_not_found(node_id: int) -> ResourceNotFoundError:
    return ResourceNotFoundError(
        f"Node with ID {node_id} not found",
        error_code="WORKFLOW_NODE_NOT_FOUND",
        details={"node_id": node_id},
    )


def _get_node(db: Session, team_id: int, node_id: int, campaign_id: Optional[int] = None) -> WorkflowNode:
    query = (
        db.query(WorkflowNode)
        .join(Campaign, WorkflowNode.campaign_id == Campaign.id)
        .filter(WorkflowNode.id == node_id, Campaign.team_id == team_id)
    )
    if campaign_id is not None:
        query = query.filter(WorkflowNode.campaign_id == campaign_id)
    node = query.first()
    if not node:
        raise _node_not_found(node_id)
    return node


def get_workflow(db: Session, team_id: int, campaign_id: int) -> Dict[str, List[Any]]:
    get_campaign(db, team_id, campaign_id)
    nodes = db.query(WorkflowNode).filter(WorkflowNode.campaign_id == campaign_id).order_by(WorkflowNode.id).all()
    edges = db.query(WorkflowEdge).filter(WorkflowEdge.campaign_id == campaign_id).order_by(WorkflowEdge.id).all()
    return {"nodes": nodes, "edges": edges}


def create_node(
    db: Session,
    team_id: int,
    campaign_id: int,
    node_type: NodeType,
    config: Optional[Dict[str, Any]] = None,
    position_x: int = 0,
    position_y: int = 0,
) -> WorkflowNode:
    get_campaign(db, team_id, campaign_id)
    node = WorkflowNode(
        campaign_id=campaign_id,
        type=node_type,
        config=config or {},
        position_x=position_x,
        position_y=position_y,
    )
    db.add(node)
    db.commit()
    db.refresh(node)
    return node


def update_node(
    db: Session,
    team_id: int,
    node_id: int,
    config: Dict[str, Any],
    position_x: Optional[int] = None,
    position_y: Optional[int] = None,
) -> WorkflowNode:
    node = _get_node(db, team_id, node_id)
    node.config = config
    if position_x is not None:
        node.position_x = position_x
    if position_y is not None:
        node.position_y = position_y
    db.commit()
    db.refresh(node)
    return node


def update_node_positions(db: Session, team_id: int, positions: List[Dict[str, int]]) -> int:
    """Move nodes in bulk; nodes of other teams are skipped. Returns the number moved."""
    moved = 0
    for position in positions:
        node = (
            db.query(WorkflowNode)
            .join(Campaign, WorkflowNode.campaign_id == Campaign.id)
            .filter(WorkflowNode.id == position["id"], Campaign.team_id == team_id)
            .first()
        )
        if node is None:
            continue
        node.position_x = position["x"]
        node.position_y = position["y"]
        moved += 1
    db.commit()
    return moved


def delete_node(db: Session, team_id: int, node_id: int) -> None:
    """Delete a node with its edges; prospects sitting on it lose their position."""
    node = _get_node(db, team_id, node_id)
    db.query(WorkflowEdge).filter(
        or_(WorkflowEdge.source_node_id == node_id, WorkflowEdge.target_node_id == node_id)
    ).delete(synchronize_session=False)
    db.query(WorkflowProspectState).filter(WorkflowProspectState.current_node_id == node_id).update(
        {WorkflowProspectState.current_node_id: None}, synchronize_session=False
    )
    db.delete(node)
    db.commit()


def create_edge(
    db: Session,
    team_id: int,
    campaign_id: int,
    source_node_id: int,
    target_node_id: int,
    source_handle: Optional[str] = None,
    label: Optional[str] = None,
    condition_type: Optional[str] = None,
    condition_value: Any = None,
) -> WorkflowEdge:
    get_campaign(db, team_id, campaign_id)
    source = _get_node(db, team_id, source_node_id, campaign_id)
    _get_node(db, team_id, target_node_id, campaign_id)

    if source.type == NodeType.CONDITION and source_handle not in CONDITION_HANDLES:
        raise ValidationError(
            "Edges leaving a condition node need a 'yes' or 'no' handle",
            error_code="INVALID_SOURCE_HANDLE",
            details={"source_handle": source_handle},
        )

    edge = WorkflowEdge(
        campaign_id=campaign_id,
        source_node_id=source_node_id,
        target_node_id=target_node_id,
        source_handle=source_handle,
        label=label,
        condition_type=condition_type,
        condition_value=condition_value,
    )
    db.add(edge)
    db.commit()
    db.refresh(edge)
    return edge


def delete_edge(db: Session, team_id: int, edge_id: int) -> None:
    edge = (
        db.query(WorkflowEdge)
        .join(Campaign, WorkflowEdge.campaign_id == Campaign.id)
        .filter(WorkflowEdge.id == edge_id, Campaign.team_id == team_id)
        .first()
    )
    if not edge:
        raise ResourceNotFoundError(
            f"Edge with ID {edge_id} not found",
            error_code="WORKFLOW_EDGE_NOT_FOUND",
            details={"edge_id": edge_id},
        )
    db.delete(edge)
    db.commit()


def migrate_blocks_to_workflow(db: Session, team_id: int, campaign_id: int) -> Dict[str, Any]:
    """
    Turn a linear campaign into a workflow: a start node followed by one node
    per block, chained in block order. Campaigns that already have nodes are
    left alone.
    """
    get_campaign(db, team_id, campaign_id)
    if db.query(WorkflowNode.id).filter(WorkflowNode.campaign_id == campaign_id).first():
        return {"migrated": False, "node_count": 0}

    start = WorkflowNode(
        campaign_id=campaign_id,
        type=NodeType.START,
        config={},
        position_x=MIGRATION_X,
        position_y=MIGRATION_START_Y,
    )
    db.add(start)
    db.flush()

    blocks = (
        db.query(CampaignBlock)
        .filter(CampaignBlock.campaign_id == campaign_id)
        .order_by(CampaignBlock.order)
        .all()
    )
    previous_id = start.id
    y = MIGRATION_FIRST_Y
    for block in blocks:
        node = WorkflowNode(
            campaign_id=campaign_id,
            type=NodeType(block.type.value),
            config=block.config,
            position_x=MIGRATION_X,
            position_y=y,
        )
        db.add(node)
        db.flush()
        db.add(WorkflowEdge(campaign_id=campaign_id, source_node_id=previous_id, target_node_id=node.id))
        previous_id = node.id
        y += MIGRATION_STEP_Y

    db.commit()
    logger.info(f"Campaign {campaign_id} migrated to a workflow with {len(blocks) + 1} nodes")
    return {"migrated": True, "node_count": len(blocks) + 1, "start_node_id": start.id}


def build_execution_plan(
    start_node: WorkflowNode,
    nodes: List[WorkflowNode],
    edges: List[WorkflowEdge],
) -> List[Dict[str, Any]]:
    """
    Breadth-first walk from the start node. Each step carries the branch it
    sits on: ``main``, extended with ``/yes`` or ``/no`` past condition nodes.
    """
    by_id = {node.id: node for node in nodes}
    plan: List[Dict[str, Any]] = []
    visited = set()
    queue = deque([(start_node.id, "main")])

    while queue:
        node_id, path = queue.popleft()
        if node_id in visited:
            continue
        visited.add(node_id)

        node = by_id.get(node_id)
        if node is None:
            continue

        plan.append({
            "step": len(plan) + 1,
            "node_id": node.id,
            "type": getattr(node.type, "value", node.type),
            "config": node.config,
            "path": path,
        })

        for edge in edges:
            if edge.source_node_id != node_id:
                continue
            next_path = f"{path}/{edge.source_handle}" if edge.source_handle in CONDITION_HANDLES else path
            queue.append((edge.target_node_id, next_path))

    return plan


def start_campaign_execution(
    db: Session,
    team_id: int,
    campaign_id: int,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Put every enrolled prospect on the start node and return the execution plan."""
    get_campaign(db, team_id, campaign_id)
    workflow = get_workflow(db, team_id, campaign_id)

    start_node = next((node for node in workflow["nodes"] if node.type == NodeType.START), None)
    if start_node is None:
        raise ValidationError("No start node found", error_code="WORKFLOW_START_NODE_MISSING")

    enrolled = db.query(CampaignProspect).filter(CampaignProspect.campaign_id == campaign_id).all()
    if not enrolled:
        raise ValidationError("No prospect assigned to this campaign", error_code="CAMPAIGN_HAS_NO_PROSPECTS")

    for campaign_prospect in enrolled:
        initialize_prospect_workflow(db, campaign_prospect.id, start_node.id, now)

    plan = build_execution_plan(start_node, workflow["nodes"], workflow["edges"])
    logger.info(f"Campaign {campaign_id} started for {len(enrolled)} prospects")
    return {
        "success": True,
        "message": f"Campaign started for {len(enrolled)} prospect(s)",
        "prospect_count": len(enrolled),
        "execution_plan": plan,
    }
