"""
Advance prospects through workflow graphs

Each run picks the prospects whose node is due, executes that node and moves
them along the outgoing edge. Condition nodes follow their ``yes`` / ``no``
edge; a node with no outgoing edge completes the prospect's workflow.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from leadwatch.core.logging import setup_logging
from leadwatch.models.campaign import CampaignProspect, NodeType, WorkflowNode
from leadwatch.services.workflow_state import (
    get_next_nodes,
    get_prospects_ready_to_execute,
    mark_prospect_executing,
    move_prospect_to_next_node,
    record_prospect_error,
)
from leadwatch.services.workflow_timing import is_timing_node

logger = setup_logging(__name__)

DEFAULT_CONDITION_FIELD = "email"


@dataclass
class NodeResult:
    success: bool
    next_handle: Optional[str] = None
    error: Optional[str] = None


def evaluate_condition(node: WorkflowNode, campaign_prospect: CampaignProspect) -> str:
    """``yes`` when the configured prospect field is filled in, ``no`` otherwise."""
    field = (node.config or {}).get("field") or DEFAULT_CONDITION_FIELD
    value = getattr(campaign_prospect.prospect, field, None)
    return "yes" if value else "no"


def execute_node(node: WorkflowNode, campaign_prospect: CampaignProspect) -> NodeResult:
    if node.type == NodeType.START or is_timing_node(node.type):
        return NodeResult(success=True)

    if node.type == NodeType.CONDITION:
        return NodeResult(success=True, next_handle=evaluate_condition(node, campaign_prospect))

    if node.type in (
        NodeType.EMAIL,
        NodeType.CALL,
        NodeType.TASK,
        NodeType.VISIT_LINKEDIN,
        NodeType.ADD_CONNECTION,
        NodeType.LINKEDIN_MESSAGE,
        NodeType.TRANSFER,
    ):
        # Actions are recorded here; emails are delivered through campaign blocks.
        logger.info(
            f"Workflow action {node.type.value} for prospect {campaign_prospect.prospect_id} (node {node.id})"
        )
        return NodeResult(success=True)

    return NodeResult(success=False, error=f"Unknown node type: {node.type}")


def process_ready_prospects(
    db: Session,
    now: Optional[datetime] = None,
    limit: Optional[int] = None,
) -> int:
    """Run every due prospect one node forward. Returns how many were processed."""
    now = now or datetime.utcnow()
    ready = get_prospects_ready_to_execute(db, now, limit)
    processed = 0

    for state, node, campaign_prospect in ready:
        state_id = state.id
        try:
            mark_prospect_executing(db, state_id)
            result = execute_node(node, campaign_prospect)

            next_ids = get_next_nodes(db, node.id, result.next_handle)
            state = move_prospect_to_next_node(db, state_id, next_ids[0] if next_ids else None, now)
            if not result.success:
                state.error = result.error
                db.commit()
            processed += 1

        except Exception as e:
            db.rollback()
            logger.error(f"Error processing workflow state {state_id}: {e}")
            record_prospect_error(db, state_id, str(e))

    if processed:
        logger.info(f"Processed {processed} workflow prospects")
    return processed
