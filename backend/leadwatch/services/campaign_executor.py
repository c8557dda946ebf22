"""
Execute due campaign blocks

Runs every pending ``campaign_executions`` row whose time has come. Email
blocks go out through the team's Gmail connection; each row ends up ``done``
or ``failed`` with the error kept on it.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from leadwatch.core.config import settings
from leadwatch.core.logging import setup_logging
from leadwatch.models.campaign import (
    BlockType,
    Campaign,
    CampaignBlock,
    CampaignExecution,
    CampaignProspect,
    ExecutionStatus,
)
from leadwatch.services.campaign_email import EmailService

logger = setup_logging(__name__)


def get_pending_executions(db: Session, now: datetime, limit: int) -> List[CampaignExecution]:
    return (
        db.query(CampaignExecution)
        .join(CampaignBlock, CampaignExecution.block_id == CampaignBlock.id)
        .join(CampaignProspect, CampaignExecution.campaign_prospect_id == CampaignProspect.id)
        .join(Campaign, CampaignProspect.campaign_id == Campaign.id)
        .filter(
            CampaignExecution.status == ExecutionStatus.PENDING,
            CampaignExecution.scheduled_at <= now,
            Campaign.is_active.is_(True),
        )
        .order_by(CampaignExecution.scheduled_at, CampaignExecution.id)
        .limit(limit)
        .all()
    )


async def execute_pending_campaigns(
    db: Session,
    email_service: Optional[EmailService] = None,
    now: Optional[datetime] = None,
    limit: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Run one batch of due executions.

    Returns ``{"total", "processed", "failed"}`` plus ``"errors"`` when at
    least one execution failed.
    """
    email_service = email_service or EmailService()
    now = now or datetime.utcnow()
    executions = get_pending_executions(db, now, limit or settings.CAMPAIGN_BATCH_SIZE)

    processed = 0
    failed = 0
    errors: List[str] = []

    for execution in executions:
        block = execution.block
        campaign_prospect = execution.campaign_prospect

        if block.type == BlockType.EMAIL:
            result = await email_service.send_campaign_email(
                db,
                campaign_prospect.campaign.team_id,
                campaign_prospect.prospect_id,
                block.config,
            )
        else:
            result = {"success": False, "error": f"Unsupported block type: {block.type}"}

        if result["success"]:
            execution.status = ExecutionStatus.DONE
            execution.executed_at = datetime.utcnow()
            execution.result = {"sentAt": execution.executed_at.isoformat()}
            processed += 1
        else:
            execution.status = ExecutionStatus.FAILED
            execution.error = result["error"]
            errors.append(f"Execution {execution.id}: {result['error']}")
            failed += 1
        db.commit()

    logger.info(f"Campaign executions: {processed} done, {failed} failed out of {len(executions)}")

    summary: Dict[str, Any] = {"total": len(executions), "processed": processed, "failed": failed}
    if errors:
        summary["errors"] = errors
    return summary
