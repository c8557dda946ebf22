"""
Campaign management scoped to a team

Linear campaigns hold ordered email blocks. Enrolling a prospect (directly or
through a folder) queues one pending execution per block, and adding a block
queues it for every prospect already enrolled.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from leadwatch.core.exceptions import (
    CampaignNotFoundError,
    DuplicateResourceError,
    FolderNotFoundError,
    ProspectNotFoundError,
    ResourceNotFoundError,
)
from leadwatch.core.logging import setup_logging
from leadwatch.models.campaign import (
    BlockType,
    Campaign,
    CampaignBlock,
    CampaignExecution,
    CampaignFolder,
    CampaignProspect,
    ExecutionStatus,
)
from leadwatch.models.prospect import ProspectCandidate, ProspectFolder

logger = setup_logging(__name__)


def get_campaign(db: Session, team_id: int, campaign_id: int) -> Campaign:
    campaign = (
        db.query(Campaign)
        .filter(Campaign.id == campaign_id, Campaign.team_id == team_id)
        .first()
    )
    if not campaign:
        raise CampaignNotFoundError(campaign_id)
    return campaign


def count_prospects(db: Session, campaign_id: int) -> int:
    return (
        db.query(func.count(CampaignProspect.id))
        .filter(CampaignProspect.campaign_id == campaign_id)
        .scalar()
    )


def list_campaigns(db: Session, team_id: int) -> List[Campaign]:
    return (
        db.query(Campaign)
        .filter(Campaign.team_id == team_id)
        .order_by(Campaign.created_at.desc(), Campaign.id.desc())
        .all()
    )


def create_campaign(
    db: Session,
    team_id: int,
    user_id: int,
    name: str,
    description: Optional[str] = None,
    blocks: Optional[List[Dict[str, Any]]] = None,
) -> Campaign:
    campaign = Campaign(
        team_id=team_id,
        created_by=user_id,
        name=name,
        description=description,
        blocks=blocks or [],
        is_active=True,
    )
    db.add(campaign)
    db.commit()
    db.refresh(campaign)
    logger.info(f"Campaign {campaign.id} created for team {team_id}")
    return campaign


def update_campaign(db: Session, team_id: int, campaign_id: int, updates: Dict[str, Any]) -> Campaign:
    campaign = get_campaign(db, team_id, campaign_id)
    for field, value in updates.items():
        setattr(campaign, field, value)
    db.commit()
    db.refresh(campaign)
    return campaign


def delete_campaign(db: Session, team_id: int, campaign_id: int) -> None:
    campaign = get_campaign(db, team_id, campaign_id)
    db.delete(campaign)
    db.commit()
    logger.info(f"Campaign {campaign_id} deleted for team {team_id}")


# ----------------------------------------------------------------------
# Blocks
# ----------------------------------------------------------------------

def _get_block(db: Session, team_id: int, block_id: int) -> CampaignBlock:
    block = (
        db.query(CampaignBlock)
        .join(Campaign, CampaignBlock.campaign_id == Campaign.id)
        .filter(CampaignBlock.id == block_id, Campaign.team_id == team_id)
        .first()
    )
    if not block:
        raise ResourceNotFoundError(
            f"Block with ID {block_id} not found",
            error_code="BLOCK_NOT_FOUND",
            details={"block_id": block_id},
        )
    return block


def list_blocks(db: Session, team_id: int, campaign_id: int) -> List[CampaignBlock]:
    get_campaign(db, team_id, campaign_id)
    return (
        db.query(CampaignBlock)
        .filter(CampaignBlock.campaign_id == campaign_id)
        .order_by(CampaignBlock.order)
        .all()
    )


def create_email_block(
    db: Session,
    team_id: int,
    campaign_id: int,
    config: Dict[str, Any],
    now: Optional[datetime] = None,
) -> CampaignBlock:
    """Append an email block and queue it for every enrolled prospect."""
    get_campaign(db, team_id, campaign_id)
    now = now or datetime.utcnow()

    max_order = (
        db.query(func.max(CampaignBlock.order))
        .filter(CampaignBlock.campaign_id == campaign_id)
        .scalar()
    )
    block = CampaignBlock(
        campaign_id=campaign_id,
        type=BlockType.EMAIL,
        config=config,
        order=(max_order if max_order is not None else -1) + 1,
    )
    db.add(block)
    db.flush()

    enrolled = db.query(CampaignProspect).filter(CampaignProspect.campaign_id == campaign_id).all()
    for campaign_prospect in enrolled:
        db.add(CampaignExecution(
            campaign_prospect_id=campaign_prospect.id,
            block_id=block.id,
            status=ExecutionStatus.PENDING,
            scheduled_at=now,
        ))

    db.commit()
    db.refresh(block)
    return block


def update_block(db: Session, team_id: int, block_id: int, config: Dict[str, Any]) -> CampaignBlock:
    block = _get_block(db, team_id, block_id)
    block.config = config
    db.commit()
    db.refresh(block)
    return block


def delete_block(db: Session, team_id: int, block_id: int) -> None:
    """Remove a block and close the gap in the ordering."""
    block = _get_block(db, team_id, block_id)
    campaign_id = block.campaign_id
    db.delete(block)
    db.flush()

    remaining = (
        db.query(CampaignBlock)
        .filter(CampaignBlock.campaign_id == campaign_id)
        .order_by(CampaignBlock.order)
        .all()
    )
    for position, remaining_block in enumerate(remaining):
        remaining_block.order = position
    db.commit()


def reorder_blocks(db: Session, team_id: int, campaign_id: int, block_ids: List[int]) -> List[CampaignBlock]:
    """Blocks take the order of ``block_ids``; ids from other campaigns are ignored."""
    get_campaign(db, team_id, campaign_id)
    blocks = {
        block.id: block
        for block in db.query(CampaignBlock).filter(CampaignBlock.campaign_id == campaign_id).all()
    }
    for position, block_id in enumerate(block_ids):
        if block_id in blocks:
            blocks[block_id].order = position
    db.commit()
    return list_blocks(db, team_id, campaign_id)


# ----------------------------------------------------------------------
# Prospects
# ----------------------------------------------------------------------

def _enroll(
    db: Session,
    campaign_id: int,
    prospect_id: int,
    user_id: Optional[int],
    blocks: List[CampaignBlock],
    now: datetime,
) -> CampaignProspect:
    campaign_prospect = CampaignProspect(campaign_id=campaign_id, prospect_id=prospect_id, added_by=user_id)
    db.add(campaign_prospect)
    db.flush()
    for block in blocks:
        db.add(CampaignExecution(
            campaign_prospect_id=campaign_prospect.id,
            block_id=block.id,
            status=ExecutionStatus.PENDING,
            scheduled_at=now,
        ))
    return campaign_prospect


def _find_enrollment(db: Session, campaign_id: int, prospect_id: int) -> Optional[CampaignProspect]:
    return (
        db.query(CampaignProspect)
        .filter(CampaignProspect.campaign_id == campaign_id, CampaignProspect.prospect_id == prospect_id)
        .first()
    )


def add_prospect(
    db: Session,
    team_id: int,
    campaign_id: int,
    prospect_id: int,
    user_id: int,
    now: Optional[datetime] = None,
) -> CampaignProspect:
    get_campaign(db, team_id, campaign_id)
    prospect = (
        db.query(ProspectCandidate)
        .filter(ProspectCandidate.id == prospect_id, ProspectCandidate.team_id == team_id)
        .first()
    )
    if not prospect:
        raise ProspectNotFoundError(prospect_id)
    if _find_enrollment(db, campaign_id, prospect_id):
        raise DuplicateResourceError(
            "Prospect already assigned to this campaign",
            details={"campaign_id": campaign_id, "prospect_id": prospect_id},
        )

    blocks = list_blocks(db, team_id, campaign_id)
    campaign_prospect = _enroll(db, campaign_id, prospect_id, user_id, blocks, now or datetime.utcnow())
    db.commit()
    db.refresh(campaign_prospect)
    return campaign_prospect


def remove_prospect(db: Session, team_id: int, campaign_id: int, prospect_id: int) -> None:
    get_campaign(db, team_id, campaign_id)
    campaign_prospect = _find_enrollment(db, campaign_id, prospect_id)
    if not campaign_prospect:
        raise ProspectNotFoundError(prospect_id)
    db.delete(campaign_prospect)
    db.commit()


def list_campaign_prospects(db: Session, team_id: int, campaign_id: int) -> List[Dict[str, Any]]:
    """Enrolled prospects with their execution counts per status."""
    get_campaign(db, team_id, campaign_id)
    enrolled = (
        db.query(CampaignProspect)
        .filter(CampaignProspect.campaign_id == campaign_id)
        .order_by(CampaignProspect.added_at, CampaignProspect.id)
        .all()
    )

    rows = []
    for campaign_prospect in enrolled:
        stats = {status.value: 0 for status in ExecutionStatus}
        for execution in campaign_prospect.executions:
            stats[execution.status.value] += 1

        prospect = campaign_prospect.prospect
        rows.append({
            "id": prospect.id,
            "name": prospect.name,
            "title": prospect.title,
            "company": prospect.company,
            "email": prospect.email,
            "execution_stats": stats,
        })
    return rows


# ----------------------------------------------------------------------
# Folders
# ----------------------------------------------------------------------

def list_campaign_folders(db: Session, team_id: int, campaign_id: int) -> List[ProspectFolder]:
    campaign = get_campaign(db, team_id, campaign_id)
    return [link.folder for link in campaign.folders]


def assign_folder(
    db: Session,
    team_id: int,
    campaign_id: int,
    folder_id: int,
    assign: bool = True,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Attach (or detach) a prospect folder.

    Attaching enrolls every team prospect of the folder that is not in the
    campaign yet. Detaching leaves enrolled prospects in place.
    """
    get_campaign(db, team_id, campaign_id)
    folder = (
        db.query(ProspectFolder)
        .filter(ProspectFolder.id == folder_id, ProspectFolder.team_id == team_id)
        .first()
    )
    if not folder:
        raise FolderNotFoundError(folder_id)

    link = (
        db.query(CampaignFolder)
        .filter(CampaignFolder.campaign_id == campaign_id, CampaignFolder.folder_id == folder_id)
        .first()
    )

    if not assign:
        if link:
            db.delete(link)
            db.commit()
        return {"success": True, "prospect_count": 0}

    if link is None:
        db.add(CampaignFolder(campaign_id=campaign_id, folder_id=folder_id))

    now = now or datetime.utcnow()
    blocks = list_blocks(db, team_id, campaign_id)
    prospects = (
        db.query(ProspectCandidate)
        .filter(ProspectCandidate.folder_id == folder_id, ProspectCandidate.team_id == team_id)
        .all()
    )

    added = 0
    for prospect in prospects:
        if _find_enrollment(db, campaign_id, prospect.id):
            continue
        _enroll(db, campaign_id, prospect.id, None, blocks, now)
        added += 1

    db.commit()
    logger.info(f"Folder {folder_id} assigned to campaign {campaign_id}: {added} prospects enrolled")
    return {"success": True, "prospect_count": added}
