"""Lead lookups and edits scoped to a team."""
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from leadwatch.core.exceptions import LeadNotFoundError
from leadwatch.models.lead import Lead, SourceMode

LIST_LIMIT = 100


def get_lead(db: Session, team_id: int, lead_id: int) -> Lead:
    lead = db.query(Lead).filter(Lead.id == lead_id, Lead.team_id == team_id).first()
    if not lead:
        raise LeadNotFoundError(lead_id)
    return lead


def list_leads(
    db: Session,
    team_id: int,
    source_mode: Optional[SourceMode] = None,
    limit: int = LIST_LIMIT,
) -> List[Lead]:
    query = db.query(Lead).filter(Lead.team_id == team_id)
    if source_mode is not None:
        query = query.filter(Lead.source_mode == source_mode)
    return query.order_by(Lead.created_at.desc(), Lead.id.desc()).limit(limit).all()


def update_lead(db: Session, team_id: int, lead_id: int, updates: Dict[str, Any]) -> Lead:
    lead = get_lead(db, team_id, lead_id)
    for field, value in updates.items():
        setattr(lead, field, value)
    db.commit()
    db.refresh(lead)
    return lead
