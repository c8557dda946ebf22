"""
Lead API endpoints
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from leadwatch.core.logging import setup_logging
from leadwatch.dependencies import get_current_team, get_linkup_client
from leadwatch.models import SourceMode, Team, get_db
from leadwatch.schemas.lead import (
    BatchScoreRequest,
    BatchScoreResponse,
    ICPCriteria,
    ImportFromPostRequest,
    ImportFromPostResponse,
    LeadDetailResponse,
    LeadResponse,
    LeadScoreRequest,
    LeadScoreResponse,
    LeadUpdate,
)
from leadwatch.services.icp import criteria_from_profile, get_latest_icp
from leadwatch.services.lead_import import import_leads_from_post
from leadwatch.services.lead_scoring import LeadScoringService, get_score_label
from leadwatch.services.leads import get_lead, list_leads, update_lead
from leadwatch.services.linkup_client import LinkUpClient

logger = setup_logging(__name__)

router = APIRouter(prefix="/leads", tags=["leads"])

scoring_service = LeadScoringService()


def _resolve_icp(db: Session, team_id: int, criteria: Optional[ICPCriteria]) -> Optional[ICPCriteria]:
    """Explicit criteria win; otherwise fall back to the team's saved ICP."""
    if criteria is not None:
        return criteria
    return criteria_from_profile(get_latest_icp(db, team_id))


@router.get("", response_model=List[LeadResponse])
async def get_leads(
    source_mode: Optional[SourceMode] = None,
    limit: int = Query(100, ge=1, le=500),
    team: Team = Depends(get_current_team),
    db: Session = Depends(get_db),
):
    return list_leads(db, team.id, source_mode=source_mode, limit=limit)


@router.post("/score", response_model=BatchScoreResponse)
async def batch_score(
    request: BatchScoreRequest,
    team: Team = Depends(get_current_team),
    db: Session = Depends(get_db),
):
    icp = _resolve_icp(db, team.id, request.icp_criteria)
    scored = scoring_service.batch_score_leads(db, team.id, request.source_mode, icp)
    return BatchScoreResponse(
        scored=len(scored),
        results=[
            LeadScoreResponse(
                lead_id=lead.id,
                score=result.score,
                reasons=result.reasons,
                label=get_score_label(result.score),
            )
            for lead, result in scored
        ],
    )


@router.post("/import-from-post", response_model=ImportFromPostResponse)
async def import_from_post(
    request: ImportFromPostRequest,
    team: Team = Depends(get_current_team),
    db: Session = Depends(get_db),
    linkup: LinkUpClient = Depends(get_linkup_client),
):
    """Pull reactions and comments of a post into leads (chaud / espion modes)."""
    leads = await import_leads_from_post(
        db, team.id, str(request.post_url), SourceMode(request.source_mode), linkup
    )
    return ImportFromPostResponse(
        count=len(leads),
        leads=[LeadResponse.model_validate(lead) for lead in leads],
    )


@router.get("/{lead_id}", response_model=LeadDetailResponse)
async def get_lead_detail(
    lead_id: int,
    team: Team = Depends(get_current_team),
    db: Session = Depends(get_db),
):
    lead = get_lead(db, team.id, lead_id)
    detail = LeadDetailResponse.model_validate(lead)
    detail.score_label = get_score_label(lead.score)
    return detail


@router.patch("/{lead_id}", response_model=LeadResponse)
async def patch_lead(
    lead_id: int,
    request: LeadUpdate,
    team: Team = Depends(get_current_team),
    db: Session = Depends(get_db),
):
    return update_lead(db, team.id, lead_id, request.model_dump(exclude_unset=True))


@router.post("/{lead_id}/score", response_model=LeadScoreResponse)
async def score_single_lead(
    lead_id: int,
    request: Optional[LeadScoreRequest] = None,
    team: Team = Depends(get_current_team),
    db: Session = Depends(get_db),
):
    icp = _resolve_icp(db, team.id, request.icp_criteria if request else None)
    lead, result = scoring_service.score_lead(db, team.id, lead_id, icp)
    return LeadScoreResponse(
        lead_id=lead.id,
        score=result.score,
        reasons=result.reasons,
        label=get_score_label(result.score),
    )
