"""
Prospect endpoints

- Chrome extension import, authenticated with the team's ``x-api-key``
- Dashboard listing and ICP-based AI scoring/conversion
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from leadwatch.core.logging import setup_logging
from leadwatch.dependencies import (
    get_api_key_team_id,
    get_current_team,
    get_linkup_client,
    get_openai_service,
)
from leadwatch.models import ProspectStatus, Team, get_db
from leadwatch.schemas.prospect import (
    ProspectImportRequest,
    ProspectImportResponse,
    ProspectResponse,
    ProspectScoreResponse,
)
from leadwatch.services.linkup_client import LinkUpClient
from leadwatch.services.openai_service import OpenAIService
from leadwatch.services.prospect_import import import_prospects, list_prospects
from leadwatch.services.prospect_scoring import score_prospect

logger = setup_logging(__name__)

router = APIRouter(prefix="/prospects", tags=["prospects"])


@router.post("/import", response_model=ProspectImportResponse)
async def import_from_extension(
    request: ProspectImportRequest,
    team_id: int = Depends(get_api_key_team_id),
    db: Session = Depends(get_db),
):
    """Import up to 100 profiles picked in the Chrome extension."""
    result = import_prospects(db, team_id, request.prospects, request.folder_id)
    return ProspectImportResponse(**result)


@router.get("", response_model=List[ProspectResponse])
async def get_prospects(
    folder_id: Optional[int] = None,
    status: Optional[ProspectStatus] = None,
    limit: int = Query(100, ge=1, le=500),
    team: Team = Depends(get_current_team),
    db: Session = Depends(get_db),
):
    return list_prospects(db, team.id, folder_id=folder_id, status=status, limit=limit)


@router.post("/{prospect_id}/score", response_model=ProspectScoreResponse)
async def score(
    prospect_id: int,
    team: Team = Depends(get_current_team),
    db: Session = Depends(get_db),
    linkup: LinkUpClient = Depends(get_linkup_client),
    llm: OpenAIService = Depends(get_openai_service),
):
    """Enrich the profile, score it against the team ICP and convert it to a lead when it qualifies."""
    result = await score_prospect(db, team.id, prospect_id, linkup, llm)
    return ProspectScoreResponse(**result)
