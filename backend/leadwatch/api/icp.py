"""Ideal customer profile endpoints"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from leadwatch.dependencies import get_current_team
from leadwatch.models import Team, get_db
from leadwatch.schemas.outreach import ICPProfileRequest, ICPProfileResponse
from leadwatch.services.icp import icp_to_dict, require_icp, upsert_icp

router = APIRouter(prefix="/icp", tags=["icp"])


@router.get("", response_model=ICPProfileResponse)
async def get_icp(
    team: Team = Depends(get_current_team),
    db: Session = Depends(get_db),
):
    return icp_to_dict(require_icp(db, team.id))


@router.put("", response_model=ICPProfileResponse)
async def put_icp(
    request: ICPProfileRequest,
    team: Team = Depends(get_current_team),
    db: Session = Depends(get_db),
):
    return icp_to_dict(upsert_icp(db, team.id, request))
