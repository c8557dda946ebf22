"""
Outreach message endpoints

Drafts are rendered from templates; "sending" records the send and moves the
lead to ``contacted`` (delivery happens outside the platform).
"""
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from leadwatch.dependencies import get_current_team
from leadwatch.models import Team, get_db
from leadwatch.schemas.outreach import MessageGenerateRequest, MessageResponse, MessageUpdate
from leadwatch.services import messages as message_service
from leadwatch.services.leads import get_lead

router = APIRouter(tags=["messages"])


@router.post("/messages/generate", response_model=MessageResponse, status_code=201)
async def generate_message(
    request: MessageGenerateRequest,
    team: Team = Depends(get_current_team),
    db: Session = Depends(get_db),
):
    return message_service.generate_message(
        db,
        team.id,
        request.lead_id,
        request.message_type,
        custom_prompt=request.custom_prompt,
        company_info=request.company_info,
    )


@router.patch("/messages/{message_id}", response_model=MessageResponse)
async def update_message(
    message_id: int,
    request: MessageUpdate,
    team: Team = Depends(get_current_team),
    db: Session = Depends(get_db),
):
    return message_service.update_message(
        db, team.id, message_id, message_text=request.message_text, status=request.status
    )


@router.post("/messages/{message_id}/send", response_model=MessageResponse)
async def send_message(
    message_id: int,
    team: Team = Depends(get_current_team),
    db: Session = Depends(get_db),
):
    return message_service.send_message(db, team.id, message_id)


@router.get("/messages", response_model=List[MessageResponse])
async def list_team_messages(
    limit: int = Query(message_service.TEAM_MESSAGES_LIMIT, ge=1, le=500),
    team: Team = Depends(get_current_team),
    db: Session = Depends(get_db),
):
    return message_service.list_messages_by_team(db, team.id, limit=limit)


@router.get("/leads/{lead_id}/messages", response_model=List[MessageResponse])
async def list_lead_messages(
    lead_id: int,
    team: Team = Depends(get_current_team),
    db: Session = Depends(get_db),
):
    get_lead(db, team.id, lead_id)
    return message_service.list_messages_by_lead(db, team.id, lead_id)
