"""
LinkedIn post endpoints

Drafts are generated and refined with the LLM, then either scheduled (picked
up by the publish cron) or published immediately with the team's OAuth token.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from leadwatch.dependencies import (
    get_current_team,
    get_current_user,
    get_linkedin_publisher,
    get_openai_service,
)
from leadwatch.models import PostStatus, Team, User, get_db
from leadwatch.schemas.outreach import (
    PostCreate,
    PostGenerateRequest,
    PostImproveRequest,
    PostResponse,
    PostUpdate,
)
from leadwatch.services import linkedin_posts
from leadwatch.services.linkedin_publisher import LinkedInPublisher
from leadwatch.services.openai_service import OpenAIService

router = APIRouter(prefix="/posts", tags=["posts"])


@router.post("", response_model=PostResponse, status_code=201)
async def create_post(
    request: PostCreate,
    user: User = Depends(get_current_user),
    team: Team = Depends(get_current_team),
    db: Session = Depends(get_db),
):
    return linkedin_posts.create_post(
        db,
        team.id,
        user.id,
        post_type=request.type,
        user_context=request.user_context,
        scheduled_for=request.scheduled_for,
        image_url=request.image_url,
    )


@router.get("", response_model=List[PostResponse])
async def list_posts(
    status: Optional[PostStatus] = None,
    limit: int = Query(50, ge=1, le=200),
    team: Team = Depends(get_current_team),
    db: Session = Depends(get_db),
):
    return linkedin_posts.list_posts(db, team.id, status=status, limit=limit)


@router.post("/{post_id}/generate", response_model=PostResponse)
async def generate_post(
    post_id: int,
    request: PostGenerateRequest,
    team: Team = Depends(get_current_team),
    db: Session = Depends(get_db),
    llm: OpenAIService = Depends(get_openai_service),
):
    return await linkedin_posts.generate_post_content(
        db, team, post_id, request.type, request.user_context, llm
    )


@router.post("/{post_id}/improve", response_model=PostResponse)
async def improve_post(
    post_id: int,
    request: PostImproveRequest,
    team: Team = Depends(get_current_team),
    db: Session = Depends(get_db),
    llm: OpenAIService = Depends(get_openai_service),
):
    return await linkedin_posts.improve_post_content(db, team.id, post_id, request.improvements, llm)


@router.patch("/{post_id}", response_model=PostResponse)
async def update_post(
    post_id: int,
    request: PostUpdate,
    user: User = Depends(get_current_user),
    team: Team = Depends(get_current_team),
    db: Session = Depends(get_db),
):
    return linkedin_posts.update_post(
        db,
        team.id,
        post_id,
        final_content=request.final_content,
        scheduled_for=request.scheduled_for,
        image_url=request.image_url,
        user_id=user.id,
    )


@router.post("/{post_id}/publish", response_model=PostResponse)
async def publish_post(
    post_id: int,
    user: User = Depends(get_current_user),
    team: Team = Depends(get_current_team),
    db: Session = Depends(get_db),
    publisher: LinkedInPublisher = Depends(get_linkedin_publisher),
):
    return await linkedin_posts.publish_post_now(db, team.id, post_id, publisher, user_id=user.id)
