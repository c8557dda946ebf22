"""
Company monitoring endpoints

Dashboard management of monitored companies/profiles, their collection
settings, per-post collection overrides and the team's LinkUp webhook account.
"""
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from leadwatch.core.logging import setup_logging
from leadwatch.dependencies import get_current_team, get_current_user, get_linkup_client
from leadwatch.models import Team, User, get_db
from leadwatch.schemas.monitoring import (
    CollectionConfigResponse,
    CollectionConfigUpdate,
    CompanyPostResponse,
    MonitoredCompanyCreate,
    MonitoredCompanyResponse,
    MonitoringOverviewResponse,
    MonitoringStatusResponse,
    MonitoringToggleRequest,
    PostCollectionRequest,
    PostCollectionResponse,
    ScheduledCollectionResponse,
    WebhookAccountCreate,
    WebhookAccountResponse,
    WebhookAccountUpdate,
)
from leadwatch.services import monitoring, webhook_manager
from leadwatch.services.linkup_client import LinkUpClient
from leadwatch.services.post_collector import estimate_credits

logger = setup_logging(__name__)

router = APIRouter(prefix="/monitoring", tags=["monitoring"])


def _company_response(company, new_posts_count: int = 0) -> MonitoredCompanyResponse:
    response = MonitoredCompanyResponse.model_validate(company)
    response.new_posts_count = new_posts_count
    return response


def _status_response(status: dict) -> MonitoringStatusResponse:
    account = status["account"]
    return MonitoringStatusResponse(
        has_account=status["has_account"],
        is_active=status["is_active"],
        account=WebhookAccountResponse.model_validate(account) if account is not None else None,
    )


@router.get("", response_model=MonitoringOverviewResponse)
async def get_overview(
    team: Team = Depends(get_current_team),
    db: Session = Depends(get_db),
):
    status = webhook_manager.get_monitoring_status(db, team.id)
    overview = monitoring.get_monitoring_overview(db, team.id, status)
    return MonitoringOverviewResponse(
        companies=[_company_response(company, count) for company, count in overview["companies"]],
        recent_posts=[CompanyPostResponse.model_validate(post) for post in overview["recent_posts"]],
        webhook_status=_status_response(overview["webhook_status"]),
        new_posts_count=overview["new_posts_count"],
    )


@router.post("/companies", response_model=MonitoredCompanyResponse, status_code=201)
async def add_company(
    request: MonitoredCompanyCreate,
    user: User = Depends(get_current_user),
    team: Team = Depends(get_current_team),
    db: Session = Depends(get_db),
):
    company = monitoring.add_monitored_company(
        db,
        team.id,
        user.id,
        request.linkedin_url,
        request.company_name,
        request.profile_type,
    )
    return _company_response(company)


@router.delete("/companies/{company_id}")
async def remove_company(
    company_id: int,
    team: Team = Depends(get_current_team),
    db: Session = Depends(get_db),
):
    monitoring.remove_monitored_company(db, team.id, company_id)
    return {"success": True}


@router.get("/companies/{company_id}/posts", response_model=List[CompanyPostResponse])
async def get_company_posts(
    company_id: int,
    team: Team = Depends(get_current_team),
    db: Session = Depends(get_db),
):
    """List a company's posts; viewing them marks them as read."""
    return monitoring.list_company_posts(db, team.id, company_id)


@router.put("/companies/{company_id}/config", response_model=CollectionConfigResponse)
async def update_config(
    company_id: int,
    request: CollectionConfigUpdate,
    team: Team = Depends(get_current_team),
    db: Session = Depends(get_db),
):
    return monitoring.update_collection_config(
        db,
        team.id,
        company_id,
        delay_hours=request.delay_hours,
        max_reactions=request.max_reactions,
        max_comments=request.max_comments,
        is_enabled=request.is_enabled,
    )


@router.post("/posts/mark-read")
async def mark_read(
    team: Team = Depends(get_current_team),
    db: Session = Depends(get_db),
):
    updated = monitoring.mark_posts_as_read(db, team.id)
    return {"success": True, "updated": updated}


@router.post("/posts/{post_id}/collection", response_model=PostCollectionResponse)
async def configure_collection(
    post_id: int,
    request: PostCollectionRequest,
    team: Team = Depends(get_current_team),
    db: Session = Depends(get_db),
):
    collection = monitoring.configure_post_collection(
        db,
        team.id,
        post_id,
        delay_hours=request.delay_hours,
        max_reactions=request.max_reactions,
        max_comments=request.max_comments,
        enabled=request.enabled,
    )
    message = "Collection scheduled" if request.enabled else "Collection cancelled"
    return PostCollectionResponse(
        collection=ScheduledCollectionResponse.model_validate(collection),
        estimated_credits=estimate_credits(request.max_reactions, request.max_comments),
        message=message,
    )


@router.post("/webhook-account", response_model=WebhookAccountResponse, status_code=201)
async def create_webhook_account(
    request: WebhookAccountCreate,
    user: User = Depends(get_current_user),
    team: Team = Depends(get_current_team),
    db: Session = Depends(get_db),
    linkup: LinkUpClient = Depends(get_linkup_client),
):
    return await webhook_manager.create_webhook_account(
        db,
        linkup,
        team.id,
        user.id,
        request.account_name,
        request.webhook_url,
        request.login_token,
        country=request.country,
    )


@router.patch("/webhook-account", response_model=WebhookAccountResponse)
async def update_webhook_account(
    request: WebhookAccountUpdate,
    team: Team = Depends(get_current_team),
    db: Session = Depends(get_db),
    linkup: LinkUpClient = Depends(get_linkup_client),
):
    return await webhook_manager.update_webhook_account(
        db, linkup, team.id, **request.model_dump(exclude_unset=True)
    )


@router.post("/toggle", response_model=MonitoringStatusResponse)
async def toggle_monitoring(
    request: MonitoringToggleRequest,
    team: Team = Depends(get_current_team),
    db: Session = Depends(get_db),
    linkup: LinkUpClient = Depends(get_linkup_client),
):
    if request.action == "start":
        await webhook_manager.start_monitoring(db, linkup, team.id)
    else:
        await webhook_manager.stop_monitoring(db, linkup, team.id)
    return _status_response(webhook_manager.get_monitoring_status(db, team.id))
