"""
Cron endpoints

Polled by an external scheduler (or the Celery beat tasks) with the shared
ingest bearer token:
- detect-posts: find new posts on monitored profiles and schedule collections
- extract-leads: turn due collections into leads
- publish-posts: publish scheduled LinkedIn posts
- cleanup-oauth-states: purge expired OAuth state tokens
- execute-campaigns: send due campaign block emails
- process-workflows: move workflow prospects one node forward
"""
from datetime import datetime

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from leadwatch.core.logging import setup_logging
from leadwatch.dependencies import (
    get_apify_client,
    get_email_service,
    get_linkedin_publisher,
    require_ingest_token,
)
from leadwatch.models import get_db
from leadwatch.services.apify_client import ApifyClient
from leadwatch.services.campaign_email import EmailService
from leadwatch.services.campaign_executor import execute_pending_campaigns
from leadwatch.services.lead_extraction import extract_due_leads
from leadwatch.services.linkedin_oauth import cleanup_expired_states
from leadwatch.services.linkedin_posts import list_due_posts, publish_due_posts
from leadwatch.services.linkedin_publisher import LinkedInPublisher
from leadwatch.services.post_detection import detect_posts
from leadwatch.services.workflow_processor import process_ready_prospects

logger = setup_logging(__name__)

router = APIRouter(
    prefix="/cron",
    tags=["cron"],
    dependencies=[Depends(require_ingest_token)],
)


@router.get("/detect-posts")
async def run_detect_posts(
    db: Session = Depends(get_db),
    apify: ApifyClient = Depends(get_apify_client),
):
    result = await detect_posts(db, apify)
    return {"success": True, **result}


@router.get("/extract-leads")
async def run_extract_leads(
    db: Session = Depends(get_db),
    apify: ApifyClient = Depends(get_apify_client),
):
    result = await extract_due_leads(db, apify)
    return {"success": True, **result}


@router.get("/cleanup-oauth-states")
async def run_cleanup_oauth_states(db: Session = Depends(get_db)):
    now = datetime.utcnow()
    deleted = cleanup_expired_states(db, now)
    return {"success": True, "deleted_count": deleted, "timestamp": now}


@router.post("/publish-posts")
async def run_publish_posts(
    db: Session = Depends(get_db),
    publisher: LinkedInPublisher = Depends(get_linkedin_publisher),
):
    result = await publish_due_posts(db, publisher)
    logger.info(f"publish-posts: processed {result['total_processed']} posts")
    return {"success": True, **result}


@router.get("/publish-posts")
async def preview_publish_posts(db: Session = Depends(get_db)):
    """List the scheduled posts that the next publish run would pick up."""
    posts = list_due_posts(db)
    return {
        "count": len(posts),
        "posts": [
            {
                "id": post.id,
                "team_id": post.team_id,
                "scheduled_for": post.scheduled_for,
                "has_content": bool(post.final_content or post.generated_content),
            }
            for post in posts
        ],
    }


@router.get("/execute-campaigns")
async def run_execute_campaigns(
    db: Session = Depends(get_db),
    email_service: EmailService = Depends(get_email_service),
):
    result = await execute_pending_campaigns(db, email_service)
    return {"success": True, **result}


@router.get("/process-workflows")
async def run_process_workflows(db: Session = Depends(get_db)):
    processed = process_ready_prospects(db)
    return {
        "success": True,
        "processedCount": processed,
        "message": f"Processed {processed} prospects",
    }
