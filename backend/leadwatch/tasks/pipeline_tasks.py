"""
Celery tasks for the periodic lead pipeline

Each task opens its own database session and runs the same service code as
the matching cron/scheduler endpoint:
- detect_posts / extract_leads: Apify post detection and lead extraction
- collect_leads: LinkUp collection of due posts into prospect candidates
- publish_scheduled_posts: LinkedIn publishing of due posts
- cleanup_oauth_states: purge expired OAuth states
- execute_campaigns: send due campaign block emails through Gmail
- process_workflows: advance workflow prospects that are due
- start_monitoring / stop_monitoring: LinkUp webhook accounts on business hours
"""
import asyncio
from typing import Any, Callable, Dict

from leadwatch.celery_app import celery_app
from leadwatch.core.config import settings
from leadwatch.core.logging import setup_logging
from leadwatch.models.database import SessionLocal
from leadwatch.services import webhook_manager
from leadwatch.services.apify_client import ApifyClient
from leadwatch.services.campaign_email import EmailService
from leadwatch.services.campaign_executor import execute_pending_campaigns
from leadwatch.services.lead_extraction import extract_due_leads
from leadwatch.services.linkedin_oauth import cleanup_expired_states
from leadwatch.services.linkedin_posts import publish_due_posts
from leadwatch.services.linkedin_publisher import LinkedInPublisher
from leadwatch.services.linkup_client import LinkUpClient
from leadwatch.services.post_collector import PostCollector
from leadwatch.services.post_detection import detect_posts
from leadwatch.services.workflow_processor import process_ready_prospects

logger = setup_logging(__name__)


def run_with_session(job: Callable[..., Any]) -> Dict[str, Any]:
    """
    Run ``job(db)`` inside a fresh session; coroutines are driven to completion.
    """
    db = SessionLocal()
    try:
        result = job(db)
        if asyncio.iscoroutine(result):
            result = asyncio.run(result)
        return result
    finally:
        db.close()


def _jsonable(summary: Dict[str, Any]) -> Dict[str, Any]:
    """Celery's json serializer cannot encode datetimes."""
    return {
        key: value.isoformat() if hasattr(value, "isoformat") else value
        for key, value in summary.items()
    }


@celery_app.task(name="detect_posts")
def detect_posts_task():
    result = run_with_session(lambda db: detect_posts(db, ApifyClient()))
    logger.info(
        f"detect_posts: {result['posts_detected']} posts detected on {result['profiles_checked']} profiles"
    )
    return result


@celery_app.task(name="extract_leads")
def extract_leads_task():
    result = run_with_session(
        lambda db: extract_due_leads(db, ApifyClient(), batch_size=settings.EXTRACT_BATCH_SIZE)
    )
    logger.info(f"extract_leads: {result['leads_created']} leads from {result['collections_processed']} collections")
    return result


@celery_app.task(name="collect_leads")
def collect_leads_task():
    result = run_with_session(
        lambda db: PostCollector(LinkUpClient()).run_due_collections(db, limit=settings.COLLECT_BATCH_SIZE)
    )
    result = _jsonable(result)
    result["results"] = [_jsonable(r) for r in result["results"]]
    return result


@celery_app.task(name="publish_scheduled_posts")
def publish_scheduled_posts_task():
    return run_with_session(lambda db: publish_due_posts(db, LinkedInPublisher()))


@celery_app.task(name="cleanup_oauth_states")
def cleanup_oauth_states_task():
    deleted = run_with_session(cleanup_expired_states)
    logger.info(f"cleanup_oauth_states: {deleted} expired states removed")
    return {"deleted_count": deleted}


@celery_app.task(name="start_monitoring")
def start_monitoring_task():
    return _jsonable(run_with_session(lambda db: webhook_manager.start_all(db, LinkUpClient())))


@celery_app.task(name="stop_monitoring")
def stop_monitoring_task():
    return _jsonable(run_with_session(lambda db: webhook_manager.stop_all(db, LinkUpClient())))


@celery_app.task(name="execute_campaigns")
def execute_campaigns_task():
    result = run_with_session(
        lambda db: execute_pending_campaigns(db, EmailService(), limit=settings.CAMPAIGN_BATCH_SIZE)
    )
    logger.info(f"execute_campaigns: {result['processed']} sent, {result['failed']} failed")
    return result


@celery_app.task(name="process_workflows")
def process_workflows_task():
    processed = run_with_session(process_ready_prospects)
    return {"processed_count": processed}
