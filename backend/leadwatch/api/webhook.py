"""Inbound LinkedIn post webhook (LinkUp)"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from leadwatch.core.config import settings
from leadwatch.core.logging import setup_logging
from leadwatch.models import get_db
from leadwatch.schemas.monitoring import LinkedInWebhookPayload
from leadwatch.services.webhook_ingestion import handle_linkedin_webhook

logger = setup_logging(__name__)

router = APIRouter(prefix="/webhook", tags=["webhook"])


@router.post("/linkedin")
async def receive_linkedin_webhook(
    payload: LinkedInWebhookPayload,
    db: Session = Depends(get_db),
):
    """
    Receive a new-post notification.

    Unknown or disabled companies and duplicate posts are acknowledged with
    200 so LinkUp does not retry them.
    """
    logger.info(f"LinkedIn webhook received: post_id={payload.post_id}")
    return handle_linkedin_webhook(db, payload)


@router.get("/linkedin")
async def linkedin_webhook_status():
    return {
        "status": "ok",
        "message": "LinkedIn Webhook Endpoint",
        "endpoint": f"{settings.API_V1_PREFIX}/webhook/linkedin",
    }
