"""
Inbound LinkedIn post webhook (pushed by the LinkUp webhook account)

Stores the post for the monitored company it belongs to and schedules the
engagement collection ``delay_hours`` after publication.
"""
import re
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session, joinedload

from leadwatch.core.exceptions import InvalidWebhookPayloadError
from leadwatch.core.logging import setup_logging
from leadwatch.models.monitoring import (
    CollectionStatus,
    CompanyPost,
    MonitoredCompany,
    ScheduledCollection,
)
from leadwatch.schemas.monitoring import LinkedInWebhookPayload
from leadwatch.services.monitoring import normalize_linkedin_url, parse_timestamp

logger = setup_logging(__name__)

COMPANY_URL_PATTERNS = (
    re.compile(r"linkedin\.com/company/([^/?]+)"),
    re.compile(r"linkedin\.com/posts/([^_]+)_"),
    re.compile(r"feed/update/urn:li:activity:(\d+)"),
)


def extract_company_from_post_url(post_url: str) -> Optional[str]:
    """Best-effort company URL (``linkedin.com/company/<slug>``) from a post URL."""
    for pattern in COMPANY_URL_PATTERNS:
        match = pattern.search(post_url or "")
        if match:
            return f"linkedin.com/company/{match.group(1)}"
    return None


def _ack(message: str) -> Dict[str, Any]:
    return {"message": message, "received": True}


def handle_linkedin_webhook(
    db: Session,
    payload: LinkedInWebhookPayload,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    now = now or datetime.utcnow()

    if not payload.post_id or not payload.post_url:
        raise InvalidWebhookPayloadError("Invalid payload: post_id and post_url are required")

    company_url = payload.company_url or extract_company_from_post_url(payload.post_url)
    if not company_url:
        raise InvalidWebhookPayloadError(
            "Company could not be identified",
            details={"post_url": payload.post_url},
        )
    company_url = normalize_linkedin_url(company_url)

    logger.info(f"LinkedIn webhook: post {payload.post_id} for {company_url}")

    company = (
        db.query(MonitoredCompany)
        .options(joinedload(MonitoredCompany.config))
        .filter(MonitoredCompany.linkedin_company_url == company_url)
        .order_by(MonitoredCompany.id)
        .first()
    )
    if not company:
        logger.info(f"Company not monitored: {company_url}")
        return _ack("Company not monitored")

    if not company.is_active:
        logger.info(f"Monitoring disabled for {company.company_name}")
        return _ack("Monitoring disabled")

    existing = (
        db.query(CompanyPost.id)
        .filter(CompanyPost.post_id == payload.post_id, CompanyPost.team_id == company.team_id)
        .first()
    )
    if existing:
        logger.info(f"Post already recorded: {payload.post_id}")
        return _ack("Post already recorded")

    published_at = parse_timestamp(payload.published_at, default=now)

    post = CompanyPost(
        team_id=company.team_id,
        monitored_company_id=company.id,
        post_id=payload.post_id,
        post_url=payload.post_url,
        author_name=payload.author_name,
        author_url=payload.author_url,
        content=payload.content,
        media_urls=payload.media_urls or [],
        published_at=published_at,
        webhook_payload=payload.model_dump(mode="json"),
        is_new=True,
    )
    db.add(post)
    db.flush()

    company.last_post_at = published_at
    company.total_posts_received = (company.total_posts_received or 0) + 1

    post_summary = {
        "id": post.id,
        "post_id": post.post_id,
        "company_name": company.company_name,
    }

    config = company.config
    if config is not None and config.is_enabled:
        collection = ScheduledCollection(
            team_id=company.team_id,
            post_id=post.id,
            config_id=config.id,
            scheduled_for=published_at + timedelta(hours=config.delay_hours),
            status=CollectionStatus.PENDING,
        )
        db.add(collection)
        db.commit()

        logger.info(
            f"Collection {collection.id} scheduled in {config.delay_hours}h "
            f"({collection.scheduled_for.isoformat()})"
        )
        return {
            "success": True,
            "post": post_summary,
            "collection": {
                "id": collection.id,
                "scheduled_for": collection.scheduled_for,
                "delay_hours": config.delay_hours,
            },
        }

    db.commit()
    return {
        "success": True,
        "post": post_summary,
        "message": "Post saved without scheduled collection",
    }
