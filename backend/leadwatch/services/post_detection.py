"""
Post detection (cron "detect-posts")

Polls every active monitored profile for its latest post. Each post not yet
stored for the team is saved and gets a collection scheduled
``delay_hours`` from now.
"""
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from leadwatch.core.config import settings
from leadwatch.core.logging import setup_logging
from leadwatch.models.monitoring import (
    CollectionStatus,
    CompanyPost,
    LeadCollectionConfig,
    MonitoredCompany,
    ScheduledCollection,
)
from leadwatch.services.apify_client import ApifyClient
from leadwatch.services.monitoring import parse_timestamp, to_absolute_url

logger = setup_logging(__name__)


async def detect_posts(
    db: Session,
    apify: ApifyClient,
    now: Optional[datetime] = None,
    max_posts: int = 1,
) -> Dict[str, Any]:
    now = now or datetime.utcnow()

    profiles = (
        db.query(MonitoredCompany, LeadCollectionConfig)
        .join(LeadCollectionConfig, LeadCollectionConfig.monitored_company_id == MonitoredCompany.id)
        .filter(MonitoredCompany.is_active.is_(True), LeadCollectionConfig.is_enabled.is_(True))
        .all()
    )

    posts_detected = 0
    collections_scheduled = 0
    errors = []

    for company, config in profiles:
        try:
            posts = await apify.get_profile_posts(
                to_absolute_url(company.linkedin_company_url), max_posts=max_posts
            )

            for post in posts:
                if not post.post_url:
                    continue

                existing = (
                    db.query(CompanyPost.id)
                    .filter(CompanyPost.team_id == company.team_id, CompanyPost.post_url == post.post_url)
                    .first()
                )
                if existing:
                    continue

                published_at = parse_timestamp(post.published_at, default=now)
                new_post = CompanyPost(
                    team_id=company.team_id,
                    monitored_company_id=company.id,
                    post_id=post.post_id or post.post_url,
                    post_url=post.post_url,
                    author_name=post.author_name,
                    author_url=post.author_url,
                    content=post.content,
                    media_urls=post.media_urls,
                    published_at=published_at,
                    is_new=True,
                    webhook_payload=post.model_dump(),
                )
                db.add(new_post)
                db.flush()
                posts_detected += 1

                delay_hours = config.delay_hours or settings.DEFAULT_COLLECTION_DELAY_HOURS
                db.add(ScheduledCollection(
                    team_id=company.team_id,
                    post_id=new_post.id,
                    config_id=config.id,
                    scheduled_for=now + timedelta(hours=delay_hours),
                    status=CollectionStatus.PENDING,
                ))
                collections_scheduled += 1

                company.last_post_at = published_at
                company.total_posts_received = (company.total_posts_received or 0) + 1

            company.last_checked_at = now
            db.commit()

        except Exception as e:
            db.rollback()
            message = f"Error for {company.company_name}: {e}"
            logger.error(message, exc_info=True)
            errors.append(message)

    logger.info(
        f"detect-posts: {len(profiles)} profiles checked, {posts_detected} posts detected, "
        f"{collections_scheduled} collections scheduled, {len(errors)} errors"
    )
    return {
        "profiles_checked": len(profiles),
        "posts_detected": posts_detected,
        "collections_scheduled": collections_scheduled,
        "errors": errors,
    }
