"""
Monitored company management

Teams register LinkedIn company pages or personal profiles to watch. Each one
gets a lead collection config that drives the delayed engagement harvest.
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Union

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from leadwatch.core.config import settings
from leadwatch.core.exceptions import (
    DuplicateResourceError,
    MonitoredCompanyNotFoundError,
    PostNotFoundError,
    ValidationError,
)
from leadwatch.core.logging import setup_logging
from leadwatch.models.monitoring import (
    CollectionStatus,
    CompanyPost,
    LeadCollectionConfig,
    MonitoredCompany,
    ProfileType,
    ScheduledCollection,
)

logger = setup_logging(__name__)

RECENT_POSTS_LIMIT = 20


def normalize_linkedin_url(url: str) -> str:
    """Strip scheme, a leading ``www.`` and a trailing slash."""
    url = (url or "").strip()
    for scheme in ("https://", "http://"):
        if url.lower().startswith(scheme):
            url = url[len(scheme):]
            break
    if url.lower().startswith("www."):
        url = url[4:]
    if url.endswith("/"):
        url = url[:-1]
    return url


def to_absolute_url(normalized_url: str) -> str:
    if normalized_url.startswith(("http://", "https://")):
        return normalized_url
    return f"https://www.{normalized_url}"


def parse_timestamp(value: Union[str, int, float, datetime, None], default: Optional[datetime] = None) -> datetime:
    """
    Parse an ISO-8601 string or epoch (seconds or milliseconds) into naive UTC.

    Falls back to ``default`` (or now) when the value is missing or unparseable.
    """
    fallback = default or datetime.utcnow()
    if value is None or value == "":
        return fallback

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        seconds = value / 1000 if value > 1e11 else value
        return datetime.utcfromtimestamp(seconds)
    else:
        try:
            parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            logger.warning(f"Unparseable timestamp {value!r}, using fallback")
            return fallback

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def get_company(db: Session, team_id: int, company_id: int) -> MonitoredCompany:
    company = (
        db.query(MonitoredCompany)
        .filter(MonitoredCompany.id == company_id, MonitoredCompany.team_id == team_id)
        .first()
    )
    if not company:
        raise MonitoredCompanyNotFoundError(company_id)
    return company


def add_monitored_company(
    db: Session,
    team_id: int,
    user_id: int,
    linkedin_url: str,
    company_name: str,
    profile_type: ProfileType = ProfileType.COMPANY,
) -> MonitoredCompany:
    normalized_url = normalize_linkedin_url(linkedin_url)
    if not normalized_url:
        raise ValidationError("LinkedIn URL is required")

    existing = (
        db.query(MonitoredCompany)
        .filter(
            MonitoredCompany.team_id == team_id,
            MonitoredCompany.linkedin_company_url == normalized_url,
        )
        .first()
    )
    if existing:
        raise DuplicateResourceError(
            "This company is already monitored",
            details={"linkedin_company_url": normalized_url},
        )

    company = MonitoredCompany(
        team_id=team_id,
        linkedin_company_url=normalized_url,
        company_name=company_name,
        profile_type=profile_type,
        added_by=user_id,
    )
    company.config = LeadCollectionConfig(
        team_id=team_id,
        delay_hours=settings.DEFAULT_COLLECTION_DELAY_HOURS,
        max_reactions=settings.DEFAULT_MAX_REACTIONS,
        max_comments=settings.DEFAULT_MAX_COMMENTS,
        is_enabled=True,
    )
    db.add(company)
    db.commit()
    db.refresh(company)

    logger.info(f"Team {team_id} now monitors {company_name} ({normalized_url})")
    return company


def remove_monitored_company(db: Session, team_id: int, company_id: int) -> None:
    company = get_company(db, team_id, company_id)
    db.delete(company)
    db.commit()
    logger.info(f"Team {team_id} stopped monitoring company {company_id}")


def update_collection_config(
    db: Session,
    team_id: int,
    company_id: int,
    delay_hours: int,
    max_reactions: int,
    max_comments: int,
    is_enabled: bool,
) -> LeadCollectionConfig:
    """Update the company's collection config, creating it if missing."""
    company = get_company(db, team_id, company_id)

    config = company.config
    if config is None:
        config = LeadCollectionConfig(team_id=team_id, monitored_company_id=company.id)
        db.add(config)

    config.delay_hours = delay_hours
    config.max_reactions = max_reactions
    config.max_comments = max_comments
    config.is_enabled = is_enabled
    db.commit()
    db.refresh(config)
    return config


def mark_posts_as_read(db: Session, team_id: int) -> int:
    updated = (
        db.query(CompanyPost)
        .filter(CompanyPost.team_id == team_id, CompanyPost.is_new.is_(True))
        .update({CompanyPost.is_new: False}, synchronize_session=False)
    )
    db.commit()
    return updated


def list_company_posts(db: Session, team_id: int, company_id: int) -> List[CompanyPost]:
    """List a company's posts (newest first) and mark them as read."""
    get_company(db, team_id, company_id)

    posts = (
        db.query(CompanyPost)
        .options(joinedload(CompanyPost.collection))
        .filter(CompanyPost.monitored_company_id == company_id, CompanyPost.team_id == team_id)
        .order_by(CompanyPost.published_at.desc())
        .all()
    )
    for post in posts:
        post.is_new = False
    db.commit()
    return posts


def configure_post_collection(
    db: Session,
    team_id: int,
    post_id: int,
    delay_hours: int,
    max_reactions: int,
    max_comments: int,
    enabled: bool = True,
) -> ScheduledCollection:
    """Create or reschedule the collection of a single post with per-post limits."""
    post = (
        db.query(CompanyPost)
        .filter(CompanyPost.id == post_id, CompanyPost.team_id == team_id)
        .first()
    )
    if not post:
        raise PostNotFoundError(post_id)

    scheduled_for = post.published_at + timedelta(hours=delay_hours)
    status = CollectionStatus.PENDING if enabled else CollectionStatus.CANCELLED

    collection = post.collection
    if collection is None:
        config = post.company.config
        if config is None:
            raise ValidationError(
                "Collection config missing for this account",
                details={"monitored_company_id": post.monitored_company_id},
            )
        collection = ScheduledCollection(team_id=team_id, post_id=post.id, config_id=config.id)
        db.add(collection)

    collection.scheduled_for = scheduled_for
    collection.status = status
    collection.max_reactions_override = max_reactions
    collection.max_comments_override = max_comments
    db.commit()
    db.refresh(collection)
    return collection


def get_monitoring_overview(db: Session, team_id: int, webhook_status: Dict[str, Any]) -> Dict[str, Any]:
    """
    Dashboard payload: companies (with new-post counts, unread first),
    the latest posts and the webhook account status.
    """
    companies = (
        db.query(MonitoredCompany)
        .options(joinedload(MonitoredCompany.config))
        .filter(MonitoredCompany.team_id == team_id)
        .all()
    )

    new_counts = dict(
        db.query(CompanyPost.monitored_company_id, func.count(CompanyPost.id))
        .filter(CompanyPost.team_id == team_id, CompanyPost.is_new.is_(True))
        .group_by(CompanyPost.monitored_company_id)
        .all()
    )

    companies.sort(
        key=lambda c: (
            0 if new_counts.get(c.id, 0) > 0 else 1,
            -c.last_post_at.timestamp() if c.last_post_at else 0,
        )
    )

    recent_posts = (
        db.query(CompanyPost)
        .filter(CompanyPost.team_id == team_id)
        .order_by(CompanyPost.published_at.desc())
        .limit(RECENT_POSTS_LIMIT)
        .all()
    )

    return {
        "companies": [(company, new_counts.get(company.id, 0)) for company in companies],
        "recent_posts": recent_posts,
        "webhook_status": webhook_status,
        "new_posts_count": sum(new_counts.values()),
    }
