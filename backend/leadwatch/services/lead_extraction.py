"""
Lead extraction (cron "extract-leads")

Harvests reactions and comments of posts whose scheduled collection is due
and turns every new engager into a ``monitoring`` lead.
"""
import math
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session, joinedload

from leadwatch.core.config import settings
from leadwatch.core.logging import setup_logging
from leadwatch.models.lead import Lead, LeadStatus, SourceMode, split_full_name
from leadwatch.models.monitoring import CollectionStatus, ScheduledCollection
from leadwatch.services.apify_client import ApifyClient

logger = setup_logging(__name__)


def due_collections(db: Session, now: datetime, limit: int):
    return (
        db.query(ScheduledCollection)
        .options(joinedload(ScheduledCollection.post), joinedload(ScheduledCollection.config))
        .filter(
            ScheduledCollection.status == CollectionStatus.PENDING,
            ScheduledCollection.scheduled_for <= now,
        )
        .order_by(ScheduledCollection.scheduled_for)
        .limit(limit)
        .all()
    )


async def _extract_collection(db: Session, apify: ApifyClient, collection: ScheduledCollection) -> Dict[str, int]:
    post = collection.post
    max_reactions = collection.effective_max_reactions
    max_comments = collection.effective_max_comments

    engagements = await apify.get_post_engagements(
        post.post_url,
        include_reactions=max_reactions > 0,
        include_comments=max_comments > 0,
    )

    reactions_count = 0
    comments_count = 0
    leads_created = 0
    seen_urls = set()

    for engagement in engagements:
        if not engagement.profile_url:
            continue

        is_reaction = engagement.type == "reaction"
        if is_reaction and reactions_count >= max_reactions:
            continue
        if not is_reaction and comments_count >= max_comments:
            continue

        already_lead = engagement.profile_url in seen_urls or (
            db.query(Lead.id)
            .filter(Lead.team_id == collection.team_id, Lead.linkedin_url == engagement.profile_url)
            .first()
            is not None
        )
        if not already_lead:
            first_name, last_name = split_full_name(engagement.profile_name)
            db.add(Lead(
                team_id=collection.team_id,
                linkedin_url=engagement.profile_url,
                first_name=first_name,
                last_name=last_name,
                company=engagement.profile_company or None,
                title=engagement.profile_title or None,
                profile_picture_url=engagement.profile_picture_url or None,
                source_mode=SourceMode.MONITORING,
                source_post_url=post.post_url,
                engagement_type=engagement.type,
                reaction_type=engagement.reaction_type or None,
                comment_text=engagement.comment_text or None,
                detected_post_id=post.id,
                status=LeadStatus.NEW,
                score=0,
            ))
            leads_created += 1
        seen_urls.add(engagement.profile_url)

        if is_reaction:
            reactions_count += 1
        else:
            comments_count += 1

    collection.status = CollectionStatus.COMPLETED
    collection.collected_at = datetime.utcnow()
    collection.reactions_collected = reactions_count
    collection.comments_collected = comments_count
    collection.leads_created = leads_created
    collection.credits_used = math.ceil((reactions_count + comments_count) / 100)
    post.is_new = False
    db.commit()

    return {
        "reactions": reactions_count,
        "comments": comments_count,
        "leads": leads_created,
    }


async def extract_due_leads(
    db: Session,
    apify: ApifyClient,
    now: Optional[datetime] = None,
    batch_size: Optional[int] = None,
) -> Dict[str, Any]:
    now = now or datetime.utcnow()
    collections = due_collections(db, now, batch_size or settings.EXTRACT_BATCH_SIZE)

    totals = {"leads": 0, "reactions": 0, "comments": 0}
    errors = []

    for collection in collections:
        collection_id = collection.id
        post_url = collection.post.post_url
        try:
            collection.status = CollectionStatus.PROCESSING
            db.commit()

            counts = await _extract_collection(db, apify, collection)
            for key, value in counts.items():
                totals[key] += value

        except Exception as e:
            db.rollback()
            message = f"Error for post {post_url}: {e}"
            logger.error(message, exc_info=True)
            errors.append(message)

            failed = db.get(ScheduledCollection, collection_id)
            failed.status = CollectionStatus.FAILED
            failed.error_message = str(e)
            db.commit()

    logger.info(
        f"extract-leads: {len(collections)} collections processed, {totals['leads']} leads created "
        f"({totals['reactions']} reactions, {totals['comments']} comments)"
    )
    return {
        "collections_processed": len(collections),
        "leads_created": totals["leads"],
        "reactions_collected": totals["reactions"],
        "comments_collected": totals["comments"],
        "errors": errors,
    }
