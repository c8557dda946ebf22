"""
Post collector (scheduler "collect-leads")

Pulls reactions and comments of due posts from LinkUp and stages every
engager as a ``ProspectCandidate`` for later ICP scoring.
"""
import math
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Union

from sqlalchemy.orm import Session, joinedload

from leadwatch.core.exceptions import PostNotFoundError, ScheduledCollectionNotFoundError
from leadwatch.core.logging import setup_logging
from leadwatch.models.monitoring import CollectionStatus, CompanyPost, ScheduledCollection
from leadwatch.models.prospect import (
    ProspectAction,
    ProspectCandidate,
    ProspectSource,
    ProspectStatus,
)
from leadwatch.services.linkup_client import Comment, LinkUpClient, Reaction

logger = setup_logging(__name__)

UPCOMING_HORIZON = timedelta(hours=24)
UPCOMING_LIMIT = 20


def estimate_credits(max_reactions: int, max_comments: int) -> int:
    """LinkUp bills one credit per started block of ten results."""
    return math.ceil(max_reactions / 10) + math.ceil(max_comments / 10)


def _empty_result() -> Dict[str, Any]:
    return {
        "reactions_collected": 0,
        "comments_collected": 0,
        "leads_created": 0,
        "credits_used": 0,
    }


class PostCollector:
    """Collects the engagements of one monitored post into prospect candidates."""

    def __init__(self, linkup: LinkUpClient):
        self.linkup = linkup

    def _stage(
        self,
        db: Session,
        team_id: int,
        source_ref: str,
        post_url: str,
        action: ProspectAction,
        engagement: Union[Reaction, Comment],
    ) -> bool:
        """Insert one candidate unless the same engagement is already staged."""
        comment_id = getattr(engagement, "comment_id", None)

        exists = (
            db.query(ProspectCandidate.id)
            .filter(
                ProspectCandidate.team_id == team_id,
                ProspectCandidate.source == ProspectSource.REAL_TIME_MONITORING,
                ProspectCandidate.source_ref == source_ref,
                ProspectCandidate.action == action,
                ProspectCandidate.profile_url == engagement.profile_url,
                ProspectCandidate.comment_id.is_(None) if comment_id is None
                else ProspectCandidate.comment_id == comment_id,
            )
            .first()
        )
        if exists:
            return False

        db.add(ProspectCandidate(
            team_id=team_id,
            source=ProspectSource.REAL_TIME_MONITORING,
            source_ref=source_ref,
            action=action,
            post_url=post_url,
            reaction_type=getattr(engagement, "reaction_type", None),
            comment_id=comment_id,
            comment_text=getattr(engagement, "comment_text", None),
            profile_url=engagement.profile_url,
            actor_urn=engagement.actor_urn,
            name=engagement.name,
            title=engagement.title,
            company=engagement.company,
            location=engagement.location,
            status=ProspectStatus.NEW,
            raw=engagement.model_dump(mode="json"),
        ))
        db.flush()
        return True

    async def _collect(
        self,
        db: Session,
        team_id: int,
        source_ref: str,
        post_url: str,
        action: ProspectAction,
        max_results: int,
    ) -> Dict[str, int]:
        """Fetch and stage one engagement kind. Failures count as zero."""
        try:
            if action == ProspectAction.REACTION:
                engagements, credits_used = await self.linkup.get_post_reactions(post_url, max_results)
            else:
                engagements, credits_used = await self.linkup.get_post_comments(post_url, max_results)
        except Exception as e:
            logger.error(f"LinkUp {action.value} collection failed for {post_url}: {e}")
            return {"count": 0, "credits_used": 0}

        logger.info(f"{len(engagements)} {action.value}s fetched for {post_url}")

        inserted = 0
        for engagement in engagements:
            if self._stage(db, team_id, source_ref, post_url, action, engagement):
                inserted += 1

        logger.info(f"{inserted} new {action.value}s staged")
        return {"count": inserted, "credits_used": credits_used}

    async def collect_post_leads(self, db: Session, post_id: int, team_id: int) -> Dict[str, Any]:
        post = (
            db.query(CompanyPost)
            .options(joinedload(CompanyPost.company))
            .filter(CompanyPost.id == post_id, CompanyPost.team_id == team_id)
            .first()
        )
        if not post:
            raise PostNotFoundError(post_id)

        collection = (
            db.query(ScheduledCollection)
            .options(joinedload(ScheduledCollection.config))
            .filter(ScheduledCollection.post_id == post.id)
            .first()
        )
        if not collection or collection.config is None:
            raise ScheduledCollectionNotFoundError(post_id)

        max_reactions = collection.effective_max_reactions
        max_comments = collection.effective_max_comments
        source_ref = f"{post.company.company_name} • Post: {post.post_url}"

        logger.info(
            f"Collecting post {post.id} ({post.post_url}): "
            f"max {max_reactions} reactions, max {max_comments} comments"
        )

        result = _empty_result()
        try:
            if max_reactions > 0:
                reactions = await self._collect(
                    db, team_id, source_ref, post.post_url, ProspectAction.REACTION, max_reactions
                )
                result["reactions_collected"] = reactions["count"]
                result["leads_created"] += reactions["count"]
                result["credits_used"] += reactions["credits_used"]

            if max_comments > 0:
                comments = await self._collect(
                    db, team_id, source_ref, post.post_url, ProspectAction.COMMENT, max_comments
                )
                result["comments_collected"] = comments["count"]
                result["leads_created"] += comments["count"]
                result["credits_used"] += comments["credits_used"]

            collection.status = CollectionStatus.COMPLETED
            collection.collected_at = datetime.utcnow()
            collection.reactions_collected = result["reactions_collected"]
            collection.comments_collected = result["comments_collected"]
            collection.leads_created = result["leads_created"]
            collection.credits_used = result["credits_used"]
            db.commit()

            logger.info(
                f"Collection {collection.id} completed: {result['leads_created']} prospects, "
                f"{result['credits_used']} credits"
            )
            return result

        except Exception as e:
            db.rollback()
            logger.error(f"Collection {collection.id} failed: {e}", exc_info=True)

            failed = db.get(ScheduledCollection, collection.id)
            failed.status = CollectionStatus.FAILED
            failed.error_message = str(e)
            db.commit()

            result["error"] = str(e)
            return result

    async def run_due_collections(
        self,
        db: Session,
        now: Optional[datetime] = None,
        limit: int = 50,
    ) -> Dict[str, Any]:
        """Run every pending collection whose ``scheduled_for`` has passed."""
        now = now or datetime.utcnow()
        pending = (
            db.query(ScheduledCollection)
            .options(joinedload(ScheduledCollection.post).joinedload(CompanyPost.company))
            .filter(
                ScheduledCollection.status == CollectionStatus.PENDING,
                ScheduledCollection.scheduled_for <= now,
            )
            .order_by(ScheduledCollection.scheduled_for)
            .limit(limit)
            .all()
        )
        logger.info(f"collect-leads: {len(pending)} scheduled collections due")

        results: List[Dict[str, Any]] = []
        for collection in pending:
            collection_id = collection.id
            post_id = collection.post_id
            team_id = collection.team_id
            company_name = collection.post.company.company_name
            try:
                collection.status = CollectionStatus.PROCESSING
                db.commit()

                result = await self.collect_post_leads(db, post_id, team_id)
                results.append({
                    "collection_id": collection_id,
                    "post_id": post_id,
                    "team_id": team_id,
                    "company_name": company_name,
                    "success": "error" not in result,
                    **result,
                })
            except Exception as e:
                db.rollback()
                logger.error(f"Collection {collection_id} failed: {e}", exc_info=True)

                failed = db.get(ScheduledCollection, collection_id)
                failed.status = CollectionStatus.FAILED
                failed.error_message = str(e)
                db.commit()

                results.append({
                    "collection_id": collection_id,
                    "post_id": post_id,
                    "team_id": team_id,
                    "company_name": company_name,
                    "success": False,
                    "error": str(e),
                    **_empty_result(),
                })

        success_count = sum(1 for r in results if r["success"])
        summary = {
            "timestamp": now,
            "total_collections": len(pending),
            "success": success_count,
            "failures": len(results) - success_count,
            "total_leads": sum(r["leads_created"] for r in results),
            "total_credits": sum(r["credits_used"] for r in results),
            "results": results,
        }
        logger.info(
            f"collect-leads: {summary['success']} succeeded, {summary['failures']} failed, "
            f"{summary['total_leads']} prospects, {summary['total_credits']} credits"
        )
        return summary


def upcoming_collections(
    db: Session,
    now: Optional[datetime] = None,
    horizon: timedelta = UPCOMING_HORIZON,
    limit: int = UPCOMING_LIMIT,
) -> List[ScheduledCollection]:
    now = now or datetime.utcnow()
    return (
        db.query(ScheduledCollection)
        .options(joinedload(ScheduledCollection.post).joinedload(CompanyPost.company))
        .filter(
            ScheduledCollection.status == CollectionStatus.PENDING,
            ScheduledCollection.scheduled_for <= now + horizon,
        )
        .order_by(ScheduledCollection.scheduled_for)
        .limit(limit)
        .all()
    )
