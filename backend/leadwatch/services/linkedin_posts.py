"""
LinkedIn post drafting and scheduled publishing

Posts go draft -> generated (LLM) -> scheduled -> published | failed.
The publish cron picks every scheduled post whose time has come.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from leadwatch.core.exceptions import LinkedInAPIError, PostNotFoundError, ValidationError
from leadwatch.core.logging import setup_logging
from leadwatch.models.outreach import LinkedInPost, PostStatus, PostType
from leadwatch.models.tenancy import Team
from leadwatch.services.linkedin_publisher import LinkedInPublisher
from leadwatch.services.openai_service import OpenAIService

logger = setup_logging(__name__)

NO_CONTENT_ERROR = "No content to publish"
DEFAULT_TARGET_AUDIENCE = "B2B prospects"
DEFAULT_EXPERTISE = "lead generation and LinkedIn prospecting"
LIST_LIMIT = 50


def get_post(db: Session, team_id: int, post_id: int) -> LinkedInPost:
    post = db.query(LinkedInPost).filter(LinkedInPost.id == post_id, LinkedInPost.team_id == team_id).first()
    if not post:
        raise PostNotFoundError(post_id)
    return post


def list_posts(
    db: Session,
    team_id: int,
    status: Optional[PostStatus] = None,
    limit: int = LIST_LIMIT,
) -> List[LinkedInPost]:
    query = db.query(LinkedInPost).filter(LinkedInPost.team_id == team_id)
    if status is not None:
        query = query.filter(LinkedInPost.status == status)
    return query.order_by(LinkedInPost.created_at.desc(), LinkedInPost.id.desc()).limit(limit).all()


def create_post(
    db: Session,
    team_id: int,
    user_id: int,
    post_type: PostType = PostType.CLASSIQUE,
    user_context: Optional[str] = None,
    scheduled_for: Optional[datetime] = None,
    image_url: Optional[str] = None,
) -> LinkedInPost:
    post = LinkedInPost(
        team_id=team_id,
        type=post_type,
        status=PostStatus.DRAFT,
        user_context=user_context,
        scheduled_for=scheduled_for,
        image_url=image_url,
        created_by=user_id,
    )
    db.add(post)
    db.commit()
    db.refresh(post)
    return post


async def generate_post_content(
    db: Session,
    team: Team,
    post_id: int,
    post_type: PostType,
    user_context: str,
    llm: OpenAIService,
) -> LinkedInPost:
    post = get_post(db, team.id, post_id)

    content = await llm.generate_linkedin_post(
        post_type=post_type,
        user_context=user_context,
        company_name=team.name,
        target_audience=DEFAULT_TARGET_AUDIENCE,
        expertise=DEFAULT_EXPERTISE,
    )

    post.type = post_type
    post.user_context = user_context
    post.generated_content = content
    post.final_content = content
    post.status = PostStatus.GENERATED
    db.commit()
    db.refresh(post)
    return post


async def improve_post_content(
    db: Session,
    team_id: int,
    post_id: int,
    improvements: str,
    llm: OpenAIService,
) -> LinkedInPost:
    post = get_post(db, team_id, post_id)
    current = post.final_content or post.generated_content
    if not current:
        raise ValidationError("The post has no content to improve")

    post.final_content = await llm.improve_linkedin_post(current, improvements)
    db.commit()
    db.refresh(post)
    return post


def update_post(
    db: Session,
    team_id: int,
    post_id: int,
    final_content: Optional[str] = None,
    scheduled_for: Optional[datetime] = None,
    image_url: Optional[str] = None,
    user_id: Optional[int] = None,
) -> LinkedInPost:
    post = get_post(db, team_id, post_id)
    if post.status == PostStatus.PUBLISHED:
        raise ValidationError("This post is already published")

    if final_content is not None:
        post.final_content = final_content
    if image_url is not None:
        post.image_url = image_url
    if scheduled_for is not None:
        post.scheduled_for = scheduled_for
        post.status = PostStatus.SCHEDULED
        post.validated_by = user_id
        post.validated_at = datetime.utcnow()
    db.commit()
    db.refresh(post)
    return post


def list_due_posts(db: Session, now: Optional[datetime] = None) -> List[LinkedInPost]:
    now = now or datetime.utcnow()
    return (
        db.query(LinkedInPost)
        .filter(LinkedInPost.status == PostStatus.SCHEDULED, LinkedInPost.scheduled_for <= now)
        .order_by(LinkedInPost.scheduled_for)
        .all()
    )


def _mark_failed(db: Session, post: LinkedInPost, error: str) -> None:
    post.status = PostStatus.FAILED
    post.error_message = error
    db.commit()


def _mark_published(db: Session, post: LinkedInPost, linkedin_post_id: Optional[str]) -> None:
    post.status = PostStatus.PUBLISHED
    post.published_at = datetime.utcnow()
    post.linkedin_post_id = linkedin_post_id
    post.error_message = None
    db.commit()


async def publish_due_posts(
    db: Session,
    publisher: LinkedInPublisher,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    posts = list_due_posts(db, now)
    logger.info(f"publish-posts: {len(posts)} posts due")

    results = []
    for post in posts:
        post_id = post.id
        try:
            content = post.final_content or post.generated_content
            if not content:
                _mark_failed(db, post, NO_CONTENT_ERROR)
                results.append({"post_id": post_id, "success": False, "error": NO_CONTENT_ERROR})
                continue

            result = await publisher.publish_post(db, post.team_id, content, post.image_url)
            if result.success:
                _mark_published(db, post, result.post_id)
                results.append({"post_id": post_id, "success": True, "linkedin_post_id": result.post_id})
            else:
                _mark_failed(db, post, result.error or "Publishing failed")
                results.append({"post_id": post_id, "success": False, "error": result.error})

        except Exception as e:
            db.rollback()
            logger.error(f"Error publishing post {post_id}: {e}", exc_info=True)
            _mark_failed(db, db.get(LinkedInPost, post_id), str(e))
            results.append({"post_id": post_id, "success": False, "error": str(e)})

    return {"total_processed": len(results), "results": results}


async def publish_post_now(
    db: Session,
    team_id: int,
    post_id: int,
    publisher: LinkedInPublisher,
    user_id: Optional[int] = None,
) -> LinkedInPost:
    post = get_post(db, team_id, post_id)
    if post.status == PostStatus.PUBLISHED:
        raise ValidationError("This post is already published")

    content = post.final_content or post.generated_content
    if not content:
        raise ValidationError("The post has no content")

    result = await publisher.publish_post(db, team_id, content, post.image_url)
    if not result.success:
        _mark_failed(db, post, result.error or "Publishing failed")
        raise LinkedInAPIError(result.error or "Publishing failed", details={"post_id": post_id})

    post.validated_by = user_id
    post.validated_at = datetime.utcnow()
    _mark_published(db, post, result.post_id)
    db.refresh(post)
    return post
