"""
Apify actor client

Runs LinkedIn scraping actors synchronously through the
``acts/{actor}/run-sync-get-dataset-items`` endpoint and normalizes their
loosely-typed dataset items into post and engagement records.
"""

import math
from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx
from pydantic import BaseModel, Field

from leadwatch.core.config import settings
from leadwatch.core.exceptions import ApifyAPIError, MissingAPIKeyError
from leadwatch.core.logging import setup_logging

logger = setup_logging(__name__)


class LinkedInPostData(BaseModel):
    post_id: str
    post_url: str
    author_name: str = ""
    author_url: str = ""
    content: str = ""
    published_at: str
    media_urls: List[Any] = Field(default_factory=list)
    like_count: int = 0
    comment_count: int = 0


class Engagement(BaseModel):
    type: str  # "reaction" | "comment"
    profile_url: str = ""
    profile_name: str = ""
    profile_title: str = ""
    profile_company: str = ""
    profile_picture_url: str = ""
    reaction_type: Optional[str] = None
    comment_text: Optional[str] = None
    commented_at: Optional[str] = None


def _first(item: Dict[str, Any], *keys: str, default: Any = "") -> Any:
    for key in keys:
        value = item.get(key)
        if value:
            return value
    return default


def _nested(item: Dict[str, Any], parent: str, key: str) -> Any:
    value = item.get(parent)
    if isinstance(value, dict):
        return value.get(key)
    return None


def estimate_credits_usage(reactions_count: int, comments_count: int) -> Dict[str, Any]:
    """Apify bills roughly one credit per 100 dataset items."""
    total_items = reactions_count + comments_count
    estimated = math.ceil(total_items / 100)
    plural = "s" if estimated > 1 else ""
    return {
        "estimated_credits": estimated,
        "message": (
            f"About {estimated} Apify credit{plural} will be used to extract {total_items} "
            f"engagements ({reactions_count} reactions + {comments_count} comments)."
        ),
    }


class ApifyClient:
    """Async client for the Apify actors used by the monitoring pipeline."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.APIFY_API_KEY
        self.base_url = (base_url or settings.APIFY_BASE_URL).rstrip("/")
        self.transport = transport

    async def run_actor(self, actor_id: str, payload: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Run an actor and return its dataset items."""
        if not self.api_key:
            raise MissingAPIKeyError("APIFY")

        actor = actor_id.replace("/", "~")
        url = f"{self.base_url}/acts/{actor}/run-sync-get-dataset-items"
        params = {"token": self.api_key, "format": "json"}

        try:
            async with httpx.AsyncClient(
                timeout=settings.APIFY_TIMEOUT_SECONDS, transport=self.transport
            ) as client:
                response = await client.post(url, params=params, json=payload)
                response.raise_for_status()
                items = response.json()
        except httpx.HTTPStatusError as e:
            raise ApifyAPIError(
                f"Apify actor {actor} failed: {e.response.status_code} {e.response.text[:200]}",
                details={"actor": actor, "status": e.response.status_code},
            ) from e
        except httpx.HTTPError as e:
            raise ApifyAPIError(
                f"Apify actor {actor} request failed: {e}",
                details={"actor": actor},
            ) from e

        if not isinstance(items, list):
            return []
        logger.info(f"Apify actor {actor} returned {len(items)} items")
        return items

    async def get_profile_posts(self, linkedin_url: str, max_posts: int = 5) -> List[LinkedInPostData]:
        items = await self.run_actor(
            settings.APIFY_PROFILE_POSTS_ACTOR,
            {
                "startUrls": [{"url": linkedin_url}],
                "includeActivities": True,
                "maxActivities": max_posts,
            },
        )

        posts: List[LinkedInPostData] = []
        for profile in items:
            activities = profile.get("activities") or profile.get("posts") or []
            for activity in activities[:max_posts]:
                posts.append(LinkedInPostData(
                    post_id=str(_first(activity, "urn", "id", "postId")),
                    post_url=str(_first(activity, "url", "postUrl", "link")),
                    author_name=str(_first(profile, "fullName", "name")),
                    author_url=linkedin_url,
                    content=str(_first(activity, "commentary", "text", "content")),
                    published_at=str(_first(
                        activity, "postedDate", "publishedAt", "createdAt",
                        default=datetime.utcnow().isoformat(),
                    )),
                    media_urls=_first(activity, "media", "images", default=[]),
                    like_count=_first(activity, "numLikes", "likes", default=0),
                    comment_count=_first(activity, "numComments", "comments", default=0),
                ))

        logger.info(f"Extracted {len(posts)} posts for {linkedin_url}")
        return posts

    async def get_post_reactions(self, post_url: str) -> List[Engagement]:
        items = await self.run_actor(settings.APIFY_POST_REACTIONS_ACTOR, {"postUrl": post_url})
        return [
            Engagement(
                type="reaction",
                profile_url=_first(item, "profileUrl", "url"),
                profile_name=_first(item, "name", "fullName"),
                profile_title=_first(item, "title", "headline"),
                profile_company=_first(item, "company", "companyName"),
                profile_picture_url=_first(item, "profilePictureUrl", "photo"),
                reaction_type=_first(item, "reactionType", "type", default="LIKE"),
            )
            for item in items
        ]

    async def get_post_comments(self, post_url: str) -> List[Engagement]:
        items = await self.run_actor(
            settings.APIFY_POST_COMMENTS_ACTOR, {"postUrl": post_url, "pageNumber": 1}
        )
        return [
            Engagement(
                type="comment",
                profile_url=item.get("authorUrl") or _nested(item, "author", "url") or "",
                profile_name=item.get("authorName") or _nested(item, "author", "name") or "",
                profile_title=item.get("authorTitle") or _nested(item, "author", "title") or "",
                profile_company=item.get("authorCompany") or _nested(item, "author", "company") or "",
                profile_picture_url=item.get("authorPictureUrl") or _nested(item, "author", "photo") or "",
                comment_text=_first(item, "text", "content"),
                commented_at=_first(item, "createdAt", "timestamp", default=datetime.utcnow().isoformat()),
            )
            for item in items
        ]

    async def get_post_engagements(
        self,
        post_url: str,
        include_reactions: bool = True,
        include_comments: bool = True,
    ) -> List[Engagement]:
        """Reactions first, then comments."""
        results: List[Engagement] = []
        if include_reactions:
            results.extend(await self.get_post_reactions(post_url))
        if include_comments:
            results.extend(await self.get_post_comments(post_url))
        return results
