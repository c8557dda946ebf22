"""
LinkedIn UGC publishing

Publishes a text post (optionally with one image) as the member who
connected the team's LinkedIn account. Errors are reported in the result,
never raised.
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx
from sqlalchemy.orm import Session

from leadwatch.core.logging import setup_logging
from leadwatch.services.linkedin_oauth import USERINFO_URL, LinkedInOAuthService

logger = setup_logging(__name__)

API_BASE = "https://api.linkedin.com/v2"
IMAGE_RECIPE = "urn:li:digitalmediaRecipe:feedshare-image"
UPLOAD_MECHANISM = "com.linkedin.digitalmedia.uploading.MediaUploadHttpRequest"


@dataclass
class PublishResult:
    success: bool
    post_id: Optional[str] = None
    error: Optional[str] = None


class LinkedInPublisher:
    def __init__(
        self,
        oauth: Optional[LinkedInOAuthService] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.transport = transport
        self.oauth = oauth or LinkedInOAuthService(transport=transport)

    async def _upload_image(
        self,
        client: httpx.AsyncClient,
        access_token: str,
        person_urn: str,
        image_url: str,
    ) -> Optional[str]:
        """Register and upload the image. Returns the asset URN, or None on failure."""
        try:
            register = await client.post(
                f"{API_BASE}/assets?action=registerUpload",
                headers={"Authorization": f"Bearer {access_token}"},
                json={
                    "registerUploadRequest": {
                        "recipes": [IMAGE_RECIPE],
                        "owner": person_urn,
                        "serviceRelationships": [
                            {"relationshipType": "OWNER", "identifier": "urn:li:userGeneratedContent"}
                        ],
                    }
                },
            )
            if register.is_error:
                logger.error(f"Image registration failed: {register.status_code}")
                return None

            value = register.json()["value"]
            upload_url = value["uploadMechanism"][UPLOAD_MECHANISM]["uploadUrl"]

            image = await client.get(image_url)
            image.raise_for_status()

            upload = await client.put(
                upload_url,
                headers={"Authorization": f"Bearer {access_token}"},
                content=image.content,
            )
            if upload.is_error:
                logger.error(f"Image upload failed: {upload.status_code}")
                return None
            return value["asset"]

        except (httpx.HTTPError, KeyError, ValueError) as e:
            logger.error(f"Error uploading image: {e}")
            return None

    async def publish_post(
        self,
        db: Session,
        team_id: int,
        content: str,
        image_url: Optional[str] = None,
    ) -> PublishResult:
        try:
            access_token = await self.oauth.get_valid_access_token(db, team_id)
            if not access_token:
                return PublishResult(success=False, error="LinkedIn OAuth not configured for this team")

            async with httpx.AsyncClient(timeout=30.0, transport=self.transport) as client:
                profile = await client.get(USERINFO_URL, headers={"Authorization": f"Bearer {access_token}"})
                if profile.is_error:
                    return PublishResult(success=False, error="Could not fetch LinkedIn profile")
                person_urn = f"urn:li:person:{profile.json()['sub']}"

                share_content: Dict[str, Any] = {
                    "shareCommentary": {"text": content},
                    "shareMediaCategory": "IMAGE" if image_url else "NONE",
                }
                if image_url:
                    asset = await self._upload_image(client, access_token, person_urn, image_url)
                    if asset:
                        share_content["media"] = [
                            {"status": "READY", "originalUrl": image_url, "media": asset}
                        ]
                    else:
                        share_content["shareMediaCategory"] = "NONE"

                response = await client.post(
                    f"{API_BASE}/ugcPosts",
                    headers={
                        "Authorization": f"Bearer {access_token}",
                        "X-Restli-Protocol-Version": "2.0.0",
                    },
                    json={
                        "author": person_urn,
                        "lifecycleState": "PUBLISHED",
                        "specificContent": {"com.linkedin.ugc.ShareContent": share_content},
                        "visibility": {"com.linkedin.ugc.MemberNetworkVisibility": "PUBLIC"},
                    },
                )

            if response.is_error:
                logger.error(f"LinkedIn publish error {response.status_code}: {response.text[:200]}")
                return PublishResult(success=False, error=f"LinkedIn error: {response.status_code}")

            data = response.json()
            post_id = data.get("id") or (data.get("activityUrn") or "").split(":")[-1] or None
            logger.info(f"Published LinkedIn post {post_id} for team {team_id}")
            return PublishResult(success=True, post_id=post_id)

        except Exception as e:
            logger.error(f"Error publishing to LinkedIn: {e}", exc_info=True)
            return PublishResult(success=False, error=str(e) or "Publishing failed")
