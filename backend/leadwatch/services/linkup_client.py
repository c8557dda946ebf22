"""
LinkUp API client

Thin async adapter over the LinkUp scraping API (https://api.linkupapi.com):
- Generic ingestion calls with exponential-backoff retry on 429/5xx
- Post reactions and comments for the scheduled collector
- Profile lookup for prospect enrichment
- Webhook account lifecycle (create/start/stop/update)

Authentication is a static ``x-api-key`` header.
"""

import re
from typing import Any, Dict, List, Optional, Tuple

import httpx
from pydantic import BaseModel, Field

from leadwatch.core.config import settings
from leadwatch.core.exceptions import LinkUpAPIError, MissingAPIKeyError
from leadwatch.core.logging import setup_logging
from leadwatch.services.retry_handler import RetryWithBackoff

logger = setup_logging(__name__)

PROFILE_ID_PATTERN = re.compile(r"in/([^/?]+)")


class IngestResult(BaseModel):
    """Normalized ingestion response."""
    data: Dict[str, Any] = Field(default_factory=dict)
    items: List[Dict[str, Any]] = Field(default_factory=list)
    mock: bool = False


class Reaction(BaseModel):
    actor_urn: Optional[str] = None
    profile_url: str
    name: Optional[str] = None
    title: Optional[str] = None
    company: Optional[str] = None
    location: Optional[str] = None
    reaction_type: Optional[str] = None

    model_config = {"extra": "allow"}


class Comment(BaseModel):
    comment_id: Optional[str] = None
    actor_urn: Optional[str] = None
    profile_url: str
    name: Optional[str] = None
    title: Optional[str] = None
    company: Optional[str] = None
    location: Optional[str] = None
    comment_text: Optional[str] = None

    model_config = {"extra": "allow"}


def _is_retryable(exc: Exception) -> bool:
    return isinstance(exc, LinkUpAPIError) and exc.is_retryable


class LinkUpClient:
    """
    Async LinkUp API client.

    Every call is retried up to ``LINKUP_MAX_ATTEMPTS`` times in total, but
    only when LinkUp answers 429 or 5xx. Delays are 2^n seconds (1, 2, 4, 8)
    plus up to one second of jitter.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        mock: Optional[bool] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        retry_handler: Optional[RetryWithBackoff] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.LINKUP_API_KEY
        self.base_url = (base_url or settings.LINKUP_API_BASE).rstrip("/")
        self.mock = settings.LINKUP_MOCK if mock is None else mock
        self.transport = transport
        self.retry_handler = retry_handler or RetryWithBackoff(
            max_retries=max(settings.LINKUP_MAX_ATTEMPTS - 1, 0),
            base_delay=1.0,
            max_delay=60.0,
            exponential_base=2.0,
            jitter=1.0,
            retry_if=_is_retryable,
        )

    def get_api_config(self) -> Dict[str, Any]:
        return {
            "base_url": self.base_url,
            "mock": self.mock,
            "has_api_key": bool(self.api_key),
        }

    async def _send(
        self,
        method: str,
        path: str,
        body: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Single HTTP round trip. Raises LinkUpAPIError on non-2xx."""
        async with httpx.AsyncClient(
            base_url=self.base_url,
            timeout=settings.LINKUP_TIMEOUT_SECONDS,
            transport=self.transport,
            headers={
                "Content-Type": "application/json",
                "x-api-key": self.api_key,
            },
        ) as client:
            response = await client.request(method, path, json=body if method != "GET" else None)

        if response.is_error:
            raise LinkUpAPIError(
                status=response.status_code,
                status_text=response.reason_phrase,
                body=response.text,
                details={"path": path, "method": method},
            )

        if not response.content:
            return {}
        return response.json()

    async def _call(
        self,
        method: str,
        path: str,
        body: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        if not self.api_key:
            raise MissingAPIKeyError("LINKUP")

        logger.info(f"LinkUp {method} {path}")
        return await self.retry_handler.execute(self._send, method, path, body)

    async def ingest(
        self,
        path: str,
        body: Optional[Dict[str, Any]] = None,
        method: str = "POST",
    ) -> IngestResult:
        """
        Call an arbitrary LinkUp endpoint and normalize the item list.

        In mock mode no request is made and an empty item list is returned.
        """
        if self.mock:
            logger.info(f"LinkUp mock mode: skipping {method} {path}")
            return IngestResult(data={}, items=[], mock=True)

        data = await self._call(method, path, body)
        items = data.get("items") or data.get("results") or []
        return IngestResult(data=data, items=items, mock=False)

    async def get_post_reactions(self, post_url: str, max_results: int) -> Tuple[List[Reaction], int]:
        data = await self._call(
            "POST",
            "/v1/linkedin/post/reactions",
            {"post_url": post_url, "max_results": max_results},
        )
        reactions = [Reaction(**item) for item in data.get("reactions") or [] if item.get("profile_url")]
        return reactions, int(data.get("credits_used") or 0)

    async def get_post_comments(self, post_url: str, max_results: int) -> Tuple[List[Comment], int]:
        data = await self._call(
            "POST",
            "/v1/linkedin/post/comments",
            {"post_url": post_url, "max_results": max_results},
        )
        comments = [Comment(**item) for item in data.get("comments") or [] if item.get("profile_url")]
        return comments, int(data.get("credits_used") or 0)

    async def fetch_profile(self, profile_url: str) -> Dict[str, Any]:
        """Fetch a full profile (headline, experience, skills) for enrichment."""
        match = PROFILE_ID_PATTERN.search(profile_url)
        profile_id = match.group(1) if match else profile_url
        return await self._call("GET", f"/profiles/{profile_id}")

    # ------------------------------------------------------------------
    # Webhook accounts
    # ------------------------------------------------------------------

    async def create_webhook_account(
        self,
        account_name: str,
        webhook_url: str,
        login_token: str,
        country: str = "FR",
    ) -> Dict[str, Any]:
        return await self._call(
            "POST",
            "/v1/webhooks/accounts",
            {
                "plateforme": "linkedin",
                "account_name": account_name,
                "webhook_url": webhook_url,
                "login_token": login_token,
                "country": country,
            },
        )

    async def start_webhook_account(self, account_id: str) -> Dict[str, Any]:
        return await self._call("POST", f"/v1/webhooks/accounts/{account_id}/start")

    async def stop_webhook_account(self, account_id: str) -> Dict[str, Any]:
        return await self._call("POST", f"/v1/webhooks/accounts/{account_id}/stop")

    async def update_webhook_account(self, account_id: str, **fields: Any) -> Dict[str, Any]:
        payload = {key: value for key, value in fields.items() if value is not None}
        return await self._call("PUT", f"/v1/webhooks/accounts/{account_id}", payload)
