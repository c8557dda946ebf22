"""Tests for the LinkUp API client (HTTP mocked with httpx.MockTransport)."""

import json

import httpx
import pytest

from leadwatch.core.exceptions import LinkUpAPIError, MissingAPIKeyError
from leadwatch.services.linkup_client import LinkUpClient, _is_retryable
from leadwatch.services.retry_handler import RetryWithBackoff

BASE_URL = "https://api.linkup.test"


def fast_retry(attempts: int = 3) -> RetryWithBackoff:
    return RetryWithBackoff(
        max_retries=attempts - 1,
        base_delay=0.001,
        max_delay=0.01,
        jitter=0.0,
        retry_if=_is_retryable,
    )


def make_client(handler, attempts: int = 3, **kwargs) -> LinkUpClient:
    return LinkUpClient(
        api_key=kwargs.pop("api_key", "secret-key"),
        base_url=BASE_URL,
        mock=kwargs.pop("mock", False),
        transport=httpx.MockTransport(handler),
        retry_handler=fast_retry(attempts),
    )


class TestIngest:
    """Generic ingestion calls."""

    @pytest.mark.asyncio
    async def test_returns_items_and_sends_api_key(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["api_key"] = request.headers["x-api-key"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"items": [{"name": "Anne"}], "total": 1})

        client = make_client(handler)
        result = await client.ingest("/engagement/post", {"postUrl": "https://www.linkedin.com/posts/x"})

        assert seen == {
            "path": "/engagement/post",
            "api_key": "secret-key",
            "body": {"postUrl": "https://www.linkedin.com/posts/x"},
        }
        assert result.items == [{"name": "Anne"}]
        assert result.data["total"] == 1
        assert result.mock is False

    @pytest.mark.asyncio
    async def test_results_key_is_accepted(self):
        client = make_client(lambda request: httpx.Response(200, json={"results": [{"id": 1}]}))

        result = await client.ingest("/leads/search", {})

        assert result.items == [{"id": 1}]

    @pytest.mark.asyncio
    async def test_mock_mode_makes_no_request(self):
        def handler(request):
            raise AssertionError("no HTTP call expected in mock mode")

        client = make_client(handler, mock=True)
        result = await client.ingest("/leads/search", {})

        assert result.mock is True
        assert result.items == []

    @pytest.mark.asyncio
    async def test_missing_api_key(self):
        client = make_client(lambda request: httpx.Response(200, json={}), api_key="")

        with pytest.raises(MissingAPIKeyError):
            await client.ingest("/leads/search", {})


class TestRetries:
    """Only 429 and 5xx responses are retried."""

    @pytest.mark.asyncio
    async def test_retries_server_errors_then_succeeds(self):
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) < 3:
                return httpx.Response(503, text="busy")
            return httpx.Response(200, json={"items": []})

        client = make_client(handler, attempts=5)
        await client.ingest("/leads/search", {})

        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_client_error_is_not_retried(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(400, text="bad payload")

        client = make_client(handler, attempts=5)

        with pytest.raises(LinkUpAPIError) as exc_info:
            await client.ingest("/leads/search", {})

        assert len(calls) == 1
        assert exc_info.value.status == 400

    @pytest.mark.asyncio
    async def test_exhausted_retries_surface_upstream_status(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(429, text="slow down")

        client = make_client(handler, attempts=3)

        with pytest.raises(LinkUpAPIError) as exc_info:
            await client.ingest("/leads/search", {})

        assert len(calls) == 3
        assert exc_info.value.status == 429

    def test_default_backoff_doubles_from_one_second(self):
        client = LinkUpClient(api_key="secret-key", base_url=BASE_URL, mock=False)
        handler = client.retry_handler

        assert handler.base_delay == 1.0
        assert handler.max_retries == 4
        assert handler.jitter == 1.0

        handler.jitter = 0
        assert [handler._calculate_delay(n) for n in range(4)] == [1.0, 2.0, 4.0, 8.0]


class TestPostEngagements:

    @pytest.mark.asyncio
    async def test_reactions_skip_entries_without_profile(self):
        def handler(request):
            assert request.url.path == "/v1/linkedin/post/reactions"
            assert json.loads(request.content)["max_results"] == 25
            return httpx.Response(200, json={
                "reactions": [
                    {"profile_url": "https://www.linkedin.com/in/a", "name": "Anne", "reaction_type": "LIKE"},
                    {"name": "Ghost"},
                ],
                "credits_used": 2,
            })

        client = make_client(handler)
        reactions, credits = await client.get_post_reactions("https://www.linkedin.com/posts/x", 25)

        assert credits == 2
        assert len(reactions) == 1
        assert reactions[0].reaction_type == "LIKE"

    @pytest.mark.asyncio
    async def test_comments(self):
        client = make_client(lambda request: httpx.Response(200, json={
            "comments": [{"profile_url": "https://www.linkedin.com/in/b", "comment_text": "Bravo"}],
        }))

        comments, credits = await client.get_post_comments("https://www.linkedin.com/posts/x", 10)

        assert credits == 0
        assert comments[0].comment_text == "Bravo"

    @pytest.mark.asyncio
    async def test_fetch_profile_uses_public_identifier(self):
        def handler(request):
            assert request.method == "GET"
            assert request.url.path == "/profiles/jane-doe"
            return httpx.Response(200, json={"headline": "CTO"})

        client = make_client(handler)
        profile = await client.fetch_profile("https://www.linkedin.com/in/jane-doe/")

        assert profile == {"headline": "CTO"}


class TestWebhookAccounts:

    @pytest.mark.asyncio
    async def test_create_account_payload(self):
        def handler(request):
            body = json.loads(request.content)
            assert body["plateforme"] == "linkedin"
            assert body["login_token"] == "li_at"
            assert body["country"] == "FR"
            return httpx.Response(200, json={"id": "acc_1"})

        client = make_client(handler)
        remote = await client.create_webhook_account("Sales", "https://hook", "li_at")

        assert remote["id"] == "acc_1"

    @pytest.mark.asyncio
    async def test_update_drops_unset_fields(self):
        def handler(request):
            assert request.method == "PUT"
            assert json.loads(request.content) == {"account_name": "Renamed"}
            return httpx.Response(200, json={"id": "acc_1"})

        client = make_client(handler)
        await client.update_webhook_account("acc_1", account_name="Renamed", webhook_url=None)

    @pytest.mark.asyncio
    async def test_empty_body_response(self):
        client = make_client(lambda request: httpx.Response(204))

        assert await client.stop_webhook_account("acc_1") == {}
