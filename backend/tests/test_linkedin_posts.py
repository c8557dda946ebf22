"""Tests for LinkedIn post drafting, scheduling and publishing."""

import json
from datetime import datetime, timedelta
from unittest.mock import AsyncMock

import httpx
import pytest

from leadwatch.core.exceptions import LinkedInAPIError, PostNotFoundError, ValidationError
from leadwatch.models.outreach import LinkedInPost, PostStatus, PostType
from leadwatch.services import linkedin_posts
from leadwatch.services.linkedin_oauth import USERINFO_URL
from leadwatch.services.linkedin_posts import NO_CONTENT_ERROR
from leadwatch.services.linkedin_publisher import API_BASE, LinkedInPublisher, PublishResult

NOW = datetime(2025, 3, 5, 12, 0)


def make_post(db, team, user, status=PostStatus.GENERATED, content="Hello LinkedIn", scheduled_for=None):
    post = LinkedInPost(
        team_id=team.id,
        type=PostType.CLASSIQUE,
        status=status,
        final_content=content,
        scheduled_for=scheduled_for,
        created_by=user.id,
    )
    db.add(post)
    db.commit()
    db.refresh(post)
    return post


class TestPostService:
    """Draft lifecycle through the service layer"""

    @pytest.mark.asyncio
    async def test_generate_sets_content(self, db_session, team, user):
        post = linkedin_posts.create_post(db_session, team.id, user.id)
        llm = AsyncMock()
        llm.generate_linkedin_post.return_value = "Big news from Acme"

        updated = await linkedin_posts.generate_post_content(
            db_session, team, post.id, PostType.ANNONCE, "We launched v2", llm
        )

        assert updated.status == PostStatus.GENERATED
        assert updated.type == PostType.ANNONCE
        assert updated.generated_content == "Big news from Acme"
        assert updated.final_content == "Big news from Acme"
        kwargs = llm.generate_linkedin_post.call_args.kwargs
        assert kwargs["company_name"] == "Acme Growth"
        assert kwargs["user_context"] == "We launched v2"

    @pytest.mark.asyncio
    async def test_improve_requires_content(self, db_session, team, user):
        post = linkedin_posts.create_post(db_session, team.id, user.id)

        with pytest.raises(ValidationError):
            await linkedin_posts.improve_post_content(db_session, team.id, post.id, "shorter", AsyncMock())

    def test_scheduling_marks_validated(self, db_session, team, user):
        post = make_post(db_session, team, user)

        updated = linkedin_posts.update_post(
            db_session, team.id, post.id, scheduled_for=NOW, user_id=user.id
        )

        assert updated.status == PostStatus.SCHEDULED
        assert updated.validated_by == user.id
        assert updated.validated_at is not None

    def test_published_post_is_read_only(self, db_session, team, user):
        post = make_post(db_session, team, user, status=PostStatus.PUBLISHED)

        with pytest.raises(ValidationError):
            linkedin_posts.update_post(db_session, team.id, post.id, final_content="edit")

    def test_posts_are_team_scoped(self, db_session, team, other_team, user):
        post = make_post(db_session, team, user)

        with pytest.raises(PostNotFoundError):
            linkedin_posts.get_post(db_session, other_team.id, post.id)

    def test_list_due_posts(self, db_session, team, user):
        due = make_post(db_session, team, user, PostStatus.SCHEDULED, scheduled_for=NOW - timedelta(minutes=5))
        make_post(db_session, team, user, PostStatus.SCHEDULED, scheduled_for=NOW + timedelta(hours=1))
        make_post(db_session, team, user, PostStatus.GENERATED, scheduled_for=NOW - timedelta(hours=1))

        assert [p.id for p in linkedin_posts.list_due_posts(db_session, NOW)] == [due.id]


class TestPublishDuePosts:

    @pytest.mark.asyncio
    async def test_success_and_failure(self, db_session, team, user):
        ok = make_post(db_session, team, user, PostStatus.SCHEDULED, scheduled_for=NOW - timedelta(hours=2))
        ko = make_post(db_session, team, user, PostStatus.SCHEDULED, scheduled_for=NOW - timedelta(hours=1))
        publisher = AsyncMock()
        publisher.publish_post.side_effect = [
            PublishResult(success=True, post_id="urn:li:share:1"),
            PublishResult(success=False, error="LinkedIn error: 500"),
        ]

        result = await linkedin_posts.publish_due_posts(db_session, publisher, NOW)

        assert result["total_processed"] == 2
        db_session.refresh(ok)
        db_session.refresh(ko)
        assert ok.status == PostStatus.PUBLISHED
        assert ok.linkedin_post_id == "urn:li:share:1"
        assert ok.published_at is not None
        assert ko.status == PostStatus.FAILED
        assert ko.error_message == "LinkedIn error: 500"

    @pytest.mark.asyncio
    async def test_post_without_content_fails(self, db_session, team, user):
        post = make_post(db_session, team, user, PostStatus.SCHEDULED, content=None, scheduled_for=NOW)
        publisher = AsyncMock()

        result = await linkedin_posts.publish_due_posts(db_session, publisher, NOW)

        publisher.publish_post.assert_not_called()
        assert result["results"] == [{"post_id": post.id, "success": False, "error": NO_CONTENT_ERROR}]
        db_session.refresh(post)
        assert post.status == PostStatus.FAILED

    @pytest.mark.asyncio
    async def test_unexpected_error_does_not_stop_the_batch(self, db_session, team, user):
        first = make_post(db_session, team, user, PostStatus.SCHEDULED, scheduled_for=NOW - timedelta(hours=2))
        second = make_post(db_session, team, user, PostStatus.SCHEDULED, scheduled_for=NOW - timedelta(hours=1))
        publisher = AsyncMock()
        publisher.publish_post.side_effect = [RuntimeError("boom"), PublishResult(success=True, post_id="42")]

        result = await linkedin_posts.publish_due_posts(db_session, publisher, NOW)

        assert [r["success"] for r in result["results"]] == [False, True]
        db_session.refresh(first)
        db_session.refresh(second)
        assert first.status == PostStatus.FAILED
        assert first.error_message == "boom"
        assert second.status == PostStatus.PUBLISHED

    @pytest.mark.asyncio
    async def test_publish_now_failure(self, db_session, team, user):
        post = make_post(db_session, team, user)
        publisher = AsyncMock()
        publisher.publish_post.return_value = PublishResult(success=False, error="LinkedIn OAuth not configured for this team")

        with pytest.raises(LinkedInAPIError):
            await linkedin_posts.publish_post_now(db_session, team.id, post.id, publisher)

        db_session.refresh(post)
        assert post.status == PostStatus.FAILED


class TestLinkedInPublisher:

    @staticmethod
    def oauth(token="token-abc"):
        oauth = AsyncMock()
        oauth.get_valid_access_token.return_value = token
        return oauth

    @pytest.mark.asyncio
    async def test_publishes_text_post(self, db_session, team):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            if str(request.url) == USERINFO_URL:
                return httpx.Response(200, json={"sub": "abc123"})
            if str(request.url) == f"{API_BASE}/ugcPosts":
                seen["body"] = json.loads(request.content)
                seen["auth"] = request.headers["Authorization"]
                return httpx.Response(201, json={"id": "urn:li:share:99"})
            return httpx.Response(404)

        publisher = LinkedInPublisher(oauth=self.oauth(), transport=httpx.MockTransport(handler))

        result = await publisher.publish_post(db_session, team.id, "Hello world")

        assert result == PublishResult(success=True, post_id="urn:li:share:99")
        assert seen["auth"] == "Bearer token-abc"
        assert seen["body"]["author"] == "urn:li:person:abc123"
        share = seen["body"]["specificContent"]["com.linkedin.ugc.ShareContent"]
        assert share["shareCommentary"]["text"] == "Hello world"
        assert share["shareMediaCategory"] == "NONE"

    @pytest.mark.asyncio
    async def test_missing_token(self, db_session, team):
        publisher = LinkedInPublisher(oauth=self.oauth(token=None), transport=httpx.MockTransport(lambda r: httpx.Response(500)))

        result = await publisher.publish_post(db_session, team.id, "Hello")

        assert result.success is False
        assert result.error == "LinkedIn OAuth not configured for this team"

    @pytest.mark.asyncio
    async def test_api_error_is_reported(self, db_session, team):
        def handler(request: httpx.Request) -> httpx.Response:
            if str(request.url) == USERINFO_URL:
                return httpx.Response(200, json={"sub": "abc123"})
            return httpx.Response(422, text="bad post")

        publisher = LinkedInPublisher(oauth=self.oauth(), transport=httpx.MockTransport(handler))

        result = await publisher.publish_post(db_session, team.id, "Hello")

        assert result == PublishResult(success=False, error="LinkedIn error: 422")


@pytest.mark.integration
class TestPostEndpoints:

    def test_create_generate_schedule(self, client, auth_headers, mock_llm):
        mock_llm.generate_linkedin_post.return_value = "Generated copy"

        created = client.post("/api/v1/posts", json={"user_context": "Product launch"}, headers=auth_headers)
        post_id = created.json()["id"]
        generated = client.post(
            f"/api/v1/posts/{post_id}/generate",
            json={"type": "call_to_action", "user_context": "Book a demo"},
            headers=auth_headers,
        )
        scheduled = client.patch(
            f"/api/v1/posts/{post_id}",
            json={"scheduled_for": "2030-01-01T09:00:00"},
            headers=auth_headers,
        )

        assert created.status_code == 201
        assert created.json()["status"] == "draft"
        assert created.json()["type"] == "classique"
        assert generated.json()["final_content"] == "Generated copy"
        assert scheduled.json()["status"] == "scheduled"

    def test_publish_now(self, client, auth_headers, db_session, team, user, mock_publisher):
        post = make_post(db_session, team, user)
        mock_publisher.publish_post.return_value = PublishResult(success=True, post_id="777")

        response = client.post(f"/api/v1/posts/{post.id}/publish", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["status"] == "published"
        assert response.json()["linkedin_post_id"] == "777"

    def test_publish_now_failure_is_502(self, client, auth_headers, db_session, team, user, mock_publisher):
        post = make_post(db_session, team, user)
        mock_publisher.publish_post.return_value = PublishResult(success=False, error="LinkedIn error: 500")

        response = client.post(f"/api/v1/posts/{post.id}/publish", headers=auth_headers)

        assert response.status_code == 502
        assert response.json()["error"] == "LINKEDIN_API_ERROR"

    def test_list_filters_by_status(self, client, auth_headers, db_session, team, user):
        make_post(db_session, team, user, PostStatus.PUBLISHED)
        make_post(db_session, team, user, PostStatus.GENERATED)

        response = client.get("/api/v1/posts", params={"status": "published"}, headers=auth_headers)

        assert [p["status"] for p in response.json()] == ["published"]

    def test_cron_publish(self, client, ingest_headers, db_session, team, user, mock_publisher):
        post = make_post(db_session, team, user, PostStatus.SCHEDULED, scheduled_for=datetime.utcnow() - timedelta(minutes=1))
        mock_publisher.publish_post.return_value = PublishResult(success=True, post_id="1")

        preview = client.get("/api/v1/cron/publish-posts", headers=ingest_headers)
        run = client.post("/api/v1/cron/publish-posts", headers=ingest_headers)

        assert preview.json()["count"] == 1
        assert preview.json()["posts"][0]["id"] == post.id
        assert preview.json()["posts"][0]["has_content"] is True
        assert run.json()["success"] is True
        assert run.json()["total_processed"] == 1

    def test_cron_requires_token(self, client):
        response = client.post("/api/v1/cron/publish-posts")

        assert response.status_code == 401
