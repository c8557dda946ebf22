"""Tests for the token-guarded cron endpoints."""

from datetime import datetime, timedelta

import pytest

from leadwatch.models import CollectionStatus, CompanyPost, Lead, OAuthState, ScheduledCollection
from leadwatch.services.apify_client import Engagement, LinkedInPostData

pytestmark = pytest.mark.integration


def test_detect_posts(client, ingest_headers, db_session, monitored_company, mock_apify):
    mock_apify.get_profile_posts.return_value = [LinkedInPostData(
        post_id="urn:li:activity:9",
        post_url="https://www.linkedin.com/posts/acme_9",
        published_at="2025-03-05T10:00:00Z",
    )]

    response = client.get("/api/v1/cron/detect-posts", headers=ingest_headers)

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "profiles_checked": 1,
        "posts_detected": 1,
        "collections_scheduled": 1,
        "errors": [],
    }
    assert db_session.query(CompanyPost).count() == 1


def test_extract_leads(client, ingest_headers, db_session, company_post, monitored_company, mock_apify):
    db_session.add(ScheduledCollection(
        team_id=company_post.team_id,
        post_id=company_post.id,
        config_id=monitored_company.config.id,
        scheduled_for=datetime.utcnow() - timedelta(minutes=1),
        status=CollectionStatus.PENDING,
    ))
    db_session.commit()
    mock_apify.get_post_engagements.return_value = [
        Engagement(type="reaction", profile_url="https://www.linkedin.com/in/anne", profile_name="Anne Martin"),
    ]

    response = client.get("/api/v1/cron/extract-leads", headers=ingest_headers)

    body = response.json()
    assert body["success"] is True
    assert body["collections_processed"] == 1
    assert body["leads_created"] == 1
    assert db_session.query(Lead).count() == 1


def test_nothing_due(client, ingest_headers, mock_apify):
    response = client.get("/api/v1/cron/extract-leads", headers=ingest_headers)

    assert response.json()["collections_processed"] == 0
    mock_apify.get_post_engagements.assert_not_awaited()


def test_cleanup_oauth_states(client, ingest_headers, db_session, team, user):
    db_session.add(OAuthState(
        state="stale",
        team_id=team.id,
        user_id=user.id,
        provider="linkedin",
        expires_at=datetime.utcnow() - timedelta(hours=1),
    ))
    db_session.commit()

    response = client.get("/api/v1/cron/cleanup-oauth-states", headers=ingest_headers)

    assert response.json()["deleted_count"] == 1
    assert db_session.query(OAuthState).count() == 0


@pytest.mark.parametrize("path", ["/detect-posts", "/extract-leads", "/cleanup-oauth-states"])
def test_wrong_token_is_rejected(client, path):
    response = client.get(
        f"/api/v1/cron{path}", headers={"Authorization": "Bearer nope"}
    )

    assert response.status_code == 401
    assert response.json()["error"] == "INVALID_INGEST_TOKEN"
