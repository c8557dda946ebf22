"""
Tests for company monitoring and the LinkUp webhook account lifecycle.
"""

from datetime import datetime

import pytest

from leadwatch.core.exceptions import DuplicateResourceError, WebhookAccountNotFoundError
from leadwatch.models import (
    CollectionStatus,
    CompanyPost,
    LeadCollectionConfig,
    MonitoredCompany,
    ScheduledCollection,
    WebhookAccount,
)
from leadwatch.services import webhook_manager

MONDAY = datetime(2025, 3, 3, 8, 0)
SATURDAY = datetime(2025, 3, 8, 8, 0)


@pytest.fixture
def webhook_account(db_session, team, user):
    account = WebhookAccount(
        team_id=team.id,
        linkup_account_id="acc_123",
        account_name="Sales account",
        webhook_url="https://api.example.com/api/v1/webhook/linkedin",
        created_by=user.id,
        is_active=False,
    )
    db_session.add(account)
    db_session.commit()
    return account


class TestWebhookManager:

    @pytest.mark.asyncio
    async def test_create_account(self, db_session, team, user, mock_linkup):
        mock_linkup.create_webhook_account.return_value = {"id": 987, "is_active": False}

        account = await webhook_manager.create_webhook_account(
            db_session, mock_linkup, team.id, user.id, "Sales", "https://hook", "li_at_token"
        )

        assert account.linkup_account_id == "987"
        assert account.country == "FR"
        assert account.is_active is False

    @pytest.mark.asyncio
    async def test_one_account_per_team(self, db_session, team, user, webhook_account, mock_linkup):
        with pytest.raises(DuplicateResourceError):
            await webhook_manager.create_webhook_account(
                db_session, mock_linkup, team.id, user.id, "Again", "https://hook", "token"
            )
        mock_linkup.create_webhook_account.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_start_and_stop(self, db_session, team, webhook_account, mock_linkup):
        mock_linkup.start_webhook_account.return_value = {}
        mock_linkup.stop_webhook_account.return_value = {}

        started = await webhook_manager.start_monitoring(db_session, mock_linkup, team.id)
        assert started.is_active is True
        assert started.last_started_at is not None

        stopped = await webhook_manager.stop_monitoring(db_session, mock_linkup, team.id)
        assert stopped.is_active is False
        mock_linkup.stop_webhook_account.assert_awaited_once_with("acc_123")

    @pytest.mark.asyncio
    async def test_start_without_account(self, db_session, team, mock_linkup):
        with pytest.raises(WebhookAccountNotFoundError):
            await webhook_manager.start_monitoring(db_session, mock_linkup, team.id)

    @pytest.mark.asyncio
    async def test_start_all_skips_weekends(self, db_session, webhook_account, mock_linkup):
        result = await webhook_manager.start_all(db_session, mock_linkup, now=SATURDAY)

        assert result["skipped"] is True
        mock_linkup.start_webhook_account.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_start_all_weekday(self, db_session, team, webhook_account, mock_linkup):
        mock_linkup.start_webhook_account.return_value = {"is_active": True}

        result = await webhook_manager.start_all(db_session, mock_linkup, now=MONDAY)

        assert result["total_accounts"] == 1
        assert result["success"] == 1
        assert result["results"][0] == {"team_id": team.id, "success": True, "is_active": True}

    @pytest.mark.asyncio
    async def test_stop_all_reports_failures(self, db_session, webhook_account, mock_linkup):
        webhook_account.is_active = True
        db_session.commit()
        mock_linkup.stop_webhook_account.side_effect = RuntimeError("LinkUp down")

        result = await webhook_manager.stop_all(db_session, mock_linkup, now=MONDAY)

        assert result["failures"] == 1
        assert result["results"][0]["error"] == "LinkUp down"

    @pytest.mark.asyncio
    async def test_update_keeps_unset_fields(self, db_session, team, webhook_account, mock_linkup):
        mock_linkup.update_webhook_account.return_value = {}

        account = await webhook_manager.update_webhook_account(
            db_session, mock_linkup, team.id, account_name="Renamed"
        )

        assert account.account_name == "Renamed"
        assert account.webhook_url == "https://api.example.com/api/v1/webhook/linkedin"


@pytest.mark.integration
class TestMonitoringEndpoints:

    def test_add_company_normalizes_url(self, client, auth_headers, db_session):
        response = client.post(
            "/api/v1/monitoring/companies",
            json={"linkedin_url": "https://www.linkedin.com/company/globex/", "company_name": "Globex"},
            headers=auth_headers,
        )

        assert response.status_code == 201
        data = response.json()
        assert data["linkedin_company_url"] == "linkedin.com/company/globex"
        assert data["config"]["delay_hours"] == 24
        assert data["config"]["max_reactions"] == 50

    def test_duplicate_company(self, client, auth_headers, monitored_company):
        response = client.post(
            "/api/v1/monitoring/companies",
            json={"linkedin_url": "https://linkedin.com/company/acme", "company_name": "Acme"},
            headers=auth_headers,
        )

        assert response.status_code == 409

    def test_overview(self, client, auth_headers, company_post, webhook_account):
        response = client.get("/api/v1/monitoring", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["new_posts_count"] == 1
        assert data["companies"][0]["new_posts_count"] == 1
        assert data["recent_posts"][0]["post_id"] == company_post.post_id
        assert data["webhook_status"]["has_account"] is True
        assert data["webhook_status"]["account"]["linkup_account_id"] == "acc_123"

    def test_company_posts_are_marked_read(self, client, auth_headers, db_session, monitored_company, company_post):
        response = client.get(
            f"/api/v1/monitoring/companies/{monitored_company.id}/posts",
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert len(response.json()) == 1
        db_session.refresh(company_post)
        assert company_post.is_new is False

    def test_mark_all_read(self, client, auth_headers, company_post):
        response = client.post("/api/v1/monitoring/posts/mark-read", headers=auth_headers)

        assert response.json() == {"success": True, "updated": 1}

    def test_update_config(self, client, auth_headers, monitored_company):
        response = client.put(
            f"/api/v1/monitoring/companies/{monitored_company.id}/config",
            json={"delay_hours": 48, "max_reactions": 100, "max_comments": 0, "is_enabled": False},
            headers=auth_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["delay_hours"] == 48
        assert data["is_enabled"] is False

    def test_configure_post_collection(self, client, auth_headers, db_session, company_post):
        response = client.post(
            f"/api/v1/monitoring/posts/{company_post.id}/collection",
            json={"delay_hours": 12, "max_reactions": 30, "max_comments": 15},
            headers=auth_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["estimated_credits"] == 5
        assert data["message"] == "Collection scheduled"
        assert data["collection"]["status"] == "pending"
        assert data["collection"]["scheduled_for"].startswith("2025-03-03T21:00")
        assert data["collection"]["max_reactions_override"] == 30

    def test_cancel_post_collection(self, client, auth_headers, db_session, company_post):
        response = client.post(
            f"/api/v1/monitoring/posts/{company_post.id}/collection",
            json={"enabled": False},
            headers=auth_headers,
        )

        assert response.json()["message"] == "Collection cancelled"
        collection = db_session.query(ScheduledCollection).one()
        assert collection.status == CollectionStatus.CANCELLED

    def test_remove_company_cascades(self, client, auth_headers, db_session, monitored_company, company_post):
        response = client.delete(
            f"/api/v1/monitoring/companies/{monitored_company.id}",
            headers=auth_headers,
        )

        assert response.json() == {"success": True}
        assert db_session.query(MonitoredCompany).count() == 0
        assert db_session.query(CompanyPost).count() == 0
        assert db_session.query(LeadCollectionConfig).count() == 0

    def test_other_team_cannot_touch_company(self, client, db_session, other_team, monitored_company):
        member = other_team.members[0]

        response = client.delete(
            f"/api/v1/monitoring/companies/{monitored_company.id}",
            headers={"X-User-ID": str(member.user_id)},
        )

        assert response.status_code == 404

    def test_webhook_account_and_toggle(self, client, auth_headers, mock_linkup):
        mock_linkup.create_webhook_account.return_value = {"id": "acc_9"}
        mock_linkup.start_webhook_account.return_value = {"is_active": True}

        created = client.post(
            "/api/v1/monitoring/webhook-account",
            json={"account_name": "Sales", "webhook_url": "https://hook", "login_token": "li_at"},
            headers=auth_headers,
        )
        toggled = client.post("/api/v1/monitoring/toggle", json={"action": "start"}, headers=auth_headers)

        assert created.status_code == 201
        assert created.json()["linkup_account_id"] == "acc_9"
        assert toggled.json()["is_active"] is True

    def test_toggle_without_account(self, client, auth_headers):
        response = client.post("/api/v1/monitoring/toggle", json={"action": "stop"}, headers=auth_headers)

        assert response.status_code == 404
        assert response.json()["error"] == "WEBHOOK_ACCOUNT_NOT_FOUND"
