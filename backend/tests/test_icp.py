"""Tests for the team ICP profile endpoints."""

import pytest

from leadwatch.models import ICPProfile


@pytest.mark.integration
class TestICPEndpoints:

    def test_missing_icp(self, client, auth_headers):
        response = client.get("/api/v1/icp", headers=auth_headers)

        assert response.status_code == 404
        assert response.json()["error"] == "ICP_PROFILE_NOT_FOUND"

    def test_create_then_update(self, client, auth_headers, db_session):
        created = client.put(
            "/api/v1/icp",
            json={
                "name": "French SaaS",
                "industries": ["SaaS", " Fintech ", ""],
                "buyer_roles": ["CEO"],
                "company_size_min": 20,
                "company_size_max": 200,
                "min_score": 70,
            },
            headers=auth_headers,
        )
        updated = client.put(
            "/api/v1/icp",
            json={"name": "French SaaS", "locations": ["Paris"]},
            headers=auth_headers,
        )

        assert created.status_code == 200
        assert created.json()["industries"] == ["SaaS", "Fintech"]
        assert created.json()["min_score"] == 70
        assert updated.json()["id"] == created.json()["id"]
        assert updated.json()["locations"] == ["Paris"]
        assert updated.json()["industries"] == []
        assert db_session.query(ICPProfile).count() == 1

        fetched = client.get("/api/v1/icp", headers=auth_headers)
        assert fetched.json()["locations"] == ["Paris"]

    def test_invalid_size_range(self, client, auth_headers):
        response = client.put(
            "/api/v1/icp",
            json={"company_size_min": 500, "company_size_max": 10},
            headers=auth_headers,
        )

        assert response.status_code == 422
