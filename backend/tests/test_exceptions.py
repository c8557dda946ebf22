"""
Tests for custom exception hierarchy and exception handlers.

Verifies:
- Exception class attributes and inheritance
- Application exception handlers return correct status codes
- Error responses have correct structure
"""

import pytest
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.testclient import TestClient

from leadwatch.core.exceptions import (
    LeadWatchException,
    ValidationError,
    InvalidWebhookPayloadError,
    MissingRequiredFieldError,
    ResourceNotFoundError,
    LeadNotFoundError,
    MonitoredCompanyNotFoundError,
    ICPProfileNotFoundError,
    ConflictError,
    DuplicateResourceError,
    AuthenticationError,
    InvalidIngestTokenError,
    InvalidAPIKeyError,
    AuthorizationError,
    ExternalAPIError,
    LinkUpAPIError,
    ApifyAPIError,
    ConfigurationError,
    MissingAPIKeyError,
)
from leadwatch.main import leadwatch_exception_handler


class TestExceptionAttributes:
    """Test exception class attributes and initialization."""

    def test_base_exception_attributes(self):
        """Test LeadWatchException has correct attributes."""
        exc = LeadWatchException(
            message="Test error",
            error_code="TEST_ERROR",
            details={"key": "value"},
            status_code=500
        )

        assert exc.message == "Test error"
        assert exc.error_code == "TEST_ERROR"
        assert exc.details == {"key": "value"}
        assert exc.status_code == 500
        assert exc.timestamp is not None

    def test_base_exception_to_dict(self):
        exc = LeadWatchException(message="Test error", error_code="TEST_ERROR")

        error_dict = exc.to_dict()
        assert error_dict["error"] == "TEST_ERROR"
        assert error_dict["message"] == "Test error"
        assert "timestamp" in error_dict

    def test_validation_error_status_code(self):
        assert ValidationError().status_code == 400
        assert InvalidWebhookPayloadError().error_code == "INVALID_WEBHOOK_PAYLOAD"

    def test_missing_required_field(self):
        exc = MissingRequiredFieldError("postUrl")

        assert exc.status_code == 400
        assert exc.details["field_name"] == "postUrl"
        assert "postUrl" in exc.message

    def test_lead_not_found_error(self):
        """Test LeadNotFoundError includes lead_id in details."""
        exc = LeadNotFoundError(123)

        assert exc.error_code == "LEAD_NOT_FOUND"
        assert exc.status_code == 404
        assert exc.details["lead_id"] == 123
        assert "123" in exc.message

    def test_monitored_company_not_found(self):
        exc = MonitoredCompanyNotFoundError(7)

        assert exc.error_code == "MONITORED_COMPANY_NOT_FOUND"
        assert exc.details["company_id"] == 7

    def test_icp_not_found_message(self):
        exc = ICPProfileNotFoundError(team_id=1)

        assert exc.status_code == 404
        assert "configure your ICP" in exc.message

    def test_conflict_errors(self):
        assert ConflictError().status_code == 409
        assert DuplicateResourceError("Company already monitored").error_code == "DUPLICATE_RESOURCE"

    def test_authentication_errors(self):
        assert AuthenticationError().status_code == 401
        assert InvalidIngestTokenError().status_code == 401
        assert InvalidAPIKeyError().error_code == "INVALID_API_KEY"

    def test_authorization_error_status_code(self):
        assert AuthorizationError().status_code == 403

    def test_external_api_error_status_code(self):
        """Test ExternalAPIError has 502 status code (Bad Gateway)."""
        assert ExternalAPIError().status_code == 502

    @pytest.mark.parametrize("status,retryable", [
        (429, True),
        (500, True),
        (503, True),
        (400, False),
        (404, False),
    ])
    def test_linkup_error_retryable(self, status, retryable):
        exc = LinkUpAPIError(status=status, status_text="x", body="body")

        assert exc.status == status
        assert exc.details["upstream_status"] == status
        assert exc.is_retryable is retryable

    def test_linkup_error_truncates_body(self):
        exc = LinkUpAPIError(status=500, body="x" * 1000)

        assert len(exc.message) < 300

    def test_missing_api_key_error(self):
        exc = MissingAPIKeyError(service_name="LINKUP")

        assert exc.error_code == "MISSING_API_KEY"
        assert exc.status_code == 500
        assert exc.details["service_name"] == "LINKUP"
        assert "LINKUP" in exc.message


class TestExceptionInheritance:
    """Test exception inheritance hierarchy."""

    def test_not_found_hierarchy(self):
        exc = LeadNotFoundError(1)
        assert isinstance(exc, ResourceNotFoundError)
        assert isinstance(exc, LeadWatchException)

    def test_external_api_hierarchy(self):
        assert isinstance(LinkUpAPIError(status=500), ExternalAPIError)
        assert isinstance(ApifyAPIError(), ExternalAPIError)

    def test_configuration_hierarchy(self):
        assert isinstance(MissingAPIKeyError("OPENAI"), ConfigurationError)

    def test_ingest_token_is_authentication_error(self):
        assert isinstance(InvalidIngestTokenError(), AuthenticationError)


@pytest.fixture
def error_app():
    """Minimal app wired with the production exception handler."""
    test_app = FastAPI()
    test_app.add_exception_handler(LeadWatchException, leadwatch_exception_handler)

    @test_app.get("/not-found")
    async def not_found():
        raise LeadNotFoundError(999)

    @test_app.get("/upstream")
    async def upstream():
        raise LinkUpAPIError(status=503, status_text="Service Unavailable", body="down")

    @test_app.get("/conflict")
    async def conflict():
        raise DuplicateResourceError("Company already monitored")

    return TestClient(test_app)


class TestExceptionHandlers:
    """Test the LeadWatch exception handler."""

    def test_lead_not_found_handler(self, error_app):
        response = error_app.get("/not-found")

        assert response.status_code == 404
        data = response.json()
        assert data["error"] == "LEAD_NOT_FOUND"
        assert "999" in data["message"]

    def test_external_error_handler(self, error_app):
        response = error_app.get("/upstream")

        assert response.status_code == 502
        data = response.json()
        assert data["error"] == "LINKUP_API_ERROR"
        # Details should NOT be in response (only in logs)
        assert "details" not in data

    def test_conflict_handler(self, error_app):
        response = error_app.get("/conflict")

        assert response.status_code == 409
        assert response.json()["message"] == "Company already monitored"


class TestErrorResponseStructure:
    """Test error response structure consistency."""

    def test_error_codes_are_uppercase_with_underscores(self):
        test_cases = [
            (LinkUpAPIError(status=500), "LINKUP_API_ERROR"),
            (ApifyAPIError(), "APIFY_API_ERROR"),
            (InvalidIngestTokenError(), "INVALID_INGEST_TOKEN"),
            (LeadNotFoundError(1), "LEAD_NOT_FOUND"),
            (MissingAPIKeyError("test"), "MISSING_API_KEY"),
        ]

        for exc, expected_code in test_cases:
            assert exc.error_code == expected_code
            assert exc.error_code.isupper()
            assert " " not in exc.error_code
