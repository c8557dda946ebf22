"""
Custom Exception Hierarchy for the LeadWatch platform

Provides domain-specific exceptions with structured error codes, logging,
and user-friendly messages. Every exception maps to an HTTP status through
the handlers registered in ``leadwatch.main``.
"""

import logging
from typing import Optional, Dict, Any
from datetime import datetime

logger = logging.getLogger(__name__)


class LeadWatchException(Exception):
    """
    Base exception for all LeadWatch errors.

    Attributes:
        error_code: Unique error identifier for logging/debugging
        message: User-friendly error message
        details: Technical details for logging (not exposed to users)
        status_code: HTTP status code (default: 500)
    """

    def __init__(
        self,
        message: str,
        error_code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None,
        status_code: int = 500
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.status_code = status_code
        self.timestamp = datetime.utcnow().isoformat()

        logger.error(
            f"[{error_code}] {message}",
            extra={
                "error_code": error_code,
                "details": details,
                "status_code": status_code,
                "timestamp": self.timestamp
            }
        )

        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.error_code,
            "message": self.message,
            "timestamp": self.timestamp
        }


# ============================================================================
# Validation Errors
# ============================================================================

class ValidationError(LeadWatchException):
    """Input validation errors."""

    def __init__(
        self,
        message: str = "Validation failed",
        error_code: str = "VALIDATION_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            error_code=error_code,
            details=details,
            status_code=400  # Bad Request
        )


class InvalidWebhookPayloadError(ValidationError):
    """Inbound webhook payload is missing data we need."""

    def __init__(
        self,
        message: str = "Invalid webhook payload",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            error_code="INVALID_WEBHOOK_PAYLOAD",
            details=details
        )


class MissingRequiredFieldError(ValidationError):
    """Missing required field errors."""

    def __init__(
        self,
        field_name: str,
        details: Optional[Dict[str, Any]] = None
    ):
        if details is None:
            details = {}
        details["field_name"] = field_name

        super().__init__(
            message=f"Required field '{field_name}' is missing",
            error_code="MISSING_REQUIRED_FIELD",
            details=details
        )


# ============================================================================
# Resource Not Found Errors
# ============================================================================

class ResourceNotFoundError(LeadWatchException):
    """Resource not found errors."""

    def __init__(
        self,
        message: str = "Resource not found",
        error_code: str = "RESOURCE_NOT_FOUND",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            error_code=error_code,
            details=details,
            status_code=404  # Not Found
        )


class _ScopedNotFoundError(ResourceNotFoundError):
    """Not-found error for a single row identified by its primary key."""

    resource_name = "Resource"
    code = "RESOURCE_NOT_FOUND"
    id_field = "resource_id"

    def __init__(
        self,
        resource_id: Any,
        details: Optional[Dict[str, Any]] = None
    ):
        if details is None:
            details = {}
        details[self.id_field] = resource_id

        super().__init__(
            message=f"{self.resource_name} with ID {resource_id} not found",
            error_code=self.code,
            details=details
        )


class LeadNotFoundError(_ScopedNotFoundError):
    resource_name = "Lead"
    code = "LEAD_NOT_FOUND"
    id_field = "lead_id"


class ProspectNotFoundError(_ScopedNotFoundError):
    resource_name = "Prospect"
    code = "PROSPECT_NOT_FOUND"
    id_field = "prospect_id"


class PostNotFoundError(_ScopedNotFoundError):
    resource_name = "Post"
    code = "POST_NOT_FOUND"
    id_field = "post_id"


class MonitoredCompanyNotFoundError(_ScopedNotFoundError):
    resource_name = "Monitored company"
    code = "MONITORED_COMPANY_NOT_FOUND"
    id_field = "company_id"


class ScheduledCollectionNotFoundError(_ScopedNotFoundError):
    resource_name = "Scheduled collection for post"
    code = "SCHEDULED_COLLECTION_NOT_FOUND"
    id_field = "post_id"


class MessageNotFoundError(_ScopedNotFoundError):
    resource_name = "Message"
    code = "MESSAGE_NOT_FOUND"
    id_field = "message_id"


class FolderNotFoundError(_ScopedNotFoundError):
    resource_name = "Folder"
    code = "FOLDER_NOT_FOUND"
    id_field = "folder_id"


class CampaignNotFoundError(_ScopedNotFoundError):
    resource_name = "Campaign"
    code = "CAMPAIGN_NOT_FOUND"
    id_field = "campaign_id"


class GmailNotConnectedError(ResourceNotFoundError):
    """The team has no active Gmail connection."""

    def __init__(
        self,
        team_id: int,
        details: Optional[Dict[str, Any]] = None
    ):
        if details is None:
            details = {}
        details["team_id"] = team_id

        super().__init__(
            message="Gmail not connected for this team",
            error_code="GMAIL_NOT_CONNECTED",
            details=details
        )


class WebhookAccountNotFoundError(ResourceNotFoundError):
    """The team has not created a LinkUp webhook account yet."""

    def __init__(
        self,
        team_id: int,
        details: Optional[Dict[str, Any]] = None
    ):
        if details is None:
            details = {}
        details["team_id"] = team_id

        super().__init__(
            message="No webhook account found for this team",
            error_code="WEBHOOK_ACCOUNT_NOT_FOUND",
            details=details
        )


class ICPProfileNotFoundError(ResourceNotFoundError):
    """The team has not configured an ideal customer profile."""

    def __init__(
        self,
        team_id: int,
        details: Optional[Dict[str, Any]] = None
    ):
        if details is None:
            details = {}
        details["team_id"] = team_id

        super().__init__(
            message="No ICP configured. Please configure your ICP first.",
            error_code="ICP_PROFILE_NOT_FOUND",
            details=details
        )


# ============================================================================
# Conflict Errors
# ============================================================================

class ConflictError(LeadWatchException):
    """State conflict errors."""

    def __init__(
        self,
        message: str = "Resource conflict",
        error_code: str = "CONFLICT",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            error_code=error_code,
            details=details,
            status_code=409  # Conflict
        )


class DuplicateResourceError(ConflictError):
    """Resource already exists for this team."""

    def __init__(
        self,
        message: str = "Resource already exists",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            error_code="DUPLICATE_RESOURCE",
            details=details
        )


# ============================================================================
# Authentication/Authorization Errors
# ============================================================================

class AuthenticationError(LeadWatchException):
    """Authentication errors."""

    def __init__(
        self,
        message: str = "Authentication failed",
        error_code: str = "AUTHENTICATION_FAILED",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            error_code=error_code,
            details=details,
            status_code=401  # Unauthorized
        )


class InvalidIngestTokenError(AuthenticationError):
    """Bearer token on a cron/ingest endpoint is missing or wrong."""

    def __init__(
        self,
        message: str = "Invalid API token",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            error_code="INVALID_INGEST_TOKEN",
            details=details
        )


class InvalidAPIKeyError(AuthenticationError):
    """Chrome extension API key is missing, malformed or revoked."""

    def __init__(
        self,
        message: str = "Invalid or inactive API key",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            error_code="INVALID_API_KEY",
            details=details
        )


class AuthorizationError(LeadWatchException):
    """Authorization/permission errors."""

    def __init__(
        self,
        message: str = "Access denied",
        error_code: str = "ACCESS_DENIED",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            error_code=error_code,
            details=details,
            status_code=403  # Forbidden
        )


# ============================================================================
# External API Errors
# ============================================================================

class ExternalAPIError(LeadWatchException):
    """Errors from external API calls (LinkUp, Apify, OpenAI, LinkedIn, Gmail)."""

    def __init__(
        self,
        message: str = "External API request failed",
        error_code: str = "EXTERNAL_API_ERROR",
        details: Optional[Dict[str, Any]] = None,
        status_code: int = 502  # Bad Gateway
    ):
        super().__init__(
            message=message,
            error_code=error_code,
            details=details,
            status_code=status_code
        )


class LinkUpAPIError(ExternalAPIError):
    """Non-2xx response from the LinkUp API."""

    def __init__(
        self,
        status: int,
        status_text: str = "",
        body: str = "",
        details: Optional[Dict[str, Any]] = None
    ):
        if details is None:
            details = {}
        details["upstream_status"] = status

        self.status = status
        super().__init__(
            message=f"LinkUp API error: {status} {status_text} - {body[:200]}",
            error_code="LINKUP_API_ERROR",
            details=details
        )

    @property
    def is_retryable(self) -> bool:
        """Rate limits and upstream server errors are worth retrying."""
        return self.status == 429 or self.status >= 500


class ApifyAPIError(ExternalAPIError):
    """Errors from Apify actor runs."""

    def __init__(
        self,
        message: str = "Apify actor run failed",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            error_code="APIFY_API_ERROR",
            details=details
        )


class OpenAIServiceError(ExternalAPIError):
    """Errors from OpenAI completions."""

    def __init__(
        self,
        message: str = "OpenAI request failed",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            error_code="OPENAI_API_ERROR",
            details=details
        )


class LinkedInAPIError(ExternalAPIError):
    """Errors from the LinkedIn REST and OAuth endpoints."""

    def __init__(
        self,
        message: str = "LinkedIn API request failed",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            error_code="LINKEDIN_API_ERROR",
            details=details
        )


class GmailAPIError(ExternalAPIError):
    """Errors from the Gmail API and Google OAuth endpoints."""

    def __init__(
        self,
        message: str = "Gmail API request failed",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            error_code="GMAIL_API_ERROR",
            details=details
        )


# ============================================================================
# Configuration Errors
# ============================================================================

class ConfigurationError(LeadWatchException):
    """Configuration errors."""

    def __init__(
        self,
        message: str = "Configuration error",
        error_code: str = "CONFIGURATION_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            error_code=error_code,
            details=details,
            status_code=500
        )


class MissingAPIKeyError(ConfigurationError):
    """Missing API key configuration errors."""

    def __init__(
        self,
        service_name: str,
        details: Optional[Dict[str, Any]] = None
    ):
        if details is None:
            details = {}
        details["service_name"] = service_name

        super().__init__(
            message=f"{service_name} API key not configured",
            error_code="MISSING_API_KEY",
            details=details
        )


# ============================================================================
# Database Errors
# ============================================================================

class DatabaseError(LeadWatchException):
    """Database operation errors."""

    def __init__(
        self,
        message: str = "Database operation failed",
        error_code: str = "DATABASE_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            error_code=error_code,
            details=details,
            status_code=500
        )
