"""
External client providers.

Routes receive their API adapters through these dependencies so tests can
swap them with ``app.dependency_overrides``.
"""
from leadwatch.services.apify_client import ApifyClient
from leadwatch.services.campaign_email import EmailService
from leadwatch.services.gmail_oauth import GmailOAuthService
from leadwatch.services.linkedin_oauth import LinkedInOAuthService
from leadwatch.services.linkedin_publisher import LinkedInPublisher
from leadwatch.services.linkup_client import LinkUpClient
from leadwatch.services.openai_service import OpenAIService


def get_linkup_client() -> LinkUpClient:
    return LinkUpClient()


def get_apify_client() -> ApifyClient:
    return ApifyClient()


def get_openai_service() -> OpenAIService:
    return OpenAIService()


def get_linkedin_oauth() -> LinkedInOAuthService:
    return LinkedInOAuthService()


def get_linkedin_publisher() -> LinkedInPublisher:
    return LinkedInPublisher()


def get_gmail_oauth() -> GmailOAuthService:
    return GmailOAuthService()


def get_email_service() -> EmailService:
    return EmailService()
