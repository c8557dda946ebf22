"""
Pytest configuration and fixtures for the LeadWatch test suite.

Environment variables are set before the application is imported so the
settings object picks them up. External APIs are never called: adapters are
replaced with ``AsyncMock`` objects through ``app.dependency_overrides``.
"""

import os

from cryptography.fernet import Fernet

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["INGEST_API_TOKEN"] = "test-ingest-token"
os.environ["CREDENTIAL_ENCRYPTION_KEY"] = Fernet.generate_key().decode()
os.environ["LINKUP_API_KEY"] = "test-linkup-key"
os.environ["LINKUP_MOCK"] = "false"
os.environ["LINKEDIN_CLIENT_ID"] = "test-client-id"
os.environ["LINKEDIN_CLIENT_SECRET"] = "test-client-secret"
os.environ["GOOGLE_CLIENT_ID"] = "test-google-client-id"
os.environ["GOOGLE_CLIENT_SECRET"] = "test-google-client-secret"
os.environ["TESTING"] = "true"

from datetime import datetime
from typing import Generator
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from leadwatch.dependencies import (
    get_apify_client,
    get_email_service,
    get_linkedin_publisher,
    get_linkup_client,
    get_openai_service,
)
from leadwatch.main import app
from leadwatch.models import (
    CompanyPost,
    LeadCollectionConfig,
    MonitoredCompany,
    Team,
    TeamMember,
    TeamRole,
    User,
)
from leadwatch.models.database import Base, get_db

INGEST_TOKEN = "test-ingest-token"

# Single in-memory database shared by every connection of a test
test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


@pytest.fixture(scope="function")
def db_session() -> Generator:
    """Create a fresh database session for each test."""
    Base.metadata.create_all(bind=test_engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def mock_linkup() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def mock_apify() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def mock_llm() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def mock_publisher() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def mock_email_service() -> AsyncMock:
    return AsyncMock()


@pytest.fixture(scope="function")
def client(
    db_session, mock_linkup, mock_apify, mock_llm, mock_publisher, mock_email_service
) -> Generator[TestClient, None, None]:
    """Create a test client with database and external client overrides."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_linkup_client] = lambda: mock_linkup
    app.dependency_overrides[get_apify_client] = lambda: mock_apify
    app.dependency_overrides[get_openai_service] = lambda: mock_llm
    app.dependency_overrides[get_linkedin_publisher] = lambda: mock_publisher
    app.dependency_overrides[get_email_service] = lambda: mock_email_service

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def user(db_session) -> User:
    user = User(email="owner@example.com", name="Alice Martin")
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture
def team(db_session, user) -> Team:
    team = Team(name="Acme Growth")
    db_session.add(team)
    db_session.flush()
    db_session.add(TeamMember(team_id=team.id, user_id=user.id, role=TeamRole.OWNER))
    db_session.commit()
    return team


@pytest.fixture
def other_team(db_session) -> Team:
    member = User(email="rival@example.com", name="Bob")
    team = Team(name="Rival Corp")
    db_session.add_all([member, team])
    db_session.flush()
    db_session.add(TeamMember(team_id=team.id, user_id=member.id, role=TeamRole.OWNER))
    db_session.commit()
    return team


@pytest.fixture
def auth_headers(user, team) -> dict:
    """Dashboard headers acting as the seeded team owner."""
    return {"X-User-ID": str(user.id)}


@pytest.fixture
def ingest_headers() -> dict:
    return {"Authorization": f"Bearer {INGEST_TOKEN}"}


@pytest.fixture
def monitored_company(db_session, team, user) -> MonitoredCompany:
    company = MonitoredCompany(
        team_id=team.id,
        linkedin_company_url="linkedin.com/company/acme",
        company_name="Acme",
        added_by=user.id,
    )
    company.config = LeadCollectionConfig(
        team_id=team.id,
        delay_hours=24,
        max_reactions=50,
        max_comments=50,
        is_enabled=True,
    )
    db_session.add(company)
    db_session.commit()
    return company


@pytest.fixture
def company_post(db_session, monitored_company) -> CompanyPost:
    post = CompanyPost(
        team_id=monitored_company.team_id,
        monitored_company_id=monitored_company.id,
        post_id="urn:li:activity:7001",
        post_url="https://www.linkedin.com/posts/acme_launch-activity-7001",
        author_name="Acme",
        published_at=datetime(2025, 3, 3, 9, 0),
    )
    db_session.add(post)
    db_session.commit()
    return post


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests without I/O")
    config.addinivalue_line("markers", "integration: tests going through the HTTP API")
