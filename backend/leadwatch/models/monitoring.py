"""
Post monitoring models

A monitored company (or personal profile) publishes posts; each detected post
gets one scheduled collection that harvests its reactions and comments after
the configured delay.
"""
from datetime import datetime
from enum import Enum

from sqlalchemy import (
    Column, Integer, String, Text, DateTime, JSON, Boolean, ForeignKey, Index, UniqueConstraint
)
from sqlalchemy.orm import relationship

from leadwatch.models.database import Base, str_enum


class ProfileType(str, Enum):
    COMPANY = "company"
    PERSONAL = "personal"


class CollectionStatus(str, Enum):
    """Scheduled collection lifecycle: pending -> processing -> completed | failed (or cancelled)"""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class WebhookAccount(Base):
    """LinkUp webhook account that pushes new posts for the team (one per team)"""
    __tablename__ = "webhook_accounts"

    id = Column(Integer, primary_key=True, index=True)
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=False, unique=True, index=True)
    linkup_account_id = Column(String(255), nullable=False, unique=True)
    account_name = Column(String(255), nullable=False)
    webhook_url = Column(Text, nullable=False)
    country = Column(String(10), default="FR", nullable=False)
    is_active = Column(Boolean, default=False, nullable=False)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    last_started_at = Column(DateTime)
    last_stopped_at = Column(DateTime)


class MonitoredCompany(Base):
    __tablename__ = "monitored_companies"

    id = Column(Integer, primary_key=True, index=True)
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=False, index=True)
    linkedin_company_url = Column(Text, nullable=False)  # normalized, no scheme / www / trailing slash
    company_name = Column(String(255), nullable=False)
    company_id = Column(String(255))
    logo_url = Column(Text)
    profile_type = Column(str_enum(ProfileType), default=ProfileType.COMPANY, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    added_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    added_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    last_post_at = Column(DateTime)
    last_checked_at = Column(DateTime)
    total_posts_received = Column(Integer, default=0, nullable=False)

    config = relationship(
        "LeadCollectionConfig", back_populates="company", uselist=False, cascade="all, delete-orphan"
    )
    posts = relationship("CompanyPost", back_populates="company", cascade="all, delete-orphan")

    __table_args__ = (
        UniqueConstraint("linkedin_company_url", "team_id", name="uq_monitored_companies_url_team"),
        Index("idx_monitored_companies_last_post", "last_post_at"),
    )


class CompanyPost(Base):
    __tablename__ = "company_posts"

    id = Column(Integer, primary_key=True, index=True)
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=False, index=True)
    monitored_company_id = Column(Integer, ForeignKey("monitored_companies.id"), nullable=False, index=True)
    post_id = Column(String(255), nullable=False)
    post_url = Column(Text, nullable=False)
    author_name = Column(String(255))
    author_url = Column(Text)
    content = Column(Text)
    post_type = Column(String(50), default="regular", nullable=False)
    media_urls = Column(JSON)
    published_at = Column(DateTime, nullable=False, index=True)
    received_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    is_new = Column(Boolean, default=True, nullable=False, index=True)
    webhook_payload = Column(JSON)

    company = relationship("MonitoredCompany", back_populates="posts")
    collection = relationship(
        "ScheduledCollection", back_populates="post", uselist=False, cascade="all, delete-orphan"
    )

    __table_args__ = (
        UniqueConstraint("post_id", "team_id", name="uq_company_posts_post_team"),
    )


class LeadCollectionConfig(Base):
    __tablename__ = "lead_collection_configs"

    id = Column(Integer, primary_key=True, index=True)
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=False, index=True)
    monitored_company_id = Column(
        Integer, ForeignKey("monitored_companies.id"), nullable=False, unique=True
    )
    delay_hours = Column(Integer, default=24, nullable=False)
    max_reactions = Column(Integer, default=50, nullable=False)
    max_comments = Column(Integer, default=50, nullable=False)
    is_enabled = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    company = relationship("MonitoredCompany", back_populates="config")


class ScheduledCollection(Base):
    __tablename__ = "scheduled_collections"

    id = Column(Integer, primary_key=True, index=True)
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=False, index=True)
    post_id = Column(Integer, ForeignKey("company_posts.id"), nullable=False, unique=True)
    config_id = Column(Integer, ForeignKey("lead_collection_configs.id"), nullable=False)
    scheduled_for = Column(DateTime, nullable=False, index=True)
    status = Column(str_enum(CollectionStatus), default=CollectionStatus.PENDING, nullable=False, index=True)
    max_reactions_override = Column(Integer)
    max_comments_override = Column(Integer)
    collected_at = Column(DateTime)
    reactions_collected = Column(Integer, default=0, nullable=False)
    comments_collected = Column(Integer, default=0, nullable=False)
    leads_created = Column(Integer, default=0, nullable=False)
    credits_used = Column(Integer, default=0, nullable=False)
    error_message = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    post = relationship("CompanyPost", back_populates="collection")
    config = relationship("LeadCollectionConfig")

    @property
    def effective_max_reactions(self) -> int:
        if self.max_reactions_override is not None:
            return self.max_reactions_override
        return self.config.max_reactions

    @property
    def effective_max_comments(self) -> int:
        if self.max_comments_override is not None:
            return self.max_comments_override
        return self.config.max_comments
