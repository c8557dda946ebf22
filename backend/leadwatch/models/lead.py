"""
Lead model: a LinkedIn profile the team intends to contact
"""
from datetime import datetime
from enum import Enum

from sqlalchemy import (
    Column, Integer, String, DateTime, Text, JSON, ForeignKey, Index, CheckConstraint
)
from sqlalchemy.orm import relationship

from leadwatch.models.database import Base, str_enum


class LeadStatus(str, Enum):
    """Lead pipeline status enum"""
    NEW = "new"
    CONTACTED = "contacted"
    REPLIED = "replied"
    QUALIFIED = "qualified"
    LOST = "lost"


class SourceMode(str, Enum):
    """How the lead entered the pipeline"""
    CHAUD = "chaud"  # engaged with one of our own posts
    ESPION = "espion"  # engaged with a competitor post
    MAGNET = "magnet"  # lead magnet download
    FROID = "froid"  # cold list
    MONITORING = "monitoring"  # monitored company post, collected automatically


class EngagementType(str, Enum):
    REACTION = "reaction"
    COMMENT = "comment"


class Lead(Base):
    """
    Lead model representing a LinkedIn prospect with a heuristic score (0-100)
    """
    __tablename__ = "leads"

    __table_args__ = (
        Index("idx_leads_team_linkedin", "team_id", "linkedin_url"),
        Index("idx_leads_team_status", "team_id", "status"),
        Index("idx_leads_score", "score"),
        CheckConstraint("score >= 0 AND score <= 100", name="check_lead_score_range"),
    )

    id = Column(Integer, primary_key=True, index=True)
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=False, index=True)

    # Contact Information
    first_name = Column(String(120))
    last_name = Column(String(120))
    email = Column(String(255), index=True)
    phone = Column(String(50))
    title = Column(Text)
    location = Column(Text)
    linkedin_url = Column(String(512))
    profile_picture_url = Column(String(512))

    # Company Information
    company = Column(Text)
    company_size = Column(Integer)
    company_domain = Column(String(255))
    industry = Column(Text)

    # Pipeline
    status = Column(str_enum(LeadStatus), default=LeadStatus.NEW, nullable=False)
    score = Column(Integer, default=0, nullable=False)
    score_reason = Column(Text)

    # Provenance
    source_mode = Column(str_enum(SourceMode), nullable=False, index=True)
    source_post_url = Column(String(1024))
    engagement_type = Column(str_enum(EngagementType))
    reaction_type = Column(String(50))  # LIKE | PRAISE | INTEREST | ...
    comment_text = Column(Text)
    detected_post_id = Column(Integer, ForeignKey("company_posts.id"), index=True)

    # Additional Data
    profile_data = Column(JSON)
    tags = Column(Text)
    notes = Column(Text)

    last_contacted_at = Column(DateTime)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    messages = relationship("Message", back_populates="lead", cascade="all, delete-orphan")
    detected_post = relationship("CompanyPost")

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)

    def __repr__(self):
        return f"<Lead(id={self.id}, name='{self.full_name}', score={self.score})>"


def split_full_name(name: str) -> tuple:
    """Split "Jane Q. Doe" into ("Jane", "Q. Doe")."""
    parts = (name or "").split()
    if not parts:
        return "", ""
    return parts[0], " ".join(parts[1:])
