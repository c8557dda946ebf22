"""
Prospect staging models

Raw engagements and Chrome-extension imports land in ``prospect_candidates``
before being scored and, when they fit the ICP, converted into leads.
"""
from datetime import datetime
from enum import Enum

from sqlalchemy import (
    Column, Integer, String, Text, DateTime, JSON, Boolean, ForeignKey, Index, UniqueConstraint
)
from sqlalchemy.orm import relationship

from leadwatch.models.database import Base, str_enum


class ProspectStatus(str, Enum):
    NEW = "new"
    ANALYZED = "analyzed"
    CONVERTED = "converted"


class ProspectSource(str, Enum):
    REAL_TIME_MONITORING = "real_time_monitoring"
    CHROME_EXTENSION = "chrome_extension"
    LINKUP = "linkup"


class ProspectAction(str, Enum):
    REACTION = "reaction"
    COMMENT = "comment"
    IMPORTED = "imported"


class ProspectFolder(Base):
    __tablename__ = "prospect_folders"

    id = Column(Integer, primary_key=True, index=True)
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    color = Column(String(20), default="#3b82f6", nullable=False)
    icon = Column(String(50), default="folder", nullable=False)
    is_default = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    prospects = relationship("ProspectCandidate", back_populates="folder")


class ProspectCandidate(Base):
    __tablename__ = "prospect_candidates"

    id = Column(Integer, primary_key=True, index=True)
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=False, index=True)
    folder_id = Column(Integer, ForeignKey("prospect_folders.id"), index=True)

    source = Column(str_enum(ProspectSource), nullable=False)
    source_ref = Column(String(1024), nullable=False)
    action = Column(str_enum(ProspectAction), nullable=False)

    # Engagement
    post_url = Column(String(1024), index=True)
    reaction_type = Column(String(50))
    comment_id = Column(String(255))
    comment_text = Column(Text)

    # Profile
    profile_url = Column(String(512), nullable=False, index=True)
    actor_urn = Column(String(255))
    name = Column(Text)
    title = Column(Text)
    company = Column(Text)
    location = Column(Text)
    profile_picture_url = Column(String(512))
    email = Column(String(255))
    phone = Column(String(50))

    # AI analysis
    status = Column(str_enum(ProspectStatus), default=ProspectStatus.NEW, nullable=False, index=True)
    ai_score = Column(Integer)
    ai_reasoning = Column(Text)
    enriched_profile = Column(JSON)
    raw = Column(JSON)

    fetched_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    folder = relationship("ProspectFolder", back_populates="prospects")

    __table_args__ = (
        UniqueConstraint(
            "team_id", "source", "source_ref", "action", "profile_url", "comment_id",
            name="uq_prospect_candidates_engagement",
        ),
        Index("idx_prospect_candidates_team_profile", "team_id", "profile_url"),
    )
