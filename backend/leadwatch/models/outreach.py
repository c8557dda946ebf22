"""
Outreach models: ICP profiles, drafted messages and generated LinkedIn posts.
"""
from datetime import datetime
from enum import Enum

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship

from leadwatch.models.database import Base, str_enum


class MessageStatus(str, Enum):
    """Message delivery status enum"""
    DRAFT = "draft"
    APPROVED = "approved"
    SENT = "sent"
    DELIVERED = "delivered"
    FAILED = "failed"


class MessageChannel(str, Enum):
    LINKEDIN = "linkedin"
    EMAIL = "email"


class PostType(str, Enum):
    """Generated post flavour"""
    CALL_TO_ACTION = "call_to_action"
    PUBLICITE = "publicite"
    ANNONCE = "annonce"
    CLASSIQUE = "classique"


class PostStatus(str, Enum):
    DRAFT = "draft"
    GENERATED = "generated"
    SCHEDULED = "scheduled"
    PUBLISHED = "published"
    FAILED = "failed"


def _split_list(value):
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


class ICPProfile(Base):
    """
    Ideal customer profile. List-valued fields are stored comma separated.
    """
    __tablename__ = "icp_profiles"

    id = Column(Integer, primary_key=True, index=True)
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    industries = Column(Text)
    locations = Column(Text)
    buyer_roles = Column(Text)
    keywords_include = Column(Text)
    keywords_exclude = Column(Text)
    company_size_min = Column(Integer, default=1, nullable=False)
    company_size_max = Column(Integer, default=10000, nullable=False)
    product_category = Column(String(100))
    language = Column(String(10), default="fr", nullable=False)
    min_score = Column(Integer, default=50, nullable=False)
    problem_statement = Column(Text)
    ideal_customer_example = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    @property
    def industry_list(self):
        return _split_list(self.industries)

    @property
    def location_list(self):
        return _split_list(self.locations)

    @property
    def buyer_role_list(self):
        return _split_list(self.buyer_roles)

    @property
    def keywords_include_list(self):
        return _split_list(self.keywords_include)

    @property
    def keywords_exclude_list(self):
        return _split_list(self.keywords_exclude)


class Message(Base):
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, index=True)
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=False, index=True)
    lead_id = Column(Integer, ForeignKey("leads.id"), nullable=False, index=True)
    message_text = Column(Text, nullable=False)
    status = Column(str_enum(MessageStatus), default=MessageStatus.DRAFT, nullable=False, index=True)
    channel = Column(str_enum(MessageChannel), default=MessageChannel.LINKEDIN, nullable=False)
    conversation_id = Column(String(255))
    sent_at = Column(DateTime)
    delivered_at = Column(DateTime)
    error_message = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    lead = relationship("Lead", back_populates="messages")


class LinkedInPost(Base):
    """Outbound post drafted with the LLM and optionally scheduled for publishing"""
    __tablename__ = "linkedin_posts"

    id = Column(Integer, primary_key=True, index=True)
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=False, index=True)
    type = Column(str_enum(PostType), nullable=False)
    status = Column(str_enum(PostStatus), default=PostStatus.DRAFT, nullable=False)
    scheduled_for = Column(DateTime)
    published_at = Column(DateTime)
    user_context = Column(Text)
    generated_content = Column(Text)
    final_content = Column(Text)
    image_url = Column(Text)
    linkedin_post_id = Column(String(255))
    error_message = Column(Text)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    validated_by = Column(Integer, ForeignKey("users.id"))
    validated_at = Column(DateTime)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index("idx_linkedin_posts_status_scheduled", "status", "scheduled_for"),
    )
