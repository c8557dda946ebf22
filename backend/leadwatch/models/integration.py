"""
Integration models: Chrome-extension API keys, LinkedIn OAuth and Gmail.

OAuth tokens are stored Fernet-encrypted (see ``leadwatch.core.security``).
"""
from datetime import datetime

from sqlalchemy import Column, Integer, String, Text, DateTime, Boolean, ForeignKey

from leadwatch.models.database import Base


class ApiKey(Base):
    __tablename__ = "api_keys"

    id = Column(Integer, primary_key=True, index=True)
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=False, unique=True)
    key_hash = Column(Text, nullable=False, index=True)  # sha256 hex, plaintext is never stored
    key_preview = Column(String(20), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    last_used_at = Column(DateTime)


class LinkedInOAuthCredential(Base):
    __tablename__ = "linkedin_oauth_credentials"

    id = Column(Integer, primary_key=True, index=True)
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=False, unique=True)
    access_token = Column(Text, nullable=False)  # Encrypted
    refresh_token = Column(Text)  # Encrypted
    expires_at = Column(DateTime, nullable=False)
    scope = Column(Text, nullable=False)
    token_type = Column(String(50), default="Bearer")
    linkedin_member_urn = Column(String(255))
    connected_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    connected_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    last_refreshed_at = Column(DateTime)
    is_active = Column(Boolean, default=True, nullable=False)


class GmailConnection(Base):
    """Google OAuth tokens used to send campaign emails (one per team)"""
    __tablename__ = "gmail_connections"

    id = Column(Integer, primary_key=True, index=True)
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=False, unique=True)
    access_token = Column(Text, nullable=False)  # Encrypted
    refresh_token = Column(Text)  # Encrypted
    expires_at = Column(DateTime, nullable=False)
    scope = Column(Text, nullable=False)
    token_type = Column(String(50), default="Bearer")
    google_email = Column(String(255))
    connected_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    connected_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    last_refreshed_at = Column(DateTime)
    is_active = Column(Boolean, default=True, nullable=False)


class OAuthState(Base):
    __tablename__ = "oauth_states"

    id = Column(Integer, primary_key=True, index=True)
    state = Column(String(255), nullable=False, unique=True)
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    provider = Column(String(50), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    expires_at = Column(DateTime, nullable=False, index=True)
    used = Column(Boolean, default=False, nullable=False)
