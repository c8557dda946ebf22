"""
Chrome-extension API keys

Keys look like ``lead_<64 hex chars>``. Only the sha256 hash and a short
preview are stored; the plaintext is shown once at creation.
"""
import hashlib
import secrets
from datetime import datetime
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from leadwatch.core.exceptions import DuplicateResourceError, InvalidAPIKeyError, ResourceNotFoundError
from leadwatch.core.logging import setup_logging
from leadwatch.models.integration import ApiKey

logger = setup_logging(__name__)

API_KEY_PREFIX = "lead_"
API_KEY_BYTES = 32


def hash_api_key(key: str) -> str:
    return hashlib.sha256(key.encode()).hexdigest()


def generate_api_key() -> Tuple[str, str, str]:
    """Return ``(key, key_hash, preview)``."""
    key = f"{API_KEY_PREFIX}{secrets.token_hex(API_KEY_BYTES)}"
    preview = f"{key[:12]}...{key[-4:]}"
    return key, hash_api_key(key), preview


def validate_api_key_format(key: str) -> bool:
    return key.startswith(API_KEY_PREFIX) and len(key) == len(API_KEY_PREFIX) + API_KEY_BYTES * 2


class ApiKeyService:
    """Per-team API key management (one key per team)."""

    def get(self, db: Session, team_id: int) -> Optional[ApiKey]:
        return db.query(ApiKey).filter(ApiKey.team_id == team_id).first()

    def create(self, db: Session, team_id: int) -> Tuple[ApiKey, str]:
        if self.get(db, team_id):
            raise DuplicateResourceError(
                "An API key already exists for this team. Regenerate it instead.",
                details={"team_id": team_id},
            )

        key, key_hash, preview = generate_api_key()
        record = ApiKey(team_id=team_id, key_hash=key_hash, key_preview=preview, is_active=True)
        db.add(record)
        db.commit()
        db.refresh(record)

        logger.info(f"API key {preview} created for team {team_id}")
        return record, key

    def regenerate(self, db: Session, team_id: int) -> Tuple[ApiKey, str]:
        record = self.get(db, team_id)
        if record is None:
            return self.create(db, team_id)

        key, key_hash, preview = generate_api_key()
        record.key_hash = key_hash
        record.key_preview = preview
        record.is_active = True
        record.created_at = datetime.utcnow()
        record.last_used_at = None
        db.commit()
        db.refresh(record)

        logger.info(f"API key regenerated for team {team_id} ({preview})")
        return record, key

    def delete(self, db: Session, team_id: int) -> None:
        record = self.get(db, team_id)
        if record is None:
            raise ResourceNotFoundError("No API key for this team", error_code="API_KEY_NOT_FOUND")
        db.delete(record)
        db.commit()
        logger.info(f"API key deleted for team {team_id}")

    def authenticate(self, db: Session, raw_key: Optional[str]) -> ApiKey:
        """Resolve the active key row for a raw ``x-api-key`` header value."""
        if not raw_key:
            raise InvalidAPIKeyError("API key is required")
        if not validate_api_key_format(raw_key):
            raise InvalidAPIKeyError("Invalid API key format")

        record = (
            db.query(ApiKey)
            .filter(ApiKey.key_hash == hash_api_key(raw_key), ApiKey.is_active.is_(True))
            .first()
        )
        if record is None:
            raise InvalidAPIKeyError()

        record.last_used_at = datetime.utcnow()
        db.commit()
        return record


api_key_service = ApiKeyService()
