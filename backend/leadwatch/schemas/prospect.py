"""
Pydantic schemas for prospect staging and the Chrome-extension import API

The extension posts camelCase keys (``profileUrl``, ``folderId``); both
spellings are accepted.
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, TypeAdapter, field_validator
from pydantic.alias_generators import to_camel

from leadwatch.models.prospect import ProspectAction, ProspectSource, ProspectStatus

_http_url = TypeAdapter(HttpUrl)


class ProspectImportItem(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str = Field(..., min_length=1)
    profile_url: str
    title: Optional[str] = None
    company: Optional[str] = None
    location: Optional[str] = None
    profile_picture_url: Optional[HttpUrl] = None

    @field_validator("profile_url")
    @classmethod
    def profile_url_must_be_url(cls, value: str) -> str:
        # Stored as sent so duplicates match earlier imports byte for byte
        value = value.strip()
        try:
            _http_url.validate_python(value)
        except ValueError:
            raise ValueError("profile_url must be a valid URL")
        return value


class ProspectImportRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    prospects: List[ProspectImportItem] = Field(..., min_length=1, max_length=100)
    folder_id: Optional[int] = None


class ProspectImportResponse(BaseModel):
    success: bool = True
    imported: int
    duplicates: int
    total: int
    folder_id: int


class ProspectResponse(BaseModel):
    id: int
    folder_id: Optional[int] = None
    source: ProspectSource
    source_ref: str
    action: ProspectAction
    post_url: Optional[str] = None
    reaction_type: Optional[str] = None
    comment_text: Optional[str] = None
    profile_url: str
    name: Optional[str] = None
    title: Optional[str] = None
    company: Optional[str] = None
    location: Optional[str] = None
    status: ProspectStatus
    ai_score: Optional[int] = None
    ai_reasoning: Optional[str] = None
    fetched_at: datetime

    model_config = {"from_attributes": True}


class ProspectScoreResponse(BaseModel):
    success: bool = True
    score: int = Field(..., ge=0, le=100)
    converted: bool
    reasoning: str
    lead_id: Optional[int] = None
