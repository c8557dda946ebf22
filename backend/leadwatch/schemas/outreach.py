"""
Pydantic schemas for messages, generated LinkedIn posts and the ICP profile
"""
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

from leadwatch.models.outreach import MessageChannel, MessageStatus, PostStatus, PostType


class MessageType(str, Enum):
    CONNECTION = "connection"
    FOLLOW_UP = "follow_up"
    VALUE_PROPOSITION = "value_proposition"
    CUSTOM = "custom"


class CompanyInfo(BaseModel):
    """Sender's company pitch injected into templates"""
    name: str
    value: str
    cta: Optional[str] = None


class MessageGenerateRequest(BaseModel):
    lead_id: int
    message_type: MessageType
    custom_prompt: Optional[str] = Field(
        None,
        description="Template for custom messages: {firstName} {lastName} {title} {company} {location}",
    )
    company_info: Optional[CompanyInfo] = None

    @model_validator(mode="after")
    def custom_prompt_required(self):
        if self.message_type == MessageType.CUSTOM and not self.custom_prompt:
            raise ValueError("custom_prompt is required for custom messages")
        return self


class MessageUpdate(BaseModel):
    message_text: Optional[str] = Field(None, min_length=1)
    status: Optional[MessageStatus] = None


class MessageResponse(BaseModel):
    id: int
    lead_id: int
    message_text: str
    status: MessageStatus
    channel: MessageChannel
    sent_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class PostCreate(BaseModel):
    type: PostType = PostType.CLASSIQUE
    user_context: Optional[str] = None
    scheduled_for: Optional[datetime] = None
    image_url: Optional[str] = None


class PostGenerateRequest(BaseModel):
    type: PostType
    user_context: str = Field(..., min_length=1)


class PostImproveRequest(BaseModel):
    improvements: str = Field(..., min_length=1)


class PostUpdate(BaseModel):
    final_content: Optional[str] = None
    scheduled_for: Optional[datetime] = None
    image_url: Optional[str] = None


class PostResponse(BaseModel):
    id: int
    type: PostType
    status: PostStatus
    scheduled_for: Optional[datetime] = None
    published_at: Optional[datetime] = None
    user_context: Optional[str] = None
    generated_content: Optional[str] = None
    final_content: Optional[str] = None
    image_url: Optional[str] = None
    linkedin_post_id: Optional[str] = None
    error_message: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ICPProfileRequest(BaseModel):
    name: str = Field("Default ICP", min_length=1, max_length=255)
    industries: List[str] = Field(default_factory=list)
    locations: List[str] = Field(default_factory=list)
    buyer_roles: List[str] = Field(default_factory=list)
    keywords_include: List[str] = Field(default_factory=list)
    keywords_exclude: List[str] = Field(default_factory=list)
    company_size_min: int = Field(1, ge=1)
    company_size_max: int = Field(10000, ge=1)
    product_category: Optional[str] = Field(None, max_length=100)
    language: str = Field("fr", max_length=10)
    min_score: int = Field(50, ge=0, le=100)
    problem_statement: Optional[str] = None
    ideal_customer_example: Optional[str] = None

    @model_validator(mode="after")
    def size_range(self):
        if self.company_size_max < self.company_size_min:
            raise ValueError("company_size_max must be >= company_size_min")
        return self


class ICPProfileResponse(BaseModel):
    id: int
    name: str
    industries: List[str]
    locations: List[str]
    buyer_roles: List[str]
    keywords_include: List[str]
    keywords_exclude: List[str]
    company_size_min: int
    company_size_max: int
    product_category: Optional[str] = None
    language: str
    min_score: int
    problem_statement: Optional[str] = None
    ideal_customer_example: Optional[str] = None
    updated_at: datetime
