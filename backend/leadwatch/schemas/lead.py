"""
Pydantic schemas for leads, scoring and manual import
"""
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, HttpUrl

from leadwatch.models.lead import EngagementType, LeadStatus, SourceMode


class ICPCriteria(BaseModel):
    """Targeting criteria used for rule-based lead scoring"""
    target_titles: List[str] = Field(default_factory=list)
    target_company_sizes: List[int] = Field(default_factory=list)
    target_industries: List[str] = Field(default_factory=list)
    target_locations: List[str] = Field(default_factory=list)
    keywords: List[str] = Field(default_factory=list)


class LeadResponse(BaseModel):
    id: int
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    title: Optional[str] = None
    company: Optional[str] = None
    company_size: Optional[int] = None
    industry: Optional[str] = None
    location: Optional[str] = None
    linkedin_url: Optional[str] = None
    profile_picture_url: Optional[str] = None
    status: LeadStatus
    score: int
    score_reason: Optional[str] = None
    source_mode: SourceMode
    source_post_url: Optional[str] = None
    engagement_type: Optional[EngagementType] = None
    reaction_type: Optional[str] = None
    comment_text: Optional[str] = None
    tags: Optional[str] = None
    notes: Optional[str] = None
    last_contacted_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class LeadDetailResponse(LeadResponse):
    profile_data: Optional[Dict[str, Any]] = None
    score_label: Dict[str, str] = Field(default_factory=dict)


class LeadUpdate(BaseModel):
    """Partial update; only provided fields change"""
    first_name: Optional[str] = Field(None, max_length=120)
    last_name: Optional[str] = Field(None, max_length=120)
    email: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    title: Optional[str] = None
    company: Optional[str] = None
    company_size: Optional[int] = Field(None, ge=0)
    industry: Optional[str] = None
    location: Optional[str] = None
    status: Optional[LeadStatus] = None
    tags: Optional[str] = None
    notes: Optional[str] = None


class LeadScoreRequest(BaseModel):
    """Explicit criteria; when omitted the team's ICP profile is used"""
    icp_criteria: Optional[ICPCriteria] = None


class BatchScoreRequest(BaseModel):
    source_mode: Optional[SourceMode] = None
    icp_criteria: Optional[ICPCriteria] = None


class LeadScoreResponse(BaseModel):
    lead_id: int
    score: int = Field(..., ge=0, le=100)
    reasons: List[str]
    label: Dict[str, str]


class BatchScoreResponse(BaseModel):
    scored: int
    results: List[LeadScoreResponse]


class ImportFromPostRequest(BaseModel):
    post_url: HttpUrl
    source_mode: Literal["chaud", "espion"]


class ImportFromPostResponse(BaseModel):
    success: bool = True
    count: int
    leads: List[LeadResponse]
