"""
Heuristic lead scoring

Additive point system (capped at 100) combining:
- How the lead was sourced and how strongly they engaged
- Substring matches against ICP titles, industries and locations
- Company size proximity to any target size
- Profile completeness signals (company domain, detailed headline)

Every point awarded is recorded as a human-readable reason.
"""
from typing import List, Optional, Tuple

from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from leadwatch.core.exceptions import LeadNotFoundError
from leadwatch.core.logging import setup_logging
from leadwatch.models.lead import EngagementType, Lead, SourceMode
from leadwatch.schemas.lead import ICPCriteria

logger = setup_logging(__name__)

MAX_SCORE = 100
STRONG_REACTIONS = ("PRAISE", "INTEREST")
COMPANY_SIZE_TOLERANCE = 200
DETAILED_HEADLINE_LENGTH = 50


class ScoringResult(BaseModel):
    score: int = Field(..., ge=0, le=100)
    reasons: List[str] = Field(default_factory=list)

    @property
    def score_reason(self) -> str:
        return "; ".join(self.reasons)


def _contains_any(value: Optional[str], targets: List[str]) -> bool:
    if not value or not targets:
        return False
    value = value.lower()
    return any(target.lower() in value for target in targets)


def _source_points(lead: Lead) -> List[Tuple[int, str]]:
    is_comment = lead.engagement_type == EngagementType.COMMENT

    if lead.source_mode == SourceMode.CHAUD:
        points = [(30, "Lead from own post (+30)")]
        if is_comment:
            points.append((20, "Engaged with comment (+20)"))
        elif lead.reaction_type in STRONG_REACTIONS:
            points.append((15, f"Strong reaction: {lead.reaction_type} (+15)"))
        else:
            points.append((10, "Reacted to post (+10)"))
        return points

    if lead.source_mode == SourceMode.ESPION:
        points = [(20, "Lead from competitor post (+20)")]
        if is_comment:
            points.append((15, "Engaged with comment (+15)"))
        else:
            points.append((10, "Reacted to competitor (+10)"))
        return points

    if lead.source_mode == SourceMode.MAGNET:
        return [(25, "Filtered lead from targeted search (+25)")]

    if lead.source_mode == SourceMode.FROID:
        return [(10, "Cold lead from search (+10)")]

    return []


def score_lead(lead: Lead, icp: Optional[ICPCriteria] = None) -> ScoringResult:
    """Compute the heuristic score for a single lead. Pure, no persistence."""
    awarded = _source_points(lead)

    if icp is not None:
        if _contains_any(lead.title, icp.target_titles):
            awarded.append((20, "Title matches ICP (+20)"))

        if _contains_any(lead.industry, icp.target_industries):
            awarded.append((15, "Industry matches ICP (+15)"))

        if lead.company_size and any(
            abs(lead.company_size - target) < COMPANY_SIZE_TOLERANCE
            for target in icp.target_company_sizes
        ):
            awarded.append((15, "Company size matches ICP (+15)"))

        if _contains_any(lead.location, icp.target_locations):
            awarded.append((10, "Location matches ICP (+10)"))

    profile_data = lead.profile_data if isinstance(lead.profile_data, dict) else {}
    current_company = profile_data.get("current_company")
    if isinstance(current_company, dict) and current_company.get("domain"):
        awarded.append((5, "Has company website (+5)"))
    headline = profile_data.get("headline")
    if isinstance(headline, str) and len(headline) > DETAILED_HEADLINE_LENGTH:
        awarded.append((5, "Detailed headline (+5)"))

    total = min(sum(points for points, _ in awarded), MAX_SCORE)
    return ScoringResult(score=total, reasons=[reason for _, reason in awarded])


def get_score_label(score: int) -> dict:
    """Bucket a score into a display label and badge color."""
    if score >= 80:
        return {"label": "Hot", "color": "red"}
    if score >= 60:
        return {"label": "Warm", "color": "orange"}
    if score >= 40:
        return {"label": "Qualified", "color": "yellow"}
    if score >= 20:
        return {"label": "Cold", "color": "blue"}
    return {"label": "Very Cold", "color": "gray"}


class LeadScoringService:
    """Persist heuristic scores on leads."""

    def score_lead(
        self,
        db: Session,
        team_id: int,
        lead_id: int,
        icp: Optional[ICPCriteria] = None,
    ) -> Tuple[Lead, ScoringResult]:
        lead = db.query(Lead).filter(Lead.id == lead_id, Lead.team_id == team_id).first()
        if not lead:
            raise LeadNotFoundError(lead_id)

        result = score_lead(lead, icp)
        lead.score = result.score
        lead.score_reason = result.score_reason
        db.commit()
        db.refresh(lead)

        logger.info(f"Scored lead {lead_id}: {result.score} ({len(result.reasons)} factors)")
        return lead, result

    def batch_score_leads(
        self,
        db: Session,
        team_id: int,
        source_mode: Optional[SourceMode] = None,
        icp: Optional[ICPCriteria] = None,
    ) -> List[Tuple[Lead, ScoringResult]]:
        query = db.query(Lead).filter(Lead.team_id == team_id)
        if source_mode is not None:
            query = query.filter(Lead.source_mode == source_mode)

        results = []
        for lead in query.all():
            result = score_lead(lead, icp)
            lead.score = result.score
            lead.score_reason = result.score_reason
            results.append((lead, result))

        db.commit()
        logger.info(f"Batch scored {len(results)} leads for team {team_id}")
        return results
