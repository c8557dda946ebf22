"""
AI scoring of staged prospects against the team ICP

Prospects are enriched once through LinkUp, scored by the LLM and, above
the ICP threshold, promoted to ``chaud`` leads.
"""
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from leadwatch.core.exceptions import ICPProfileNotFoundError, ProspectNotFoundError
from leadwatch.core.logging import setup_logging
from leadwatch.models.lead import EngagementType, Lead, LeadStatus, SourceMode, split_full_name
from leadwatch.models.prospect import ProspectCandidate, ProspectStatus
from leadwatch.services.icp import get_latest_icp
from leadwatch.services.linkup_client import LinkUpClient
from leadwatch.services.openai_service import OpenAIService

logger = setup_logging(__name__)


async def enrich_prospect(prospect: ProspectCandidate, linkup: LinkUpClient) -> Dict[str, Any]:
    """Return the cached enriched profile, fetching it from LinkUp the first time."""
    if prospect.enriched_profile:
        return prospect.enriched_profile

    data = await linkup.fetch_profile(prospect.profile_url)
    profile = {
        "name": data.get("name") or prospect.name,
        "headline": data.get("headline") or prospect.title,
        "location": data.get("location") or prospect.location,
        "industry": data.get("industry"),
        "experience": data.get("experience") or [],
        "education": data.get("education") or [],
        "skills": data.get("skills") or [],
        "summary": data.get("summary"),
    }
    prospect.enriched_profile = profile
    return profile


def _engagement_type(prospect: ProspectCandidate) -> Optional[EngagementType]:
    try:
        return EngagementType(getattr(prospect.action, "value", prospect.action))
    except ValueError:
        return None


async def score_prospect(
    db: Session,
    team_id: int,
    prospect_id: int,
    linkup: LinkUpClient,
    llm: OpenAIService,
) -> Dict[str, Any]:
    prospect = (
        db.query(ProspectCandidate)
        .filter(ProspectCandidate.id == prospect_id, ProspectCandidate.team_id == team_id)
        .first()
    )
    if not prospect:
        raise ProspectNotFoundError(prospect_id)

    icp = get_latest_icp(db, team_id)
    if not icp:
        raise ICPProfileNotFoundError(team_id)

    profile = await enrich_prospect(prospect, linkup)
    db.commit()

    result = await llm.score_profile_against_icp(profile, icp)

    prospect.ai_score = result.score
    prospect.ai_reasoning = result.reasoning
    prospect.status = ProspectStatus.CONVERTED if result.should_convert else ProspectStatus.ANALYZED

    lead = None
    if result.should_convert:
        existing = (
            db.query(Lead)
            .filter(Lead.team_id == team_id, Lead.linkedin_url == prospect.profile_url)
            .first()
        )
        if existing:
            lead = existing
        else:
            first_name, last_name = split_full_name(profile.get("name") or prospect.name or "")
            experience = profile.get("experience") or []
            lead = Lead(
                team_id=team_id,
                first_name=first_name,
                last_name=last_name,
                company=prospect.company or (experience[0].get("company") if experience else None),
                title=profile.get("headline") or prospect.title,
                location=profile.get("location") or prospect.location,
                industry=profile.get("industry"),
                linkedin_url=prospect.profile_url,
                profile_picture_url=prospect.profile_picture_url,
                score=result.score,
                score_reason=result.reasoning,
                source_mode=SourceMode.CHAUD,
                source_post_url=prospect.post_url,
                engagement_type=_engagement_type(prospect),
                reaction_type=prospect.reaction_type,
                comment_text=prospect.comment_text,
                profile_data=profile,
                status=LeadStatus.NEW,
            )
            db.add(lead)

    db.commit()
    logger.info(
        f"Prospect {prospect_id} scored {result.score} "
        f"({'converted' if result.should_convert else 'analyzed'})"
    )

    return {
        "score": result.score,
        "converted": result.should_convert,
        "reasoning": result.reasoning,
        "lead_id": lead.id if lead is not None else None,
    }
