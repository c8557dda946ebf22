"""
Manual lead import from a single LinkedIn post

Used by the "chaud" (own post) and "espion" (competitor post) flows: every
reactor and commenter not already known becomes a lead.
"""
from typing import List

from sqlalchemy.orm import Session

from leadwatch.core.exceptions import ValidationError
from leadwatch.core.logging import setup_logging
from leadwatch.models.lead import EngagementType, Lead, LeadStatus, SourceMode, split_full_name
from leadwatch.services.linkup_client import LinkUpClient

logger = setup_logging(__name__)

IMPORT_SOURCE_MODES = (SourceMode.CHAUD, SourceMode.ESPION)
MAX_ENGAGEMENTS = 100


async def import_leads_from_post(
    db: Session,
    team_id: int,
    post_url: str,
    source_mode: SourceMode,
    linkup: LinkUpClient,
) -> List[Lead]:
    if source_mode not in IMPORT_SOURCE_MODES:
        raise ValidationError(
            "Leads can only be imported from a post in 'chaud' or 'espion' mode",
            details={"source_mode": str(source_mode)},
        )

    reactions, _ = await linkup.get_post_reactions(post_url, MAX_ENGAGEMENTS)
    comments, _ = await linkup.get_post_comments(post_url, MAX_ENGAGEMENTS)

    known = {
        url for (url,) in
        db.query(Lead.linkedin_url).filter(Lead.team_id == team_id, Lead.linkedin_url.isnot(None)).all()
    }

    new_leads = []
    engagements = [(EngagementType.REACTION, r) for r in reactions]
    engagements += [(EngagementType.COMMENT, c) for c in comments]

    for engagement_type, engagement in engagements:
        if engagement.profile_url in known:
            continue
        known.add(engagement.profile_url)

        first_name, last_name = split_full_name(engagement.name or "")
        lead = Lead(
            team_id=team_id,
            first_name=first_name,
            last_name=last_name,
            linkedin_url=engagement.profile_url,
            title=engagement.title,
            company=engagement.company,
            location=engagement.location,
            source_mode=source_mode,
            source_post_url=post_url,
            engagement_type=engagement_type,
            reaction_type=getattr(engagement, "reaction_type", None),
            comment_text=getattr(engagement, "comment_text", None),
            status=LeadStatus.NEW,
            score=0,
            profile_data=engagement.model_dump(mode="json"),
        )
        db.add(lead)
        new_leads.append(lead)

    db.commit()
    for lead in new_leads:
        db.refresh(lead)

    logger.info(f"Imported {len(new_leads)} leads from {post_url} ({source_mode.value})")
    return new_leads
