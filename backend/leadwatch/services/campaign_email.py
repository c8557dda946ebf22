"""
Campaign email rendering and sending

Templates use ``{{variable}}`` placeholders filled from the prospect; missing
values fall back to neutral wording.
"""
import re
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from leadwatch.core.logging import setup_logging
from leadwatch.models.prospect import ProspectCandidate
from leadwatch.services.gmail_oauth import GmailOAuthService

logger = setup_logging(__name__)

VARIABLE_PATTERN = re.compile(r"\{\{(\w+)\}\}")

VARIABLE_DEFAULTS = {
    "name": "there",
    "company": "your company",
    "title": "your role",
    "location": "your location",
    "email": "",
}


def replace_variables(template: str, prospect: ProspectCandidate) -> str:
    """Fill known placeholders; unknown ones are left as written."""
    def substitute(match: re.Match) -> str:
        name = match.group(1)
        if name not in VARIABLE_DEFAULTS:
            return match.group(0)
        return getattr(prospect, name, None) or VARIABLE_DEFAULTS[name]

    return VARIABLE_PATTERN.sub(substitute, template or "")


def extract_variables(template: str) -> List[str]:
    """Placeholder names in order of first appearance."""
    variables: List[str] = []
    for name in VARIABLE_PATTERN.findall(template or ""):
        if name not in variables:
            variables.append(name)
    return variables


def get_available_variables() -> List[str]:
    return list(VARIABLE_DEFAULTS)


class EmailService:
    def __init__(self, gmail: Optional[GmailOAuthService] = None):
        self.gmail = gmail or GmailOAuthService()

    async def send_campaign_email(
        self,
        db: Session,
        team_id: int,
        prospect_id: int,
        email_config: Dict[str, Any],
    ) -> Dict[str, Any]:
        """
        Render the block's subject and body for the prospect and send them.

        Returns ``{"success": bool, "error": str | None}``; failures are
        reported, not raised.
        """
        try:
            prospect = db.get(ProspectCandidate, prospect_id)
            if prospect is None:
                return {"success": False, "error": "Prospect not found"}
            if not prospect.email:
                return {"success": False, "error": "Prospect has no email address"}

            subject = replace_variables(email_config.get("subject", ""), prospect)
            body = replace_variables(email_config.get("body", ""), prospect)

            client = await self.gmail.get_client(db, team_id)
            await client.send_email(prospect.email, subject, body)
            logger.info(f"Campaign email sent to prospect {prospect_id} for team {team_id}")
            return {"success": True, "error": None}

        except Exception as e:
            logger.error(f"Error sending campaign email to prospect {prospect_id}: {e}")
            return {"success": False, "error": str(e) or "Unknown error"}
