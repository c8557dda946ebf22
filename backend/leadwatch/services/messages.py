"""
Outreach message drafting

Messages are rendered from templates (no LLM) and stored as drafts; the user
edits, approves and marks them sent from the dashboard.
"""
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from leadwatch.core.exceptions import LeadNotFoundError, MessageNotFoundError, MissingRequiredFieldError
from leadwatch.core.logging import setup_logging
from leadwatch.models.lead import EngagementType, Lead, LeadStatus
from leadwatch.models.outreach import Message, MessageStatus
from leadwatch.schemas.outreach import CompanyInfo, MessageType

logger = setup_logging(__name__)

TEAM_MESSAGES_LIMIT = 50
CUSTOM_PLACEHOLDERS = ("firstName", "lastName", "title", "company", "location")


def _paragraphs(*parts: Optional[str]) -> str:
    return "\n\n".join(part for part in parts if part)


def _connection(lead: Lead, company_info: Optional[CompanyInfo]) -> str:
    at_company = f" at {lead.company}" if lead.company else ""
    intro = (
        f"I came across your profile and noticed you're {lead.title or 'in the industry'}{at_company}."
    )
    if lead.engagement_type == EngagementType.COMMENT:
        topic = (lead.source_post_url or "").rstrip("/").split("/")[-1]
        intro += f" I saw your thoughtful comment on the post about {topic}."
    elif lead.engagement_type == EngagementType.REACTION:
        intro += " I noticed you engaged with a post I found interesting."

    return _paragraphs(
        f"Hi {lead.first_name or 'there'},",
        intro,
        f"At {company_info.name}, we {company_info.value}." if company_info else None,
        "I would love to connect and share insights about the industry.",
        "Best regards",
    )


def _follow_up(lead: Lead, company_info: Optional[CompanyInfo]) -> str:
    return _paragraphs(
        f"Hi {lead.first_name or 'there'},",
        f"Thanks for connecting! I wanted to follow up on our mutual interest in "
        f"{lead.industry or 'the industry'}.",
        (
            f"I thought you might find value in what we're doing at {company_info.name}. {company_info.value}"
            if company_info else None
        ),
        company_info.cta if company_info and company_info.cta else "Would you be open to a quick chat?",
        "Looking forward to hearing from you!",
    )


def _value_proposition(lead: Lead, company_info: Optional[CompanyInfo]) -> str:
    at_company = f" at {lead.company}" if lead.company else ""
    return _paragraphs(
        f"Hi {lead.first_name or 'there'},",
        f"I hope this message finds you well. As {lead.title or 'someone in your position'}{at_company}, "
        f"you might be interested in how we help companies like yours.",
        (
            _paragraphs(company_info.value, company_info.cta)
            if company_info else "I would love to share how we can add value to your team."
        ),
        "Would you be open to a brief conversation?",
        "Best regards",
    )


def render_custom(template: str, lead: Lead) -> str:
    values = {
        "firstName": lead.first_name,
        "lastName": lead.last_name,
        "title": lead.title,
        "company": lead.company,
        "location": lead.location,
    }
    for placeholder in CUSTOM_PLACEHOLDERS:
        template = template.replace("{" + placeholder + "}", values[placeholder] or "")
    return template


def render_message(
    lead: Lead,
    message_type: MessageType,
    custom_prompt: Optional[str] = None,
    company_info: Optional[CompanyInfo] = None,
) -> str:
    if message_type == MessageType.CONNECTION:
        return _connection(lead, company_info)
    if message_type == MessageType.FOLLOW_UP:
        return _follow_up(lead, company_info)
    if message_type == MessageType.VALUE_PROPOSITION:
        return _value_proposition(lead, company_info)

    if not custom_prompt:
        raise MissingRequiredFieldError("custom_prompt")
    return render_custom(custom_prompt, lead)


def generate_message(
    db: Session,
    team_id: int,
    lead_id: int,
    message_type: MessageType,
    custom_prompt: Optional[str] = None,
    company_info: Optional[CompanyInfo] = None,
) -> Message:
    lead = db.query(Lead).filter(Lead.id == lead_id, Lead.team_id == team_id).first()
    if not lead:
        raise LeadNotFoundError(lead_id)

    message = Message(
        team_id=team_id,
        lead_id=lead.id,
        message_text=render_message(lead, message_type, custom_prompt, company_info),
        status=MessageStatus.DRAFT,
    )
    db.add(message)
    db.commit()
    db.refresh(message)

    logger.info(f"Drafted {message_type.value} message {message.id} for lead {lead_id}")
    return message


def get_message(db: Session, team_id: int, message_id: int) -> Message:
    message = db.query(Message).filter(Message.id == message_id, Message.team_id == team_id).first()
    if not message:
        raise MessageNotFoundError(message_id)
    return message


def update_message(
    db: Session,
    team_id: int,
    message_id: int,
    message_text: Optional[str] = None,
    status: Optional[MessageStatus] = None,
) -> Message:
    message = get_message(db, team_id, message_id)
    if message_text is not None:
        message.message_text = message_text
    if status is not None:
        message.status = status
    db.commit()
    db.refresh(message)
    return message


def send_message(db: Session, team_id: int, message_id: int) -> Message:
    """Mark the message sent and the lead contacted."""
    message = get_message(db, team_id, message_id)
    now = datetime.utcnow()

    message.status = MessageStatus.SENT
    message.sent_at = now

    lead = message.lead
    lead.status = LeadStatus.CONTACTED
    lead.last_contacted_at = now

    db.commit()
    db.refresh(message)
    logger.info(f"Message {message_id} sent to lead {lead.id}")
    return message


def list_messages_by_lead(db: Session, team_id: int, lead_id: int) -> List[Message]:
    return (
        db.query(Message)
        .filter(Message.lead_id == lead_id, Message.team_id == team_id)
        .order_by(Message.created_at.desc(), Message.id.desc())
        .all()
    )


def list_messages_by_team(db: Session, team_id: int, limit: int = TEAM_MESSAGES_LIMIT) -> List[Message]:
    return (
        db.query(Message)
        .filter(Message.team_id == team_id)
        .order_by(Message.created_at.desc(), Message.id.desc())
        .limit(limit)
        .all()
    )
