"""
OpenAI integration service

Two jobs:
- Score an enriched LinkedIn profile against the team's ICP (JSON mode)
- Draft and improve LinkedIn posts in the team's voice
"""
import json
from typing import Any, Dict, Optional

from openai import AsyncOpenAI, OpenAIError
from pydantic import BaseModel

from leadwatch.core.config import settings
from leadwatch.core.exceptions import MissingAPIKeyError, OpenAIServiceError
from leadwatch.core.logging import setup_logging
from leadwatch.models.outreach import ICPProfile, PostType

logger = setup_logging(__name__)


class ProfileScore(BaseModel):
    score: int
    reasoning: str
    should_convert: bool


LINKEDIN_POST_SYSTEM_PROMPT = """You are {author}, a top LinkedIn writer in {expertise}.
You write for {audience} who want to solve their problems, and you share lessons
learned first-hand to create as much engagement as possible.

Style rules:
- Always open with a hook that states an opinion or an emotion.
- Write in the first person.
- Skip a line after every sentence.
- Alternate short and long sentences.
- Add an emoji when it helps.
- Prefer a less predictable structure with pattern interrupts.
- Be concrete and direct."""

POST_TYPE_INSTRUCTIONS = {
    PostType.CALL_TO_ACTION: (
        "This post must drive action. End with a clear call (comment, share, profile visit). "
        "Be persuasive but authentic."
    ),
    PostType.PUBLICITE: (
        "This post promotes a product or service. Highlight concrete benefits for the audience, "
        "use social proof where possible, stay subtle and bring value."
    ),
    PostType.ANNONCE: (
        "This post announces something new. Build anticipation and explain why it matters "
        "to the audience."
    ),
    PostType.CLASSIQUE: (
        "This post shares a reflection or an experience. Bring educational value and stay personal."
    ),
}


def _join(values) -> str:
    return ", ".join(values) if values else "not specified"


def build_icp_system_prompt(icp: ICPProfile) -> str:
    lines = [
        "You are an expert B2B SDR. Score the LinkedIn profile from 0 to 100 against the ICP below.",
    ]
    if icp.problem_statement:
        lines.append(f"Our product: {icp.problem_statement}")
    if icp.ideal_customer_example:
        lines.append(f"Ideal customer example: {icp.ideal_customer_example}")
    lines.extend([
        "ICP criteria:",
        f"- Target industries: {_join(icp.industry_list)}",
        f"- Target locations: {_join(icp.location_list)}",
        f"- Buyer roles: {_join(icp.buyer_role_list)}",
        f"- Keywords to include: {_join(icp.keywords_include_list)}",
        f"- Keywords to exclude: {_join(icp.keywords_exclude_list)}",
        f"- Company size: {icp.company_size_min} - {icp.company_size_max} employees",
        f"- Minimum score: {icp.min_score}/100",
        "Weighting: role fit 0-30, company fit 0-25, solution fit 0-25, location 0-10, "
        "buying signals 0-10. Any exclusion keyword caps the score at 50.",
        'Answer ONLY with JSON: {"score": <0-100>, "reasoning": "<detailed explanation per criterion>"}',
    ])
    return "\n".join(lines)


def build_profile_prompt(profile: Dict[str, Any]) -> str:
    experience = profile.get("experience") or []
    education = profile.get("education") or []
    skills = profile.get("skills") or []

    lines = [
        "Profile to analyse:",
        f"Name: {profile.get('name') or 'not specified'}",
        f"Headline: {profile.get('headline') or 'not specified'}",
        f"Location: {profile.get('location') or 'not specified'}",
        f"Industry: {profile.get('industry') or 'not specified'}",
        "Experience:",
    ]
    if experience:
        for exp in experience:
            size = f" ({exp.get('company_size')} employees)" if exp.get("company_size") else ""
            lines.append(f"- {exp.get('title')} at {exp.get('company')}{size} ({exp.get('duration') or 'n/a'})")
    else:
        lines.append("not specified")
    if education:
        lines.append("Education:")
        for edu in education:
            lines.append(f"- {edu.get('degree')} in {edu.get('field')} at {edu.get('school')}")
    lines.append(f"Skills: {', '.join(skills) if skills else 'not specified'}")
    if profile.get("summary"):
        lines.append(f"Summary: {profile['summary']}")
    if not (experience and experience[0].get("company_size")):
        lines.append("Company size unavailable: award 5/10 for that criterion.")
    return "\n".join(lines)


class OpenAIService:
    """Wrapper around the OpenAI chat completions API."""

    def __init__(self, client: Optional[AsyncOpenAI] = None, model: Optional[str] = None):
        if client is None:
            if not settings.OPENAI_API_KEY:
                raise MissingAPIKeyError("OPENAI")
            client = AsyncOpenAI(api_key=settings.OPENAI_API_KEY)
        self.client = client
        self.model = model or settings.OPENAI_MODEL

    async def _complete(self, messages, **kwargs) -> str:
        try:
            completion = await self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                **kwargs,
            )
        except OpenAIError as e:
            raise OpenAIServiceError(f"OpenAI request failed: {e}") from e
        return (completion.choices[0].message.content or "").strip()

    async def score_profile_against_icp(self, profile: Dict[str, Any], icp: ICPProfile) -> ProfileScore:
        content = await self._complete(
            [
                {"role": "system", "content": build_icp_system_prompt(icp)},
                {"role": "user", "content": build_profile_prompt(profile)},
            ],
            response_format={"type": "json_object"},
            max_tokens=500,
        )

        try:
            result = json.loads(content or "{}")
        except json.JSONDecodeError as e:
            raise OpenAIServiceError("OpenAI returned invalid JSON", details={"content": content[:200]}) from e

        score = max(0, min(100, round(float(result.get("score") or 0))))
        return ProfileScore(
            score=score,
            reasoning=result.get("reasoning") or "No explanation provided",
            should_convert=score >= icp.min_score,
        )

    async def generate_linkedin_post(
        self,
        post_type: PostType,
        user_context: str,
        company_name: Optional[str] = None,
        target_audience: Optional[str] = None,
        expertise: Optional[str] = None,
    ) -> str:
        instructions = POST_TYPE_INSTRUCTIONS.get(post_type, POST_TYPE_INSTRUCTIONS[PostType.CLASSIQUE])
        system_prompt = LINKEDIN_POST_SYSTEM_PROMPT.format(
            author=company_name or "an expert",
            expertise=expertise or "your field",
            audience=target_audience or "your prospects",
        )
        user_prompt = (
            f"{instructions}\n\n"
            f"Write a 150-250 word LinkedIn post based on this context:\n\n{user_context}\n\n"
            "Answer ONLY with the final post, no commentary."
        )

        content = await self._complete(
            [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=0.8,
            max_tokens=500,
        )
        if not content:
            raise OpenAIServiceError("OpenAI returned no post content")
        logger.info(f"Generated {post_type.value} post ({len(content)} chars)")
        return content

    async def improve_linkedin_post(self, current_post: str, improvements: str) -> str:
        system_prompt = (
            LINKEDIN_POST_SYSTEM_PROMPT.format(
                author="an expert", expertise="your field", audience="your prospects"
            )
            + "\n\nYou improve existing posts: keep the same style and tone, apply the requested changes."
        )
        content = await self._complete(
            [
                {"role": "system", "content": system_prompt},
                {
                    "role": "user",
                    "content": (
                        f"Current post:\n{current_post}\n\n"
                        f"Improvements:\n{improvements}\n\n"
                        "Answer ONLY with the improved post."
                    ),
                },
            ],
            temperature=0.7,
            max_tokens=500,
        )
        if not content:
            raise OpenAIServiceError("OpenAI returned no improved content")
        return content
