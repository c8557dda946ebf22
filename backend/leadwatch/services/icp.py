"""Ideal customer profile storage (one active profile per team)."""
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from leadwatch.core.exceptions import ICPProfileNotFoundError
from leadwatch.models.outreach import ICPProfile
from leadwatch.schemas.lead import ICPCriteria
from leadwatch.schemas.outreach import ICPProfileRequest

LIST_FIELDS = ("industries", "locations", "buyer_roles", "keywords_include", "keywords_exclude")


def get_latest_icp(db: Session, team_id: int) -> Optional[ICPProfile]:
    return (
        db.query(ICPProfile)
        .filter(ICPProfile.team_id == team_id)
        .order_by(ICPProfile.created_at.desc(), ICPProfile.id.desc())
        .first()
    )


def require_icp(db: Session, team_id: int) -> ICPProfile:
    icp = get_latest_icp(db, team_id)
    if icp is None:
        raise ICPProfileNotFoundError(team_id)
    return icp


def upsert_icp(db: Session, team_id: int, data: ICPProfileRequest) -> ICPProfile:
    icp = get_latest_icp(db, team_id)
    if icp is None:
        icp = ICPProfile(team_id=team_id)
        db.add(icp)

    values = data.model_dump()
    for field in LIST_FIELDS:
        values[field] = ", ".join(item.strip() for item in values[field] if item.strip()) or None
    for field, value in values.items():
        setattr(icp, field, value)

    db.commit()
    db.refresh(icp)
    return icp


def icp_to_dict(icp: ICPProfile) -> Dict[str, Any]:
    return {
        "id": icp.id,
        "name": icp.name,
        "industries": icp.industry_list,
        "locations": icp.location_list,
        "buyer_roles": icp.buyer_role_list,
        "keywords_include": icp.keywords_include_list,
        "keywords_exclude": icp.keywords_exclude_list,
        "company_size_min": icp.company_size_min,
        "company_size_max": icp.company_size_max,
        "product_category": icp.product_category,
        "language": icp.language,
        "min_score": icp.min_score,
        "problem_statement": icp.problem_statement,
        "ideal_customer_example": icp.ideal_customer_example,
        "updated_at": icp.updated_at,
    }


def criteria_from_profile(icp: Optional[ICPProfile]) -> Optional[ICPCriteria]:
    """Map the stored ICP onto the heuristic scorer's criteria."""
    if icp is None:
        return None
    return ICPCriteria(
        target_titles=icp.buyer_role_list,
        target_industries=icp.industry_list,
        target_locations=icp.location_list,
        keywords=icp.keywords_include_list,
    )
