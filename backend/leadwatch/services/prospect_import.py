"""
Chrome-extension prospect import

Profiles picked in the browser land in a prospect folder (the team's default
"Général" folder unless one is given).
"""
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from leadwatch.core.exceptions import DatabaseError, FolderNotFoundError
from leadwatch.core.logging import setup_logging
from leadwatch.models.prospect import (
    ProspectAction,
    ProspectCandidate,
    ProspectFolder,
    ProspectSource,
    ProspectStatus,
)
from leadwatch.schemas.prospect import ProspectImportItem

logger = setup_logging(__name__)

DEFAULT_FOLDER_NAME = "Général"
DEFAULT_FOLDER_COLOR = "#3b82f6"
DEFAULT_FOLDER_ICON = "inbox"


def get_or_create_default_folder(db: Session, team_id: int) -> ProspectFolder:
    folder = (
        db.query(ProspectFolder)
        .filter(ProspectFolder.team_id == team_id, ProspectFolder.is_default.is_(True))
        .first()
    )
    if folder:
        return folder

    folder = ProspectFolder(
        team_id=team_id,
        name=DEFAULT_FOLDER_NAME,
        color=DEFAULT_FOLDER_COLOR,
        icon=DEFAULT_FOLDER_ICON,
        is_default=True,
    )
    db.add(folder)
    db.flush()
    logger.info(f"Default prospect folder created for team {team_id}")
    return folder


def import_prospects(
    db: Session,
    team_id: int,
    prospects: Iterable[ProspectImportItem],
    folder_id: Optional[int] = None,
) -> Dict[str, Any]:
    prospects = list(prospects)

    if folder_id is None:
        folder = get_or_create_default_folder(db, team_id)
    else:
        folder = (
            db.query(ProspectFolder)
            .filter(ProspectFolder.id == folder_id, ProspectFolder.team_id == team_id)
            .first()
        )
        if folder is None:
            raise FolderNotFoundError(folder_id)

    imported = 0
    duplicates = 0
    seen = set()

    for prospect in prospects:
        profile_url = prospect.profile_url
        exists = profile_url in seen or (
            db.query(ProspectCandidate.id)
            .filter(ProspectCandidate.team_id == team_id, ProspectCandidate.profile_url == profile_url)
            .first()
            is not None
        )
        if exists:
            duplicates += 1
            continue

        db.add(ProspectCandidate(
            team_id=team_id,
            folder_id=folder.id,
            source=ProspectSource.CHROME_EXTENSION,
            source_ref=profile_url,
            action=ProspectAction.IMPORTED,
            name=prospect.name,
            title=prospect.title,
            company=prospect.company,
            location=prospect.location,
            profile_url=profile_url,
            profile_picture_url=str(prospect.profile_picture_url) if prospect.profile_picture_url else None,
            status=ProspectStatus.NEW,
        ))
        seen.add(profile_url)
        imported += 1

    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Database error importing prospects for team {team_id}: {e}")
        raise DatabaseError(f"Failed to import prospects: {str(e)}")
    logger.info(f"Team {team_id} imported {imported} prospects ({duplicates} duplicates)")

    return {
        "imported": imported,
        "duplicates": duplicates,
        "total": len(prospects),
        "folder_id": folder.id,
    }


def list_prospects(
    db: Session,
    team_id: int,
    folder_id: Optional[int] = None,
    status: Optional[ProspectStatus] = None,
    limit: int = 100,
) -> List[ProspectCandidate]:
    query = db.query(ProspectCandidate).filter(ProspectCandidate.team_id == team_id)
    if folder_id is not None:
        query = query.filter(ProspectCandidate.folder_id == folder_id)
    if status is not None:
        query = query.filter(ProspectCandidate.status == status)
    return query.order_by(ProspectCandidate.fetched_at.desc(), ProspectCandidate.id.desc()).limit(limit).all()
