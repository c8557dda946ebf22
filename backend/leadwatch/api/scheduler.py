"""
Scheduler endpoints

- collect-leads: hourly LinkUp collection of due posts into prospect candidates
- start-monitoring / stop-monitoring: weekday business-hours toggling of
  every team's LinkUp webhook account
"""
from datetime import datetime

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from leadwatch.core.config import settings
from leadwatch.core.logging import setup_logging
from leadwatch.dependencies import get_linkup_client, require_ingest_token
from leadwatch.models import get_db
from leadwatch.services import webhook_manager
from leadwatch.services.linkup_client import LinkUpClient
from leadwatch.services.post_collector import PostCollector, upcoming_collections

logger = setup_logging(__name__)

router = APIRouter(
    prefix="/scheduler",
    tags=["scheduler"],
    dependencies=[Depends(require_ingest_token)],
)


@router.post("/collect-leads")
async def collect_leads(
    db: Session = Depends(get_db),
    linkup: LinkUpClient = Depends(get_linkup_client),
):
    summary = await PostCollector(linkup).run_due_collections(db, limit=settings.COLLECT_BATCH_SIZE)
    if summary["total_collections"] == 0:
        return {"message": "No scheduled collections due", "timestamp": summary["timestamp"]}
    return {"message": "Lead collection finished", **summary}


@router.get("/collect-leads")
async def collect_leads_status(db: Session = Depends(get_db)):
    now = datetime.utcnow()
    upcoming = upcoming_collections(db, now)
    return {
        "status": "ok",
        "scheduler": "collect-leads",
        "schedule": "hourly",
        "timestamp": now,
        "upcoming_collections": [
            {
                "id": collection.id,
                "company_name": collection.post.company.company_name,
                "post_url": collection.post.post_url,
                "scheduled_for": collection.scheduled_for,
            }
            for collection in upcoming
        ],
    }


@router.post("/start-monitoring")
async def start_monitoring(
    db: Session = Depends(get_db),
    linkup: LinkUpClient = Depends(get_linkup_client),
):
    return await webhook_manager.start_all(db, linkup)


@router.post("/stop-monitoring")
async def stop_monitoring(
    db: Session = Depends(get_db),
    linkup: LinkUpClient = Depends(get_linkup_client),
):
    return await webhook_manager.stop_all(db, linkup)
