"""
LinkUp webhook account lifecycle

One webhook account per team. LinkUp pushes every new post seen by that
account to ``POST /webhook/linkedin``; the scheduler starts accounts on
weekday mornings and stops them in the evening.
"""
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from leadwatch.core.exceptions import DuplicateResourceError, WebhookAccountNotFoundError
from leadwatch.core.logging import setup_logging
from leadwatch.models.monitoring import WebhookAccount
from leadwatch.services.linkup_client import LinkUpClient

logger = setup_logging(__name__)

WEEKEND_DAYS = (5, 6)  # Saturday, Sunday


def get_webhook_account(db: Session, team_id: int) -> Optional[WebhookAccount]:
    return db.query(WebhookAccount).filter(WebhookAccount.team_id == team_id).first()


def _require_account(db: Session, team_id: int) -> WebhookAccount:
    account = get_webhook_account(db, team_id)
    if not account:
        raise WebhookAccountNotFoundError(team_id)
    return account


async def create_webhook_account(
    db: Session,
    linkup: LinkUpClient,
    team_id: int,
    user_id: int,
    account_name: str,
    webhook_url: str,
    login_token: str,
    country: str = "FR",
) -> WebhookAccount:
    if get_webhook_account(db, team_id):
        raise DuplicateResourceError(
            "A webhook account already exists for this team",
            details={"team_id": team_id},
        )

    remote = await linkup.create_webhook_account(
        account_name=account_name,
        webhook_url=webhook_url,
        login_token=login_token,
        country=country,
    )
    logger.info(f"LinkUp webhook account {remote.get('id')} created for team {team_id}")

    account = WebhookAccount(
        team_id=team_id,
        linkup_account_id=str(remote["id"]),
        account_name=remote.get("account_name") or account_name,
        webhook_url=remote.get("webhook_url") or webhook_url,
        country=remote.get("country") or country,
        is_active=bool(remote.get("is_active", False)),
        created_by=user_id,
    )
    db.add(account)
    db.commit()
    db.refresh(account)
    return account


async def start_monitoring(db: Session, linkup: LinkUpClient, team_id: int) -> WebhookAccount:
    account = _require_account(db, team_id)

    remote = await linkup.start_webhook_account(account.linkup_account_id)
    account.is_active = bool(remote.get("is_active", True))
    account.last_started_at = datetime.utcnow()
    db.commit()
    db.refresh(account)

    logger.info(f"Monitoring started for team {team_id} (active={account.is_active})")
    return account


async def stop_monitoring(db: Session, linkup: LinkUpClient, team_id: int) -> WebhookAccount:
    account = _require_account(db, team_id)

    remote = await linkup.stop_webhook_account(account.linkup_account_id)
    account.is_active = bool(remote.get("is_active", False))
    account.last_stopped_at = datetime.utcnow()
    db.commit()
    db.refresh(account)

    logger.info(f"Monitoring stopped for team {team_id} (active={account.is_active})")
    return account


async def update_webhook_account(
    db: Session,
    linkup: LinkUpClient,
    team_id: int,
    account_name: Optional[str] = None,
    webhook_url: Optional[str] = None,
    login_token: Optional[str] = None,
    country: Optional[str] = None,
) -> WebhookAccount:
    account = _require_account(db, team_id)

    remote = await linkup.update_webhook_account(
        account.linkup_account_id,
        account_name=account_name,
        webhook_url=webhook_url,
        login_token=login_token,
        country=country,
    )
    account.account_name = remote.get("account_name") or account_name or account.account_name
    account.webhook_url = remote.get("webhook_url") or webhook_url or account.webhook_url
    account.country = remote.get("country") or country or account.country
    db.commit()
    db.refresh(account)
    return account


def get_monitoring_status(db: Session, team_id: int) -> Dict[str, Any]:
    account = get_webhook_account(db, team_id)
    return {
        "has_account": account is not None,
        "is_active": bool(account and account.is_active),
        "account": account,
    }


def _summarize(now: datetime, results: list) -> Dict[str, Any]:
    success_count = sum(1 for r in results if r["success"])
    return {
        "timestamp": now,
        "total_accounts": len(results),
        "success": success_count,
        "failures": len(results) - success_count,
        "results": results,
    }


async def start_all(db: Session, linkup: LinkUpClient, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Start every inactive account. Does nothing on weekends."""
    now = now or datetime.utcnow()
    if now.weekday() in WEEKEND_DAYS:
        logger.info("Weekend: monitoring not started")
        return {"message": "Weekend - monitoring not started", "skipped": True}

    team_ids = [
        team_id for (team_id,) in
        db.query(WebhookAccount.team_id).filter(WebhookAccount.is_active.is_(False)).all()
    ]
    logger.info(f"start-monitoring: {len(team_ids)} accounts to start")

    results = []
    for team_id in team_ids:
        try:
            account = await start_monitoring(db, linkup, team_id)
            results.append({"team_id": team_id, "success": True, "is_active": account.is_active})
        except Exception as e:
            db.rollback()
            logger.error(f"start-monitoring failed for team {team_id}: {e}")
            results.append({"team_id": team_id, "success": False, "error": str(e)})

    return _summarize(now, results)


async def stop_all(db: Session, linkup: LinkUpClient, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Stop every active account."""
    now = now or datetime.utcnow()
    team_ids = [
        team_id for (team_id,) in
        db.query(WebhookAccount.team_id).filter(WebhookAccount.is_active.is_(True)).all()
    ]
    logger.info(f"stop-monitoring: {len(team_ids)} accounts to stop")

    results = []
    for team_id in team_ids:
        try:
            account = await stop_monitoring(db, linkup, team_id)
            results.append({"team_id": team_id, "success": True, "is_active": account.is_active})
        except Exception as e:
            db.rollback()
            logger.error(f"stop-monitoring failed for team {team_id}: {e}")
            results.append({"team_id": team_id, "success": False, "error": str(e)})

    return _summarize(now, results)
