"""
Celery application configuration for the periodic pipeline

Celery beat drives the lead pipeline on the same schedule the cron/scheduler
HTTP endpoints are designed for: post detection, lead extraction and post
publishing every five minutes, LinkUp collection hourly, OAuth state cleanup
daily, and webhook monitoring on weekday business hours.
"""
from celery import Celery
from celery.schedules import crontab
from celery.signals import task_failure, task_postrun, task_prerun

from leadwatch.core.config import settings
from leadwatch.core.logging import setup_logging

logger = setup_logging(__name__)

celery_app = Celery(
    "leadwatch",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
    include=["leadwatch.tasks.pipeline_tasks"],
)

celery_app.conf.update(
    # Serialization
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",

    # Timezone
    timezone="Europe/Paris",
    enable_utc=True,

    # Task execution
    task_track_started=True,
    task_time_limit=900,  # Hard timeout: 15 minutes
    task_soft_time_limit=840,
    task_acks_late=True,
    task_reject_on_worker_lost=True,

    # Worker configuration
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=1000,

    # Result backend
    result_expires=3600,

    # Periodic task schedule (Celery Beat)
    beat_schedule={
        "detect-posts": {
            "task": "detect_posts",
            "schedule": settings.DETECT_INTERVAL_SECONDS,
        },
        "extract-leads": {
            "task": "extract_leads",
            "schedule": settings.EXTRACT_INTERVAL_SECONDS,
        },
        "publish-scheduled-posts": {
            "task": "publish_scheduled_posts",
            "schedule": settings.PUBLISH_INTERVAL_SECONDS,
        },
        "collect-leads-hourly": {
            "task": "collect_leads",
            "schedule": crontab(minute=0),
        },
        "cleanup-oauth-states-daily": {
            "task": "cleanup_oauth_states",
            "schedule": crontab(hour=3, minute=0),
        },
        "start-monitoring-weekdays": {
            "task": "start_monitoring",
            "schedule": crontab(hour=8, minute=0, day_of_week="mon-fri"),
        },
        "stop-monitoring-weekdays": {
            "task": "stop_monitoring",
            "schedule": crontab(hour=19, minute=0, day_of_week="mon-fri"),
        },
        "execute-campaigns": {
            "task": "execute_campaigns",
            "schedule": settings.CAMPAIGN_INTERVAL_SECONDS,
        },
        "process-workflows": {
            "task": "process_workflows",
            "schedule": settings.WORKFLOW_INTERVAL_SECONDS,
        },
    },
)


# Task lifecycle hooks for logging
@task_prerun.connect
def task_prerun_handler(sender=None, task_id=None, task=None, args=None, kwargs=None, **extra):
    """Log when a task starts execution"""
    logger.info(f"Task starting: {task.name} (ID: {task_id})")


@task_postrun.connect
def task_postrun_handler(sender=None, task_id=None, task=None, args=None, kwargs=None, retval=None, **extra):
    """Log when a task completes successfully"""
    logger.info(f"Task completed: {task.name} (ID: {task_id})")


@task_failure.connect
def task_failure_handler(sender=None, task_id=None, exception=None, args=None, kwargs=None, traceback=None, **extra):
    """Log task failures"""
    logger.error(f"Task failed: {sender.name} (ID: {task_id}) - {str(exception)}", exc_info=True)
