#!/usr/bin/env python3
"""
Celery Worker Entry Point

This script launches a Celery worker with an embedded beat scheduler for the
periodic lead pipeline.

Usage:
    # Development (single process, beat embedded)
    python celery_worker.py

    # Production (separate beat process)
    celery -A leadwatch.celery_app worker --loglevel=info --concurrency=4
    celery -A leadwatch.celery_app beat --loglevel=info
"""
import sys

from redis import Redis
from redis.exceptions import RedisError

from leadwatch.celery_app import celery_app
from leadwatch.core.config import settings
from leadwatch.core.logging import setup_logging

logger = setup_logging(__name__)


def main():
    logger.info("Starting Celery worker...")

    # Verify Redis connection
    try:
        Redis.from_url(settings.REDIS_URL).ping()
        logger.info(f"Redis connection verified: {settings.REDIS_URL}")
    except RedisError as e:
        logger.error(f"Failed to connect to Redis: {e}")
        sys.exit(1)

    celery_app.worker_main([
        "worker",
        "--beat",
        "--loglevel=info",
        "--pool=solo",  # Use solo for development, prefork for production
        "--hostname=worker@leadwatch",
        "--without-gossip",
        "--without-mingle",
    ])


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        logger.info("Worker shutdown requested")
        sys.exit(0)
