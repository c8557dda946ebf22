"""Celery tasks for the periodic lead pipeline."""
