"""
Scheduling for workflow timing nodes

- delay: ``{amount, unit}`` added to the current time (unit: minutes | hours | days | weeks)
- waitUntil: ``{waitUntil}`` absolute date
- timeSlot: ``{hours, days}`` next allowed hour on an allowed weekday, scanning two weeks

All times are naive UTC, like every timestamp column.
"""
from datetime import datetime, timedelta
from typing import Optional

from leadwatch.core.logging import setup_logging
from leadwatch.models.campaign import NodeType, WorkflowNode
from leadwatch.services.monitoring import parse_timestamp

logger = setup_logging(__name__)

TIMING_NODE_TYPES = {NodeType.DELAY.value, NodeType.WAIT_UNTIL.value, NodeType.TIME_SLOT.value}
TIME_SLOT_SCAN_DAYS = 14

DELAY_UNITS = {
    "minutes": lambda amount: timedelta(minutes=amount),
    "hours": lambda amount: timedelta(hours=amount),
    "days": lambda amount: timedelta(days=amount),
    "weeks": lambda amount: timedelta(weeks=amount),
}

WEEKDAYS = {"Mon": 0, "Tue": 1, "Wed": 2, "Thu": 3, "Fri": 4, "Sat": 5, "Sun": 6}


def is_timing_node(node_type) -> bool:
    return getattr(node_type, "value", node_type) in TIMING_NODE_TYPES


def is_ready_to_execute(scheduled_for: Optional[datetime], now: Optional[datetime] = None) -> bool:
    if scheduled_for is None:
        return True
    return (now or datetime.utcnow()) >= scheduled_for


def _next_time_slot(config: dict, current_time: datetime) -> datetime:
    hours = sorted(int(hour) for hour in config.get("hours") or [])
    days = config.get("days") or []
    if not hours or not days:
        return current_time

    allowed_days = {WEEKDAYS[day] for day in days if day in WEEKDAYS}

    candidate = current_time
    for _ in range(TIME_SLOT_SCAN_DAYS):
        if candidate.weekday() in allowed_days:
            next_hour = next((hour for hour in hours if hour > candidate.hour), None)
            if next_hour is not None:
                return candidate.replace(hour=next_hour, minute=0, second=0, microsecond=0)

        candidate = (candidate + timedelta(days=1)).replace(hour=0, minute=0, second=0, microsecond=0)

    logger.warning(f"No time slot found within {TIME_SLOT_SCAN_DAYS} days for config {config}")
    return candidate


def calculate_next_scheduled_time(node: WorkflowNode, current_time: Optional[datetime] = None) -> datetime:
    """
    When a prospect entering ``node`` may continue.

    Non-timing nodes, and timing nodes without usable config, return
    ``current_time`` unchanged.
    """
    current_time = current_time or datetime.utcnow()
    config = node.config or {}
    node_type = getattr(node.type, "value", node.type)

    if node_type == NodeType.DELAY.value:
        amount = config.get("amount") or 0
        unit = config.get("unit") or "days"
        to_delta = DELAY_UNITS.get(unit)
        if to_delta is None:
            logger.warning(f"Unknown delay unit {unit!r} on node {node.id}")
            return current_time
        return current_time + to_delta(amount)

    if node_type == NodeType.WAIT_UNTIL.value:
        return parse_timestamp(config.get("waitUntil"), default=current_time)

    if node_type == NodeType.TIME_SLOT.value:
        return _next_time_slot(config, current_time)

    return current_time
