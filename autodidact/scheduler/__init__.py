"""Recurring task scheduling."""

from autodidact.scheduler.models import Frequency, ScheduledTask, SchedulerStatus, TaskStatus, TaskType
from autodidact.scheduler.scheduler import DEFAULT_TASKS, ScheduledTaskRunner, TaskScheduler, TickOutcome
from autodidact.scheduler.timing import next_run_for

__all__ = [
    "DEFAULT_TASKS",
    "Frequency",
    "ScheduledTask",
    "ScheduledTaskRunner",
    "SchedulerStatus",
    "TaskScheduler",
    "TaskStatus",
    "TaskType",
    "TickOutcome",
    "next_run_for",
]
