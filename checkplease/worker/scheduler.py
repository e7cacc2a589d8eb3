"""
Taskiq scheduler for periodic tasks.

    taskiq scheduler checkplease.worker.scheduler:scheduler
"""

from taskiq import TaskiqScheduler
from taskiq.schedule_sources import LabelScheduleSource

from checkplease.worker import tasks  # noqa: F401  registers scheduled tasks
from checkplease.worker.broker import broker

__all__ = ("scheduler",)

scheduler = TaskiqScheduler(broker=broker, sources=[LabelScheduleSource(broker)])
