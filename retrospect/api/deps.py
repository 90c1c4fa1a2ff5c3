from typing import Optional

from retrospect.core.config import settings
from retrospect.core.database import AsyncSessionLocal
from retrospect.services.ai_service import task_generation_handler
from retrospect.services.completion import CompletionGateway
from retrospect.services.jobs import DatabaseJobQueue
from retrospect.services.metrics import MetricsConfig

TASKS_JOB_KIND = "tasks"

_job_queue: Optional[DatabaseJobQueue] = None


def get_metrics_config() -> MetricsConfig:
    return MetricsConfig.from_settings(settings)


def get_completion_gateway() -> CompletionGateway:
    return CompletionGateway.from_settings(settings)


def get_job_queue() -> DatabaseJobQueue:
    global _job_queue
    if _job_queue is None:
        gateway = CompletionGateway.from_settings(settings)
        _job_queue = DatabaseJobQueue(
            AsyncSessionLocal,
            handlers={TASKS_JOB_KIND: task_generation_handler(gateway)},
        )
    return _job_queue
