"""
Celery configuration for background tasks
"""
from celery import Celery
import logging

from billing.core.config import settings

logger = logging.getLogger(__name__)

celery_app = Celery(
    "billing",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=[
        "billing.modules.documents.tasks",
    ]
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="Asia/Kolkata",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=10 * 60,  # 10 minutes
    task_soft_time_limit=8 * 60,  # 8 minutes
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=1000,

    result_expires=3600,  # 1 hour

    task_routes={
        "billing.modules.documents.tasks.*": {"queue": "documents"},
    },
)
