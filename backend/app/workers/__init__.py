from celery import Celery
import structlog
from celery.signals import after_setup_logger, after_setup_task_logger
from app.config import settings
from app.logging import setup_logging

# Initialize logging for the main process
setup_logging()
logger = structlog.get_logger()


@after_setup_logger.connect
@after_setup_task_logger.connect
def setup_celery_logging(logger, **kwargs):
    """Ensure structlog is setup for Celery workers."""
    setup_logging()
    structlog.get_logger().info("Celery worker logging initialized")


celery_app = Celery(
    "campaign_messaging",
    broker=settings.get_redis_url,
    backend=settings.get_redis_url,
    include=["app.workers.publish_tasks"],
)

celery_app.conf.update(
    worker_hijack_root_logger=False,
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=600,  # 10 minutes max per task
    worker_prefetch_multiplier=1,
    task_acks_late=True,
    broker_pool_limit=1,
    redis_max_connections=2,
    broker_connection_retry_on_startup=True,
    broker_connection_max_retries=10,
    task_ignore_result=True,
    worker_max_tasks_per_child=50,
    # External trigger for scheduled messages; the API process never polls
    beat_schedule={
        "publish-due-messages": {
            "task": "publish.due_messages",
            "schedule": float(settings.publish_poll_interval_seconds),
        },
    },
)
