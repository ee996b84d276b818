"""
Celery application.

Analyses run on a dedicated analysis_queue. Each task drives one crawl
end to end, so workers take one task at a time and ack only on completion.
"""

from celery import Celery
from celery.signals import after_setup_logger, worker_ready
from kombu import Exchange, Queue

from site_analyzer.core.config import get_settings

settings = get_settings()

celery_app = Celery(
    "site_analyzer",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["site_analyzer.workers.analysis_tasks"],
)

# ─────────────────────────────────────────────
# Queues
# ─────────────────────────────────────────────

default_exchange = Exchange("default", type="direct")
analysis_exchange = Exchange("analysis", type="direct")

celery_app.conf.task_queues = (
    Queue("default", default_exchange, routing_key="default"),
    Queue("analysis_queue", analysis_exchange, routing_key="analysis"),
)
celery_app.conf.task_default_queue = "default"
celery_app.conf.task_routes = {
    "site_analyzer.workers.analysis_tasks.*": {"queue": "analysis_queue"},
}

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,

    task_acks_late=True,
    task_reject_on_worker_lost=True,
    worker_prefetch_multiplier=1,

    task_soft_time_limit=settings.CELERY_TASK_SOFT_TIME_LIMIT,
    task_time_limit=settings.CELERY_TASK_TIME_LIMIT,

    result_expires=86400,
    worker_send_task_events=True,
)


@worker_ready.connect
def on_worker_ready(sender, **kwargs):
    import structlog
    structlog.get_logger("celery.worker").info("Celery worker ready", hostname=sender.hostname)


@after_setup_logger.connect
def setup_celery_logging(logger, *args, **kwargs):
    from site_analyzer.core.logging import configure_logging
    configure_logging()
