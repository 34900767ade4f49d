"""
Celery Worker Configuration

One queue per analyzer (structural, content, technical). Retries are
scheduled by the tasks themselves from the job record's backoff policy, so
Celery's own retry limit is disabled.

Start a worker with:
    celery -A siteaudit.worker worker -Q structural,content,technical
"""
import logging

from celery import Celery, Task, signals

from siteaudit.config import Settings, get_settings
from siteaudit.logging import setup_logging
from siteaudit.models.analysis import AnalysisType
from siteaudit.services.job_queue import task_name

logger = logging.getLogger(__name__)


class SiteAuditTask(Task):
    """Base task class with failure and retry logging."""

    abstract = True

    def on_failure(self, exc, task_id, args, kwargs, einfo):
        logger.error(f"[WORKER] Task {self.name}[{task_id}] failed: {type(exc).__name__}: {exc}")

    def on_retry(self, exc, task_id, args, kwargs, einfo):
        logger.warning(f"[WORKER] Task {self.name}[{task_id}] scheduled for retry: {exc}")


def create_celery_app(settings: Settings) -> Celery:
    app = Celery(
        "siteaudit",
        broker=settings.REDIS_URL,
        include=["siteaudit.tasks.analysis_tasks"],
        task_cls=SiteAuditTask,
    )

    app.conf.update(
        # Task settings
        task_serializer="json",
        accept_content=["json"],
        timezone="UTC",
        enable_utc=True,
        task_ignore_result=True,

        # Task execution settings
        task_acks_late=True,
        task_reject_on_worker_lost=True,
        task_time_limit=300,
        task_soft_time_limit=240,

        # Worker settings
        worker_prefetch_multiplier=1,
        worker_max_tasks_per_child=100,

        # Queue routing
        task_routes={
            task_name(analysis_type): {"queue": analysis_type.value}
            for analysis_type in AnalysisType
        },
        task_default_queue="default",
        broker_transport_options={"priority_steps": list(range(10))},
    )
    return app


celery_app = create_celery_app(get_settings())


@signals.setup_logging.connect
def configure_worker_logging(**kwargs):
    setup_logging(get_settings().LOG_LEVEL)
