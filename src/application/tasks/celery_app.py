"""
Celery worker application.

Workers run the polling half of the task lifecycle. Each RUNNING effect task
owns exactly one queued poll_effect_task message; the message re-arms itself
with a countdown until the task reaches a terminal state.

Start a worker:
    celery -A src.application.tasks.celery_app worker --loglevel=info

Broker and result backend come from CELERY_BROKER_URL / CELERY_RESULT_BACKEND
(.env is honoured through python-dotenv).
"""

import logging
import os
from datetime import datetime

from celery import Celery
from celery.signals import worker_process_shutdown
from dotenv import load_dotenv

from src.infrastructure.persistence.redis import close_connections
from src.infrastructure.persistence.redis import health_check as redis_health_check

load_dotenv()

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

celery_app = Celery(
    "effectflow",
    broker=os.environ.get("CELERY_BROKER_URL", "redis://localhost:6379/0"),
    backend=os.environ.get("CELERY_RESULT_BACKEND", "redis://localhost:6379/1"),
    include=["src.application.tasks.polling_tasks"],
)

celery_app.conf.update(
    task_track_started=True,
    task_time_limit=120,  # one poll is two HTTP calls at most
    result_expires=3600,
    task_acks_late=True,  # a crashed worker must not lose the poll chain
    worker_prefetch_multiplier=1,
    broker_transport_options={
        # countdown messages wait in the broker; must exceed the longest poll delay
        "visibility_timeout": int(os.environ.get("CELERY_VISIBILITY_TIMEOUT", "3600")),
    },
)


@worker_process_shutdown.connect
def close_worker_resources(**kwargs) -> None:
    """Release the HTTP client and the Redis pool of a stopping worker process."""
    from src.application.container import reset_container

    reset_container()
    close_connections()
    logger.info("Worker process resources released")


@celery_app.task(name="health_check")
def health_check() -> dict:
    """
    Round-trip probe for the worker fleet.

    Proves that the broker delivers messages and the result backend stores
    them, and reports whether the shared cache tier is reachable from the
    worker. A worker without Redis still polls, but on its local tier only.

    Example:
        >>> health_check.delay().get(timeout=5)
        {'status': 'ok', 'shared_cache': True, 'timestamp': '...', 'worker': 'celery@host'}
    """
    shared_cache = redis_health_check()
    if not shared_cache:
        logger.warning("Worker health check: shared cache tier unreachable")

    request = celery_app.current_task.request if celery_app.current_task else None
    return {
        "status": "ok" if shared_cache else "degraded",
        "shared_cache": shared_cache,
        "timestamp": datetime.now().isoformat(),
        "worker": getattr(request, "hostname", None) or "unknown",
    }
