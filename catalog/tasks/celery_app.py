"""
Celery Application
Variant processing and CSV imports run on separate queues so a large
import never delays images that clients are waiting on.

Worker:
    celery -A catalog.tasks.celery_app worker -Q uploads,imports
"""

from celery import Celery

from ..config.settings import get_settings

settings = get_settings()

app = Celery(
    "catalog",
    broker=settings.broker_url,
    backend=settings.result_backend,
    include=["catalog.tasks.uploads", "catalog.tasks.ingestion"],
)

app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    enable_utc=True,
    timezone="UTC",
    task_routes={
        "tasks.process_upload_variants": {"queue": "uploads"},
        "tasks.import_products_csv": {"queue": "imports"},
    },
    task_default_queue="uploads",
    # Jobs are idempotent, so a task lost with its worker is simply redelivered
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_time_limit=60 * 60,
    task_soft_time_limit=55 * 60,
    result_expires=24 * 60 * 60,
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=500,
)

if __name__ == "__main__":
    app.start()
