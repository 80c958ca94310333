"""
Celery configuration for background tasks
"""
from celery import Celery
import logging

logger = logging.getLogger(__name__)

# Import settings with error handling
try:
    from app.core.config import settings
    redis_url = settings.redis_url
    always_eager = settings.CELERY_TASK_ALWAYS_EAGER
    overdue_interval = settings.OVERDUE_SWEEP_INTERVAL
except Exception as e:
    logger.warning(f"Could not load settings: {e}")
    # Fallback values for development
    redis_url = "redis://redis:6379/0"
    always_eager = False
    overdue_interval = 86400.0

# Create Celery instance
celery_app = Celery(
    "wms_ledger",
    broker=redis_url,
    backend=redis_url,
    include=[
        "app.modules.notifications.tasks",
        "app.modules.invoices.tasks",
    ]
)

# Celery configuration
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=5 * 60,  # 5 minutes
    task_soft_time_limit=4 * 60,  # 4 minutes
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=1000,
    task_always_eager=always_eager,

    # Rate limiting
    task_default_rate_limit="100/m",

    # Result backend settings
    result_expires=3600,  # 1 hour

    # Task routes for different queues
    task_routes={
        "app.modules.notifications.tasks.*": {"queue": "notifications"},
        "app.modules.invoices.tasks.*": {"queue": "billing"},
    },

    # Beat schedule for periodic tasks
    beat_schedule={
        "mark-overdue-invoices": {
            "task": "app.modules.invoices.tasks.mark_overdue_invoices_task",
            "schedule": overdue_interval,
        },
    }
)

# Workers do not import app.main; register every mapped class so string relationships resolve
import app.modules.customers.models  # noqa: E402,F401
import app.modules.inventory.models  # noqa: E402,F401
import app.modules.orders.models  # noqa: E402,F401
import app.modules.invoices.models  # noqa: E402,F401
import app.modules.workflow.models  # noqa: E402,F401
import app.modules.notifications.models  # noqa: E402,F401

if __name__ == "__main__":
    celery_app.start()
