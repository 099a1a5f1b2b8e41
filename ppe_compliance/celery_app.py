# ppe_compliance/celery_app.py
from celery import Celery
from celery.schedules import crontab

from ppe_compliance.config import CELERY_BROKER, CELERY_BACKEND

celery = Celery(
    "ppe_tasks",
    broker=CELERY_BROKER,
    backend=CELERY_BACKEND,
    include=["ppe_compliance.tasks"]
)

celery.conf.update(
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=200,
    timezone="UTC",
    enable_utc=True,
    beat_schedule={
        "warm-previous-month-reports": {
            "task": "ppe_compliance.tasks.warm_previous_month",
            "schedule": crontab(minute=15, hour=0),
        },
    },
)
