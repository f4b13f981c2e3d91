# storefront/celery_worker.py
from celery import Celery

from storefront.utils.settings import (
    CELERY_BROKER_URL,
    CELERY_RESULT_BACKEND,
    SWEEP_INTERVAL_SECONDS,
)

celery_app = Celery(
    "storefront",
    broker=CELERY_BROKER_URL,
    backend=CELERY_RESULT_BACKEND,
)

# taski trzeba zaimportowac explicite, inaczej celery ich nie zarejestruje
celery_app.conf.imports = ("storefront.tasks.expire",)

# dwa niezalezne sweepy, kazdy na swoim timerze
celery_app.conf.beat_schedule = {
    "clean-expired-carts": {
        "task": "storefront.tasks.expire.clean_expired_carts_task",
        "schedule": SWEEP_INTERVAL_SECONDS,
    },
    "cleanup-expired-sessions": {
        "task": "storefront.tasks.expire.cleanup_expired_sessions_task",
        "schedule": SWEEP_INTERVAL_SECONDS,
    },
}

celery_app.conf.timezone = "UTC"
