# storefront/tasks/expire.py
from storefront.celery_worker import celery_app
from storefront.data.cache import get_redis
from storefront.data.database import SessionLocal
from storefront.services.cleanup_service import CleanupService
from storefront.services.session_service import SessionService
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def run_clean_expired_carts(session_factory=SessionLocal, now=None) -> dict:
    """One sweep of stale guest carts. Store failures are reported, never raised."""
    db = session_factory()
    try:
        report = CleanupService(db).clean_expired_carts(now=now)
        return {
            "status": "ok",
            "carts": report.carts,
            "items": report.items,
            "message": report.summary(),
        }
    except Exception as e:
        logger.error(f"Expired cart sweep failed: {e}")
        return {"status": "failed", "error": str(e)}
    finally:
        db.close()


def run_cleanup_expired_sessions(client=None, now=None) -> dict:
    try:
        service = SessionService(client=client if client is not None else get_redis())
        removed = CleanupService(db=None, session_service=service).cleanup_expired_sessions(now=now)
        return {"status": "ok", "removed": removed}
    except Exception as e:
        logger.error(f"Expired session sweep failed: {e}")
        return {"status": "failed", "error": str(e)}


@celery_app.task(name="storefront.tasks.expire.clean_expired_carts_task")
def clean_expired_carts_task():
    logger.info("Clean expired carts task started")
    return run_clean_expired_carts()


@celery_app.task(name="storefront.tasks.expire.cleanup_expired_sessions_task")
def cleanup_expired_sessions_task():
    logger.info("Cleanup expired sessions task started")
    return run_cleanup_expired_sessions()
