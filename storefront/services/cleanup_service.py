# storefront/services/cleanup_service.py
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from sqlalchemy.orm import Session

from storefront.repos.cart_repo import CartRepo
from storefront.services.session_service import SessionService
from storefront.utils.settings import GUEST_CART_EXPIRATION_HOURS
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class SweepReport:
    carts: int = 0
    items: int = 0

    def summary(self) -> str:
        if not self.carts:
            return "No expired carts found."
        return f"Cleaned up {self.carts} expired carts with {self.items} items."


class CleanupService:
    """Batch sweeps run by the scheduler; no state kept between runs."""

    def __init__(
        self,
        db: Session,
        session_service: SessionService | None = None,
        expiration_hours: int = GUEST_CART_EXPIRATION_HOURS,
    ):
        self.repo = CartRepo(db)
        self.session_service = session_service
        self.expiration_hours = expiration_hours

    def clean_expired_carts(self, now: datetime | None = None) -> SweepReport:
        now = now or datetime.now(timezone.utc)
        cutoff = now - timedelta(hours=self.expiration_hours)

        expired_ids = self.repo.expired_guest_cart_ids(cutoff)
        if not expired_ids:
            logger.info("No expired guest carts")
            return SweepReport()

        try:
            #najpierw itemy, potem koszyki - bez kaskady zostalyby sieroty
            items = self.repo.delete_items_for_carts(expired_ids)
            carts = self.repo.delete_carts(expired_ids)
            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise

        logger.info(f"Deleted {carts} guest carts older than {cutoff.isoformat()} ({items} items)")
        return SweepReport(carts=carts, items=items)

    def cleanup_expired_sessions(self, now: datetime | None = None) -> int:
        if self.session_service is None:
            raise RuntimeError("Session cleanup needs a session service")
        return self.session_service.cleanup_expired_sessions(now=now)
