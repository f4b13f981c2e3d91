# storefront/services/merge_service.py
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from storefront.repos.cart_repo import CartRepo
from storefront.services.lock_service import LockService
from storefront.services.session_service import SessionService
from storefront.utils.settings import MERGE_CART_ON_LOGIN, MERGE_LOCK_TTL_SECONDS
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

DISABLED = "disabled"
LOCKED = "locked"
NOOP = "noop"
PROMOTED = "promoted"
MERGED = "merged"


@dataclass
class MergeResult:
    outcome: str
    cart_id: int | None = None
    summed: int = 0
    moved: int = 0

    @property
    def applied(self) -> bool:
        return self.outcome in (PROMOTED, MERGED)


class CartMergeService:
    """
    Merge-on-login: fold the guest cart into the user's cart.

    - no guest cart -> nothing happens
    - user has no cart -> guest cart is promoted in place (owner rewritten)
    - otherwise items are summed by product_id or moved, guest cart deleted

    The whole read/write sequence runs under a per-session Redis lock and in
    a single DB transaction, so two near-simultaneous logins for the same
    session cannot both merge. Quantities are not capped here.
    """

    def __init__(
        self,
        db: Session,
        lock_service: LockService,
        session_service: SessionService,
        enabled: bool = MERGE_CART_ON_LOGIN,
        lock_ttl: int = MERGE_LOCK_TTL_SECONDS,
    ):
        self.repo = CartRepo(db)
        self.lock_service = lock_service
        self.session_service = session_service
        self.enabled = enabled
        self.lock_ttl = lock_ttl

    def merge_guest_cart(
        self,
        user_id: int,
        session_id: str,
        now: datetime | None = None,
    ) -> MergeResult:
        if not self.enabled:
            logger.info("Cart merge on login is disabled")
            return MergeResult(DISABLED)

        if not session_id:
            return MergeResult(NOOP)

        lock_key = LockService.merge_lock_key(session_id)
        token = self.lock_service.acquire(lock_key, ttl=self.lock_ttl)
        if token is None:
            logger.warning(f"Merge for session {session_id[:8]}... already in progress, skipping")
            return MergeResult(LOCKED)

        try:
            result = self._merge(user_id, session_id, now or datetime.now(timezone.utc))
            self.repo.commit()
        except Exception as e:
            logger.error(f"Cart merge failed for user {user_id}: {e}")
            self.repo.rollback()
            raise
        finally:
            self.lock_service.release(lock_key, token)

        if result.applied:
            self.session_service.forget_session(session_id=session_id)
        return result

    def _merge(self, user_id: int, session_id: str, now: datetime) -> MergeResult:
        guest_cart = self.repo.get_guest_cart(session_id)
        if not guest_cart:
            return MergeResult(NOOP)

        user_cart = self.repo.get_user_cart(user_id)

        if not user_cart:
            #przepinamy koszyk goscia na usera, itemy zostaja
            self.repo.promote_cart(guest_cart, user_id, now)
            logger.info(f"Guest cart {guest_cart.id} promoted to user {user_id}")
            return MergeResult(PROMOTED, cart_id=guest_cart.id)

        summed = moved = 0
        for guest_item in self.repo.get_cart_items(guest_cart.id):
            existing = self.repo.get_cart_item(user_cart.id, guest_item.product_id)
            if existing:
                existing.quantity += guest_item.quantity
                existing.updated_at = now
                summed += 1
            else:
                self.repo.move_item(guest_item, user_cart.id, now)
                moved += 1

        #zsumowane itemy goscia dalej wisza na jego koszyku
        self.repo.delete_items_for_carts([guest_cart.id])
        self.repo.delete_cart(guest_cart.id)
        self.repo.touch_cart(user_cart, now)

        logger.info(
            f"Merged guest cart {guest_cart.id} into cart {user_cart.id} "
            f"for user {user_id}: {summed} summed, {moved} moved"
        )
        return MergeResult(MERGED, cart_id=user_cart.id, summed=summed, moved=moved)
