# storefront/services/login_events.py
from storefront.domain.events import UserLoggedIn
from storefront.services.merge_service import CartMergeService, MergeResult, NOOP
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def handle_user_logged_in(event: UserLoggedIn, merge_service: CartMergeService) -> MergeResult:
    """Single consumer of UserLoggedIn: merge the guest cart into the user's cart."""
    logger.info(f"User {event.user_id} logged in")

    if not event.session_id:
        return MergeResult(NOOP)

    return merge_service.merge_guest_cart(event.user_id, event.session_id)
