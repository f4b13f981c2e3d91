# storefront/domain/events.py
from dataclasses import dataclass


@dataclass(frozen=True)
class UserLoggedIn:
    """Raised once per successful login.

    ``session_id`` is the guest ``cart_session`` the client carried at login
    time, or None when it had none.
    """

    user_id: int
    session_id: str | None = None
