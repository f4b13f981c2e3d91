# storefront/services/session_service.py
import secrets
import string
from datetime import datetime, timezone

import redis
from sqlalchemy.orm import Session

from storefront.data.cache import get_redis
from storefront.repos.cart_repo import CartRepo
from storefront.utils.retry import redis_retry
from storefront.utils.settings import GUEST_SESSION_TTL_SECONDS, USER_SESSION_TTL_SECONDS
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

SESSION_ID_LENGTH = 40
_ALPHABET = string.ascii_letters + string.digits

GUEST_PREFIX = "cart:session:"
USER_PREFIX = "cart:user:"
#sorted set: klucz rekordu -> last seen (epoch), po nim sprzata cleanup
INDEX_KEY = "cart:sessions"


class SessionService:
    """
    Guest/user session liveness kept in Redis.

    Each record is a plain key holding the last-seen ISO timestamp with a TTL,
    mirrored in the ``cart:sessions`` sorted set so the sweep job can find
    stale records without scanning the keyspace.
    """

    def __init__(
        self,
        db: Session | None = None,
        client: redis.Redis | None = None,
        guest_ttl: int = GUEST_SESSION_TTL_SECONDS,
        user_ttl: int = USER_SESSION_TTL_SECONDS,
    ):
        self.redis = client if client is not None else get_redis()
        self.repo = CartRepo(db) if db is not None else None
        self.guest_ttl = guest_ttl
        self.user_ttl = user_ttl

    @staticmethod
    def generate_session_id() -> str:
        return "".join(secrets.choice(_ALPHABET) for _ in range(SESSION_ID_LENGTH))

    @staticmethod
    def record_key(user_id: int | None = None, session_id: str | None = None) -> str | None:
        if user_id is not None:
            return f"{USER_PREFIX}{user_id}"
        if session_id:
            return f"{GUEST_PREFIX}{session_id}"
        return None

    def _ttl_for(self, key: str) -> int:
        return self.user_ttl if key.startswith(USER_PREFIX) else self.guest_ttl

    @redis_retry()
    def _write_record(self, key: str, now: datetime) -> None:
        pipe = self.redis.pipeline()
        pipe.set(key, now.isoformat(), ex=self._ttl_for(key))
        pipe.zadd(INDEX_KEY, {key: now.timestamp()})
        pipe.execute()

    @redis_retry()
    def last_seen(self, user_id: int | None = None, session_id: str | None = None) -> datetime | None:
        key = self.record_key(user_id, session_id)
        raw = self.redis.get(key) if key else None
        return datetime.fromisoformat(raw) if raw else None

    def start_session(self, session_id: str, now: datetime | None = None) -> None:
        now = now or datetime.now(timezone.utc)
        self._write_record(self.record_key(session_id=session_id), now)
        logger.info(f"Guest session {session_id[:8]}... started")

    def extend_session(
        self,
        user_id: int | None,
        session_id: str | None,
        now: datetime | None = None,
    ) -> bool:
        """
        Refresh liveness for the user (preferred) or the guest session.

        Also touches the guest cart's ``updated_at`` so an active guest is
        not picked up by the expired-cart sweep. Returns False when there is
        nothing to extend.
        """
        key = self.record_key(user_id, session_id)
        if key is None:
            return False

        now = now or datetime.now(timezone.utc)
        self._write_record(key, now)

        if self.repo is not None and user_id is None:
            cart = self.repo.get_guest_cart(session_id)
            if cart:
                self.repo.touch_cart(cart, now)
                self.repo.commit()

        return True

    @redis_retry()
    def forget_session(self, user_id: int | None = None, session_id: str | None = None) -> None:
        key = self.record_key(user_id, session_id)
        if key is None:
            return
        pipe = self.redis.pipeline()
        pipe.delete(key)
        pipe.zrem(INDEX_KEY, key)
        pipe.execute()

    @redis_retry()
    def cleanup_expired_sessions(self, now: datetime | None = None) -> int:
        """Drop records idle longer than their TTL, plus index entries whose key already expired."""
        now_ts = (now or datetime.now(timezone.utc)).timestamp()

        stale = []
        for key, score in self.redis.zscan_iter(INDEX_KEY):
            if score < now_ts - self._ttl_for(key) or not self.redis.exists(key):
                stale.append(key)

        if not stale:
            logger.info("No expired cart sessions")
            return 0

        pipe = self.redis.pipeline()
        pipe.delete(*stale)
        pipe.zrem(INDEX_KEY, *stale)
        pipe.execute()

        logger.info(f"Removed {len(stale)} expired cart sessions")
        return len(stale)
