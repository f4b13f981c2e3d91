import secrets

import redis

from storefront.data.cache import get_redis
from storefront.utils.retry import redis_retry
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

#LUA porownaj i usun, atomicity
_RELEASE_LUA = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('DEL', KEYS[1])
else
    return 0
end
"""

#redis wykonuje skrypt lua atomowo, nikt nie wcisnie sie miedzy GET a DEL
#wiec lock zwalnia tylko ten kto go trzyma (token)


class LockService:
    """
    -lock merge'a koszyka per sesja goscia
    -rezerwacja stocku produktu dla koszyka
    -zwalnianie przez compare-and-delete w lua
    """

    def __init__(self, client: redis.Redis | None = None):
        self.redis = client if client is not None else get_redis()

    @staticmethod
    def merge_lock_key(session_id: str) -> str:
        return f"cart:merge:{session_id}:lock"

    @staticmethod
    def reservation_key(product_id: int, cart_id: int) -> str:
        return f"stock:reservation:{product_id}:{cart_id}"

    @redis_retry()
    def acquire(self, key: str, ttl: int) -> str | None:
        """Returns the owner token, or None when someone else holds the key."""
        token = secrets.token_hex(16)
        #SET key token NX EX ttl
        ok = self.redis.set(name=key, value=token, nx=True, ex=ttl)
        if not ok:
            logger.info(f"Lock {key} already held")
            return None
        logger.debug(f"Acquired lock {key}")
        return token

    @redis_retry()
    def release(self, key: str, token: str) -> bool:
        res = self.redis.eval(_RELEASE_LUA, 1, key, token)
        if not res:
            logger.warning(f"Lock {key} was not released (expired or taken over)")
        return bool(res)

    @redis_retry()
    def reserve_stock(self, product_id: int, cart_id: int, quantity: int, ttl: int) -> None:
        key = self.reservation_key(product_id, cart_id)
        logger.info(f"Reserve {quantity} x product {product_id} for cart {cart_id} ({ttl}s)")
        #nadpisujemy - rezerwacja odpowiada aktualnej ilosci w koszyku
        self.redis.set(name=key, value=str(quantity), ex=ttl)

    @redis_retry()
    def release_stock(self, product_id: int, cart_id: int) -> bool:
        key = self.reservation_key(product_id, cart_id)
        logger.info(f"Release reservation {key}")
        return bool(self.redis.delete(key))
