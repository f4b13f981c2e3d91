# storefront/data/cache.py
from functools import lru_cache

import redis
from fastapi import Request

from storefront.utils.settings import REDIS_URL


@lru_cache(maxsize=1)
def get_redis() -> redis.Redis:
    return redis.Redis.from_url(REDIS_URL, decode_responses=True)


def redis_dependency(request: Request) -> redis.Redis:
    client = getattr(request.app.state, "redis", None)
    return client if client is not None else get_redis()
