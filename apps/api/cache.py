# apps/api/cache.py
from typing import Optional

import redis
from config import settings

_redis: Optional[redis.Redis] = None


def get_redis() -> redis.Redis:
    global _redis
    if _redis is None:
        _redis = redis.Redis.from_url(settings.redis_url, decode_responses=True)
    return _redis


def healthcheck() -> bool:
    return bool(get_redis().ping())
