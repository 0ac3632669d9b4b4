from typing import Optional

from redis import Redis
from authflow.settings import settings

_client: Optional[Redis] = None


def get_redis() -> Redis:
    # One pooled client per process; bounded timeouts so a dead Redis fails fast.
    global _client
    if _client is None:
        _client = Redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_timeout=settings.REDIS_SOCKET_TIMEOUT_SEC,
            socket_connect_timeout=settings.REDIS_SOCKET_TIMEOUT_SEC,
        )
    return _client
