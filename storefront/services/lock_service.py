# storefront/services/lock_service.py
import uuid

import redis

from storefront.utils.logging import get_logger
from storefront.utils.retry import redis_retry
from storefront.utils.settings import CHECKOUT_LOCK_TTL_SECONDS, REDIS_URL

logger = get_logger(__name__)

# compare-and-delete, runs atomically inside redis so nobody can slip
# between the GET and the DEL
_RELEASE_LUA = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('DEL', KEYS[1])
else
    return 0
end
"""


class LockService:
    """
    Short-lived per-user checkout lock. A double submitted "place order"
    fails fast instead of queueing behind the first transaction.
    The lock expires on its own if the holder dies.
    """

    def __init__(self, url: str | None = None, client: redis.Redis | None = None):
        self.redis = client or redis.Redis.from_url(url or REDIS_URL, decode_responses=True)

    @staticmethod
    def _key(user_id: str) -> str:
        return f"checkout:{user_id}:lock"

    @redis_retry()
    def acquire_checkout_lock(self, user_id: str, ttl: int = CHECKOUT_LOCK_TTL_SECONDS) -> str | None:
        """Returns the owner token when the lock was taken, None when someone holds it."""
        key = self._key(user_id)
        token = str(uuid.uuid4())
        logger.info(f"Acquire lock {key}")
        # SET checkout:<user>:lock <token> NX EX <ttl>
        if self.redis.set(name=key, value=token, nx=True, ex=ttl):
            return token
        return None

    @redis_retry()
    def release_checkout_lock(self, user_id: str, token: str) -> bool:
        key = self._key(user_id)
        logger.info(f"Release lock {key}")
        res = self.redis.eval(_RELEASE_LUA, 1, key, token)
        return bool(res)
