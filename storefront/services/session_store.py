# storefront/services/session_store.py
import secrets

import redis

from storefront.utils.logging import get_logger
from storefront.utils.retry import redis_retry
from storefront.utils.settings import AUTH_SESSION_TTL_SECONDS, REDIS_URL

logger = get_logger(__name__)


class SessionStore:
    """
    Authenticated sessions kept in Redis:
    auth:session:<token> -> user profile id, expiring after the session TTL.
    Only the profile id is stored, the role is re-read on every request.
    """

    def __init__(self, url: str | None = None, client: redis.Redis | None = None, ttl: int = AUTH_SESSION_TTL_SECONDS):
        self.redis = client or redis.Redis.from_url(url or REDIS_URL, decode_responses=True)
        self.ttl = ttl

    @staticmethod
    def _key(token: str) -> str:
        return f"auth:session:{token}"

    @redis_retry()
    def issue(self, user_id: str) -> str:
        token = secrets.token_urlsafe(32)
        # SET auth:session:<token> <user_id> EX <ttl>
        self.redis.set(name=self._key(token), value=user_id, ex=self.ttl)
        logger.info(f"Issued session for user {user_id}")
        return token

    @redis_retry()
    def resolve(self, token: str) -> str | None:
        return self.redis.get(self._key(token))

    @redis_retry()
    def revoke(self, token: str) -> bool:
        return bool(self.redis.delete(self._key(token)))
