"""
Short-lived cache of raw analyzer output, keyed by task id.
"""

import json
import logging
from typing import Any, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from siteaudit.core.exceptions import PersistenceFailure

logger = logging.getLogger(__name__)


class ResultCache:
    """JSON documents under `job:result:{task_id}` with a fixed TTL."""

    def __init__(self, redis_client: redis.Redis, ttl: int = 3600):
        self.redis = redis_client
        self.ttl = ttl

    @staticmethod
    def _key(task_id: str) -> str:
        return f"job:result:{task_id}"

    async def store(self, task_id: str, result: dict[str, Any]) -> None:
        try:
            await self.redis.set(self._key(task_id), json.dumps(result), ex=self.ttl)
        except RedisError as e:
            raise PersistenceFailure("result cache", str(e)) from e
        logger.debug(f"[CACHE] Stored result for {task_id} (ttl {self.ttl}s)")

    async def fetch(self, task_id: str) -> Optional[dict[str, Any]]:
        raw = await self.redis.get(self._key(task_id))
        if raw is None:
            return None
        return json.loads(raw)
