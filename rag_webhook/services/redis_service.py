#!/usr/bin/env python3
"""
Redis service for per-conversation flags and chat history.
"""
import json
from typing import Any, List, Optional

import redis

from rag_webhook.config.settings import REDIS_HOST, REDIS_PORT
from rag_webhook.services.errors import StoreFailed
from rag_webhook.utils.logging_config import setup_logging

log = setup_logging("redis_service.log")


class RedisService:
    """Key-value store operations backed by Redis. Values are stored as JSON."""

    def __init__(self, host: str = REDIS_HOST, port: int = REDIS_PORT, client: Optional[redis.Redis] = None):
        self.client = client or redis.Redis(host=host, port=port, decode_responses=True)

    def get(self, key: str) -> Any:
        """Return the decoded value for key, or None when absent."""
        try:
            raw = self.client.get(key)
        except redis.RedisError as e:
            raise StoreFailed(f"GET {key} failed: {e}") from e
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            return raw

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        """Store value under key, expiring after ttl seconds when given."""
        try:
            self.client.set(key, json.dumps(value), ex=ttl)
        except redis.RedisError as e:
            raise StoreFailed(f"SET {key} failed: {e}") from e

    def delete(self, key: str) -> None:
        try:
            self.client.delete(key)
        except redis.RedisError as e:
            raise StoreFailed(f"DEL {key} failed: {e}") from e

    def get_restart_flag(self, chat_id: str) -> bool:
        """Restart flag for a conversation; unreadable or missing means False."""
        try:
            value = self.get(chat_id)
        except StoreFailed as e:
            log.error(f"💥 Cannot read restart flag for {chat_id}: {e}")
            return False
        return value is True

    def set_restart_flag(self, chat_id: str, value: bool) -> bool:
        """Persist the restart flag without TTL. Returns False when the write failed."""
        try:
            self.set(chat_id, value)
        except StoreFailed as e:
            log.error(f"💥 Cannot write restart flag for {chat_id}: {e}")
            return False
        return True

    def push_messages(self, key: str, messages: List[dict], max_length: int) -> None:
        """Append messages to a list key and keep only the newest max_length entries."""
        if not messages:
            return
        try:
            pipe = self.client.pipeline()
            pipe.rpush(key, *[json.dumps(m) for m in messages])
            pipe.ltrim(key, -max_length, -1)
            pipe.execute()
        except redis.RedisError as e:
            raise StoreFailed(f"RPUSH {key} failed: {e}") from e

    def get_recent(self, key: str, n: int) -> List[dict]:
        """Return up to the last n entries of a list key, oldest first."""
        if n <= 0:
            return []
        try:
            raw = self.client.lrange(key, -n, -1)
        except redis.RedisError as e:
            raise StoreFailed(f"LRANGE {key} failed: {e}") from e
        return [json.loads(item) for item in raw]
