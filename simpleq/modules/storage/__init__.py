"""
Storage Module - Black Box Interface

Purpose: Provide the shared Redis connection used by every queue
Interface: connect(), disconnect(), queue()
Hidden: Redis specifics, connection pooling

Elements are raw bytes, so responses are never decoded.
"""

import logging
from typing import Optional

import redis.asyncio as redis

from simpleq.modules.config import ConfigModule, get_config
from simpleq.modules.queue import Queue

logger = logging.getLogger(__name__)


class StorageModule:
    """Black box storage abstraction."""

    def __init__(self, config: Optional[ConfigModule] = None):
        """Initialize storage from configuration."""
        self.config = config or get_config()
        self._pool: Optional[redis.ConnectionPool] = None
        self._client: Optional[redis.Redis] = None

    def _build_pool(self) -> redis.ConnectionPool:
        max_connections = self.config.get("max_connections")
        url = self.config.get("redis_url")
        if url:
            return redis.ConnectionPool.from_url(
                url,
                max_connections=max_connections,
                decode_responses=False,
            )

        return redis.ConnectionPool(
            host=self.config.get("redis_host"),
            port=self.config.get("redis_port"),
            db=self.config.get("redis_db"),
            # Pass password separately to avoid URL encoding issues
            password=self.config.get("redis_password"),
            max_connections=max_connections,
            decode_responses=False,
        )

    async def connect(self) -> redis.Redis:
        """Get storage connection."""
        if not self._client:
            self._pool = self._build_pool()
            self._client = redis.Redis(connection_pool=self._pool)
            logger.info("Redis connection pool initialized")
        return self._client

    async def disconnect(self):
        """Close storage connection."""
        if self._client:
            await self._client.aclose()
            self._client = None
        if self._pool:
            await self._pool.disconnect()
            self._pool = None
            logger.info("Redis connection pool closed")

    async def queue(self, key: str) -> Queue:
        """Create a queue bound to `key` on the shared connection."""
        client = await self.connect()
        return Queue(
            client, key, listener_poll_timeout=self.config.get("listener_poll_timeout")
        )


__all__ = ["StorageModule"]
