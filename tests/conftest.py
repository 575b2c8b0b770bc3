"""
Shared pytest fixtures for simpleq tests.

This module provides:
- mock_redis: AsyncMock Redis client for call-level assertions
- fake_redis: in-memory Redis double implementing the list commands,
  transactional pipelines and the safe pull-pipe script
"""

import asyncio
import os
import sys
from typing import Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from simpleq.modules.config import reset_config


# =============================================================================
# Redis Mocking Infrastructure
# =============================================================================

@pytest.fixture
def mock_redis():
    """Create a mock Redis client for async list operations."""
    redis = AsyncMock()

    # List operations
    redis.lpush = AsyncMock(return_value=1)
    redis.rpop = AsyncMock(return_value=None)
    redis.brpop = AsyncMock(return_value=None)
    redis.lrem = AsyncMock(return_value=0)
    redis.rpoplpush = AsyncMock(return_value=None)
    redis.brpoplpush = AsyncMock(return_value=None)
    redis.lrange = AsyncMock(return_value=[])
    redis.llen = AsyncMock(return_value=0)
    redis.delete = AsyncMock(return_value=1)

    # Transaction support
    pipeline = MagicMock()
    pipeline.__aenter__ = AsyncMock(return_value=pipeline)
    pipeline.__aexit__ = AsyncMock(return_value=False)
    pipeline.lrem = MagicMock(return_value=pipeline)
    pipeline.lpush = MagicMock(return_value=pipeline)
    pipeline.execute = AsyncMock(return_value=[])
    redis.pipeline = MagicMock(return_value=pipeline)

    # Script support
    script = AsyncMock(return_value=0)
    redis.register_script = MagicMock(return_value=script)

    return redis


def _encode(value) -> bytes:
    if isinstance(value, bytes):
        return value
    if isinstance(value, str):
        return value.encode()
    return str(value).encode()


class FakePipeline:
    """Queues commands and applies them together on execute()."""

    def __init__(self, redis: "InMemoryRedis"):
        self._redis = redis
        self._commands = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self._commands = []
        return False

    def lrem(self, name, count, value):
        self._commands.append(lambda: self._redis._lrem(name, count, value))
        return self

    def lpush(self, name, *values):
        self._commands.append(lambda: self._redis._lpush(name, *values))
        return self

    async def execute(self):
        # No awaits while applying: the batch is atomic for other tasks
        results = [command() for command in self._commands]
        self._commands = []
        return results


class FakeSafePullPipeScript:
    """Applies the safe pull-pipe semantics the Lua script encodes."""

    def __init__(self, redis: "InMemoryRedis", script: str):
        self._redis = redis
        self.script = script

    async def __call__(self, keys=None, args=None, client=None):
        source, destination = keys
        (element,) = args
        if self._redis._lrem(source, -1, element) > 0:
            return self._redis._lpush(destination, element)
        return 0


class InMemoryRedis:
    """
    Minimal in-memory async Redis with list semantics.

    Index 0 of each list is the head (left end).
    """

    def __init__(self):
        self.lists: Dict[str, List[bytes]] = {}

    # -- synchronous primitives shared with pipelines and scripts --

    def _lpush(self, name, *values) -> int:
        lst = self.lists.setdefault(name, [])
        for value in values:
            lst.insert(0, _encode(value))
        return len(lst)

    def _rpop(self, name) -> Optional[bytes]:
        lst = self.lists.get(name)
        if not lst:
            return None
        value = lst.pop()
        if not lst:
            del self.lists[name]
        return value

    def _lrem(self, name, count, value) -> int:
        lst = self.lists.get(name, [])
        target = _encode(value)
        removed = 0
        indexes = range(len(lst) - 1, -1, -1) if count < 0 else range(len(lst))
        for i in list(indexes):
            if count and removed >= abs(count):
                break
            if lst[i] == target:
                lst[i] = None
                removed += 1
        if removed:
            remaining = [v for v in lst if v is not None]
            if remaining:
                self.lists[name] = remaining
            else:
                del self.lists[name]
        return removed

    async def _block(self, name, timeout):
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout if timeout else None
        while not self.lists.get(name):
            if deadline is not None and loop.time() >= deadline:
                return False
            await asyncio.sleep(0.01)
        return True

    # -- redis.asyncio.Redis surface --

    async def lpush(self, name, *values):
        return self._lpush(name, *values)

    async def rpop(self, name):
        return self._rpop(name)

    async def brpop(self, keys, timeout=0):
        if not await self._block(keys, timeout):
            return None
        return [_encode(keys), self._rpop(keys)]

    async def lrem(self, name, count, value):
        return self._lrem(name, count, value)

    async def rpoplpush(self, src, dst):
        value = self._rpop(src)
        if value is not None:
            self._lpush(dst, value)
        return value

    async def brpoplpush(self, src, dst, timeout=0):
        if not await self._block(src, timeout):
            return None
        return await self.rpoplpush(src, dst)

    async def delete(self, *names):
        return sum(1 for name in names if self.lists.pop(name, None) is not None)

    async def lrange(self, name, start, end):
        lst = self.lists.get(name, [])
        stop = None if end == -1 else end + 1
        return list(lst[start:stop])

    async def llen(self, name):
        return len(self.lists.get(name, []))

    def pipeline(self, transaction=True):
        return FakePipeline(self)

    def register_script(self, script):
        return FakeSafePullPipeScript(self, script)


@pytest.fixture
def fake_redis():
    """In-memory Redis double that reads back what it writes."""
    return InMemoryRedis()


@pytest.fixture(autouse=True)
def clean_config():
    """Make every test read configuration from its own environment."""
    reset_config()
    yield
    reset_config()


# =============================================================================
# Test Markers Configuration
# =============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: Integration tests requiring a Redis server (REDIS_URL)"
    )
