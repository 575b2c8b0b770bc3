import logging
from typing import Any, Awaitable, Callable, List, Optional, Union

from .errors import ListenerAlreadyAttachedError, QueueTimeoutError
from .listener import DEFAULT_POLL_TIMEOUT, Listener
from .scripts import SAFE_PULL_PIPE

logger = logging.getLogger(__name__)

Element = Union[bytes, str, int, float]
ElementCallback = Callable[[bytes], Optional[Awaitable[Any]]]
ErrorCallback = Callable[[Exception], Optional[Awaitable[Any]]]


def _check_timeout(timeout_secs: int) -> None:
    if timeout_secs < 0:
        raise ValueError(f"timeout must be >= 0 seconds, got {timeout_secs}")


class Queue:
    """A super simple Redis-backed queue."""

    def __init__(
        self,
        redis_client,
        key: str,
        listener_poll_timeout: int = DEFAULT_POLL_TIMEOUT,
    ):
        """
        Initialize queue.

        Args:
            redis_client: Async Redis client, shared with other queues
            key: Redis list key backing this queue
            listener_poll_timeout: Seconds each listener poll blocks for
        """
        self.redis = redis_client
        self.key = key
        self.listener_poll_timeout = listener_poll_timeout
        self._listener: Optional[Listener] = None
        self._safe_pull_pipe = redis_client.register_script(SAFE_PULL_PIPE)

    def __repr__(self) -> str:
        return f"Queue(key={self.key!r})"

    async def __aenter__(self) -> "Queue":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    @property
    def listener(self) -> Optional[Listener]:
        """The attached listener, if any."""
        return self._listener

    async def close(self) -> None:
        """End this queue, closing its listener if one is attached."""
        listener = self._listener
        if listener is not None:
            await listener.close()

    async def push(self, element: Element) -> int:
        """
        Push an element onto the queue.

        Returns:
            Length of the queue after the push
        """
        return await self.redis.lpush(self.key, element)

    async def pop(self) -> Optional[bytes]:
        """
        Pop an element off the queue.

        Returns:
            The oldest element, or None if the queue is empty
        """
        return await self.redis.rpop(self.key)

    async def bpop(self, timeout_secs: int = 0) -> Optional[bytes]:
        """
        Block and pop an element off the queue.

        Use timeout_secs = 0 to block indefinitely.
        On timeout this DOES raise, unlike bpop_pipe.

        Raises:
            QueueTimeoutError: No element arrived within timeout_secs
        """
        _check_timeout(timeout_secs)
        res = await self.redis.brpop(self.key, timeout=timeout_secs)

        if res is None:
            raise QueueTimeoutError(self.key, timeout_secs)

        # Reply is [key, element]; anything else means no element
        if isinstance(res, (list, tuple)) and len(res) == 2:
            if isinstance(res[1], (bytes, str)):
                return res[1]

        logger.debug(f"Unexpected BRPOP reply on {self.key}: {res!r}")
        return None

    async def pull(self, element: Element) -> int:
        """
        Pull an element out of the queue, searching from the pop end.

        Returns:
            Number of elements removed
        """
        return await self.redis.lrem(self.key, -1, element)

    async def pull_pipe(self, other: "Queue", element: Element) -> int:
        """
        Pull an element out of the queue and push it onto another atomically.

        Note: the element is pushed onto `other` regardless of whether the
        pull removed anything. Use safe_pull_pipe when the push must depend
        on the removal.

        Returns:
            Length of `other` after the push
        """
        async with self.redis.pipeline(transaction=True) as pipe:
            pipe.lrem(self.key, -1, element)
            pipe.lpush(other.key, element)
            res = await pipe.execute()

        if isinstance(res, (list, tuple)) and len(res) == 2 and isinstance(res[1], int):
            return res[1]
        return 0

    async def safe_pull_pipe(self, other: "Queue", element: Element) -> int:
        """
        Safely pull an element out of the queue and push it onto another atomically.

        Returns:
            0 if the element was not in this queue, otherwise the length of `other`
        """
        res = await self._safe_pull_pipe(keys=[self.key, other.key], args=[element])
        return int(res)

    async def pop_pipe(self, other: "Queue") -> Optional[bytes]:
        """
        Pop an element off the queue and push it onto another atomically.

        Returns:
            The moved element, or None if this queue is empty
        """
        return await self.redis.rpoplpush(self.key, other.key)

    async def bpop_pipe(self, other: "Queue", timeout_secs: int = 0) -> Optional[bytes]:
        """
        Block, pop an element off the queue and push it onto another atomically.

        On timeout this does NOT raise; it returns None.
        """
        _check_timeout(timeout_secs)
        return await self.redis.brpoplpush(self.key, other.key, timeout=timeout_secs)

    async def clear(self) -> int:
        """
        Clear the queue of elements.

        Returns:
            1 if the queue existed, else 0
        """
        return await self.redis.delete(self.key)

    async def list(self) -> List[bytes]:
        """List the elements in the queue, head (newest) to tail (oldest)."""
        return list(await self.redis.lrange(self.key, 0, -1))

    async def length(self) -> int:
        """Get number of elements in the queue."""
        return await self.redis.llen(self.key)

    def pop_listen(
        self,
        on_element: Optional[ElementCallback] = None,
        on_error: Optional[ErrorCallback] = None,
        poll_timeout: Optional[int] = None,
    ) -> Listener:
        """Create and start a listener that repeatedly calls bpop."""
        return self.pop_pipe_listen(
            None, on_element=on_element, on_error=on_error, poll_timeout=poll_timeout
        )

    def pop_pipe_listen(
        self,
        other: Optional["Queue"],
        on_element: Optional[ElementCallback] = None,
        on_error: Optional[ErrorCallback] = None,
        poll_timeout: Optional[int] = None,
    ) -> Listener:
        """
        Create and start a listener that repeatedly calls bpop_pipe into `other`.

        Must be called while an event loop is running.

        Raises:
            ListenerAlreadyAttachedError: This queue already has a listener
        """
        # No await between the check and the assignment
        if self._listener is not None:
            raise ListenerAlreadyAttachedError(self.key)

        listener = Listener(
            self,
            other,
            poll_timeout=self.listener_poll_timeout if poll_timeout is None else poll_timeout,
            on_element=on_element,
            on_error=on_error,
            on_end=self._release_listener,
        )
        self._listener = listener
        try:
            listener.start()
        except Exception:
            self._listener = None
            raise
        return listener

    def _release_listener(self, listener: Listener) -> None:
        """Free the listener slot once its loop has ended."""
        if self._listener is listener:
            self._listener = None
            logger.debug(f"Listener released from queue {self.key}")
