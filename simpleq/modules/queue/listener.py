"""
Background consumer for a queue.

A listener repeatedly performs a blocking pop (or a blocking pop-and-push into
a destination queue) and delivers each element and each error until it is
closed. Errors never stop the loop; only close() does.
"""

import asyncio
import inspect
import logging
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Optional

from .errors import QueueTimeoutError

if TYPE_CHECKING:
    from .queue import Queue

logger = logging.getLogger(__name__)

DEFAULT_POLL_TIMEOUT = 1


class ListenerState(str, Enum):
    """Listener lifecycle."""

    IDLE = "idle"
    RUNNING = "running"
    CLOSING = "closing"
    ENDED = "ended"


class Listener:
    def __init__(
        self,
        queue: "Queue",
        destination: Optional["Queue"] = None,
        poll_timeout: int = DEFAULT_POLL_TIMEOUT,
        on_element: Optional[Callable[[bytes], Any]] = None,
        on_error: Optional[Callable[[Exception], Any]] = None,
        on_end: Optional[Callable[["Listener"], None]] = None,
    ):
        """
        Initialize listener.

        Elements go to `on_element` when given, else onto `self.elements`.
        Errors go to `on_error` when given, else onto `self.errors`.

        Args:
            queue: Queue to pop from
            destination: Queue to push popped elements onto (pop-and-push mode)
            poll_timeout: Seconds each blocking pop waits; bounds close latency
            on_element: Optional callback (sync or async) per element
            on_error: Optional callback (sync or async) per error
            on_end: Called once when the loop has ended
        """
        if poll_timeout <= 0:
            raise ValueError(f"poll_timeout must be > 0 seconds, got {poll_timeout}")

        self.queue = queue
        self.destination = destination
        self.poll_timeout = poll_timeout
        self.elements: asyncio.Queue = asyncio.Queue()
        self.errors: asyncio.Queue = asyncio.Queue()
        self.state = ListenerState.IDLE

        self._on_element = on_element
        self._on_error = on_error
        self._on_end = on_end
        self._closing = asyncio.Event()
        self._ended = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    def __repr__(self) -> str:
        dest = self.destination.key if self.destination is not None else None
        return f"Listener(key={self.queue.key!r}, destination={dest!r}, state={self.state.value})"

    @property
    def closed(self) -> bool:
        """True once close has been requested."""
        return self._closing.is_set()

    @property
    def ended(self) -> bool:
        """True once the loop has exited."""
        return self._ended.is_set()

    def start(self) -> "Listener":
        """Start the background loop on the running event loop."""
        if self._task is not None:
            return self

        self._task = asyncio.get_running_loop().create_task(
            self._run(), name=f"simpleq-listener:{self.queue.key}"
        )
        # Runs even if the task is cancelled before _run starts
        self._task.add_done_callback(lambda _task: self._finish())
        self.state = ListenerState.RUNNING
        return self

    async def close(self) -> None:
        """
        Close the listener and wait for its loop to end.

        Safe to call more than once and from several tasks at the same time.
        The loop notices the request at its next poll boundary, so this can
        take up to poll_timeout seconds.
        """
        if not self._closing.is_set():
            self._closing.set()
            if self.state is ListenerState.RUNNING:
                self.state = ListenerState.CLOSING
                logger.info(f"Closing listener on {self.queue.key}")

        if self._task is None:
            self._finish()
            return

        # Called from a callback inside the loop; it will exit on its own
        if asyncio.current_task() is self._task:
            return

        await self.wait_closed()

    async def wait_closed(self) -> None:
        """
        Wait until the loop has ended.

        Raises:
            Exception: Whatever unexpectedly terminated the loop, if anything
        """
        await self._ended.wait()

        task = self._task
        if task is not None and task.done() and not task.cancelled():
            exc = task.exception()
            if exc is not None:
                raise exc

    async def _run(self) -> None:
        mode = "pop-pipe" if self.destination is not None else "pop"
        logger.info(f"Listener started on {self.queue.key} ({mode})")
        try:
            while not self._closing.is_set():
                try:
                    element = await self._next()
                except QueueTimeoutError:
                    continue
                except Exception as e:
                    logger.warning(f"Listener on {self.queue.key} got error: {e}")
                    await self._deliver_error(e)
                    await self._pause()
                    continue

                if element is not None:
                    await self._deliver(element)
        finally:
            self._finish()
            logger.info(f"Listener ended on {self.queue.key}")

    async def _next(self) -> Optional[bytes]:
        if self.destination is not None:
            return await self.queue.bpop_pipe(self.destination, self.poll_timeout)
        return await self.queue.bpop(self.poll_timeout)

    async def _pause(self) -> None:
        """Wait out one poll interval after an error, waking early on close."""
        try:
            await asyncio.wait_for(self._closing.wait(), timeout=self.poll_timeout)
        except asyncio.TimeoutError:
            pass

    async def _deliver(self, element: bytes) -> None:
        if self._on_element is None:
            self.elements.put_nowait(element)
            return

        try:
            await _maybe_await(self._on_element(element))
        except Exception as e:
            logger.exception(f"Element callback failed on {self.queue.key}")
            await self._deliver_error(e)

    async def _deliver_error(self, error: Exception) -> None:
        if self._on_error is None:
            self.errors.put_nowait(error)
            return

        try:
            await _maybe_await(self._on_error(error))
        except Exception:
            logger.exception(f"Error callback failed on {self.queue.key}")

    def _finish(self) -> None:
        """Mark the listener ended and notify the owner exactly once."""
        if self._ended.is_set():
            return

        self.state = ListenerState.ENDED
        self._ended.set()

        if self._on_end is not None:
            on_end, self._on_end = self._on_end, None
            on_end(self)


async def _maybe_await(result: Any) -> Any:
    if inspect.isawaitable(result):
        return await result
    return result
