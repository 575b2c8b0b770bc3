"""Errors raised by the queue module."""


class SimpleQError(Exception):
    """Base class for simpleq errors."""


class QueueTimeoutError(SimpleQError):
    """A blocking pop timed out before an element became available."""

    def __init__(self, key: str, timeout: int):
        super().__init__(f"Blocking pop on {key!r} timed out after {timeout}s")
        self.key = key
        self.timeout = timeout


class ListenerAlreadyAttachedError(SimpleQError):
    """A queue already owns an active listener."""

    def __init__(self, key: str):
        super().__init__(f"Queue {key!r} can only have one listener")
        self.key = key
