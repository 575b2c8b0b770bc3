"""
SimpleQ - A super simple Redis-backed queue

Push, pop, blocking pop and atomic transfers between queues, plus a
background listener for continuous consumption.

Modules:
- config: Environment-driven configuration
- storage: Shared Redis client and connection pool
- queue: Queue operations and listeners
"""

from simpleq.modules.queue import (
    Listener,
    ListenerAlreadyAttachedError,
    ListenerState,
    Queue,
    QueueTimeoutError,
    SimpleQError,
)

__version__ = "1.0.0"

__all__ = [
    "Listener",
    "ListenerAlreadyAttachedError",
    "ListenerState",
    "Queue",
    "QueueTimeoutError",
    "SimpleQError",
]
