"""
Queue Module - Black Box Interface

Purpose: Queue semantics over a single Redis list
Interface: Queue.push(), pop(), bpop(), pull(), pull_pipe(), safe_pull_pipe(),
           pop_pipe(), bpop_pipe(), clear(), list(), length(), pop_listen(),
           pop_pipe_listen(), close()
Hidden: Redis commands, MULTI/EXEC transactions, Lua scripts, listener loop

Elements are pushed on the left and popped from the right (FIFO).
"""

from .errors import ListenerAlreadyAttachedError, QueueTimeoutError, SimpleQError
from .listener import DEFAULT_POLL_TIMEOUT, Listener, ListenerState
from .queue import Queue

__all__ = [
    "DEFAULT_POLL_TIMEOUT",
    "Listener",
    "ListenerAlreadyAttachedError",
    "ListenerState",
    "Queue",
    "QueueTimeoutError",
    "SimpleQError",
]
