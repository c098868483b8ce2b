"""
All-or-nothing execution for factory operations

Participants expose snapshot()/restore(); atomic() captures every
participant on entry and restores all of them if the block raises.
"""

import threading
from contextlib import contextmanager
from typing import Any, Iterator, List, Protocol, Tuple

from launchpad.core.errors import ReentrantCall
from launchpad.core.logger import get_logger


logger = get_logger(__name__)


class Snapshottable(Protocol):
    """State holder that can be captured and rolled back"""

    def snapshot(self) -> Any: ...

    def restore(self, state: Any) -> None: ...


@contextmanager
def atomic(*participants: Snapshottable) -> Iterator[None]:
    """
    Run a block against participants with rollback on any exception

    Usage:
        with atomic(ledger, fee_vault, bank):
            ...  # any raise restores all three
    """
    saved: List[Tuple[Snapshottable, Any]] = [(p, p.snapshot()) for p in participants]
    try:
        yield
    except BaseException:
        for participant, state in reversed(saved):
            participant.restore(state)
        logger.debug("transaction_rolled_back", participants=len(saved))
        raise


class ReentrancyGuard:
    """
    Per-ledger in-flight flag

    A thread lock serializes callers from different threads; the flag
    rejects a nested call made from inside an in-flight operation (for
    example from a transfer receive hook) on the same thread.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._entered = False

    @property
    def entered(self) -> bool:
        return self._entered

    @contextmanager
    def enter(self, operation: str) -> Iterator[None]:
        with self._lock:
            if self._entered:
                logger.warning("reentrant_call_rejected", operation=operation)
                raise ReentrantCall(operation=operation)
            self._entered = True
            try:
                yield
            finally:
                self._entered = False
