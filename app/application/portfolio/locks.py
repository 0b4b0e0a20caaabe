"""
Per-portfolio mutual exclusion.

FastAPI runs sync routes in a thread pool, so ledger and aggregator
work on one portfolio is serialized behind a lock scoped to that
portfolio. Positions never move between portfolios, so one coarse
lock per portfolio is enough.
"""

import threading
from contextlib import contextmanager
from typing import Iterator


class PortfolioLocks:
    """Registry handing out one re-entrant lock per portfolio ID."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[int, threading.RLock] = {}

    def _lock_for(self, portfolio_id: int) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(portfolio_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[portfolio_id] = lock
            return lock

    @contextmanager
    def hold(self, portfolio_id: int) -> Iterator[None]:
        """Hold the lock of ``portfolio_id`` for the duration of the block."""
        lock = self._lock_for(portfolio_id)
        with lock:
            yield
