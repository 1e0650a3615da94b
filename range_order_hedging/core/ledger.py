#!/usr/bin/env python3
"""
Host Ledger

Serializes every state-changing call on the simulated chain and makes each
call all-or-nothing: objects registered with ``track`` are snapshotted when
the outermost call starts and restored if it raises. Also carries the block
clock used by the price feed.
"""

import copy
import hashlib
import logging
import threading
import functools
from contextlib import contextmanager
from typing import List

logger = logging.getLogger(__name__)


def address_for(label: str) -> str:
    """Deterministic 20-byte hex address for a named account"""
    return "0x" + hashlib.sha256(label.encode()).hexdigest()[:40]


class Ledger:
    """Call serialization, rollback and block time for a set of tracked objects"""

    def __init__(self, timestamp: int = 1_650_000_000):
        self.timestamp = timestamp
        self._lock = threading.RLock()
        self._depth = 0
        self._tracked: List[object] = []

    def track(self, *objects) -> None:
        """Register objects whose state is rolled back on a failed call"""
        for obj in objects:
            if not any(obj is tracked for tracked in self._tracked):
                self._tracked.append(obj)

    def advance(self, seconds: int) -> int:
        """Move the block clock forward"""
        if seconds < 0:
            raise ValueError("Cannot move the clock backwards")
        with self._lock:
            self.timestamp += seconds
            return self.timestamp

    @property
    def in_call(self) -> bool:
        return self._depth > 0

    @contextmanager
    def atomic(self):
        """
        Run a block as one ledger call

        Nested blocks join the outer call. When the outermost block raises,
        every tracked object is put back exactly as it was and the exception
        propagates.
        """
        with self._lock:
            if self._depth:
                self._depth += 1
                try:
                    yield self
                finally:
                    self._depth -= 1
                return

            tracked = list(self._tracked)
            # Tracked objects reference each other and the ledger; keep those
            # references shared instead of copying them into the snapshot.
            memo = {id(obj): obj for obj in tracked}
            memo[id(self)] = self
            saved = copy.deepcopy([obj.__dict__ for obj in tracked], memo)

            self._depth = 1
            try:
                yield self
            except BaseException:
                for obj, state in zip(tracked, saved):
                    obj.__dict__.clear()
                    obj.__dict__.update(state)
                logger.debug("Rolled back %d tracked objects", len(tracked))
                raise
            finally:
                self._depth = 0


def transactional(method):
    """Run a method of a ledger-bound object as one atomic ledger call"""

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self.ledger.atomic():
            return method(self, *args, **kwargs)

    return wrapper
