"""Per-account write serialization."""

import threading
from contextlib import contextmanager
from typing import Iterator


class AccountLocks:
    """Registry of one re-entrant lock per account key.

    Writers to the same account queue up; writers to different accounts never
    contend. Re-entrant so an opening balance change can hold the lock while
    the ledger appends its transaction.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[str, threading.RLock] = {}

    def lock_for(self, account_key: str) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(account_key)
            if lock is None:
                lock = self._locks[account_key] = threading.RLock()
            return lock

    @contextmanager
    def hold(self, account_key: str) -> Iterator[None]:
        with self.lock_for(account_key):
            yield
