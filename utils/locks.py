import threading
from contextlib import contextmanager


class KeyedLocks:
    """
    One re-entrant lock per key (facility id). Serializes check-then-write
    sequences for a single facility inside this process; the row lock taken
    by FacilityDirectory.lock() covers other processes on databases that
    support SELECT ... FOR UPDATE.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks = {}

    def _lock_for(self, key):
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, key):
        lock = self._lock_for(key)
        with lock:
            yield


facility_locks = KeyedLocks()
