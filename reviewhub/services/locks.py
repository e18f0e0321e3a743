import threading
from contextlib import contextmanager


class BrokerLockRegistry:
    """One lock per broker id, created on first use.

    Submissions for the same broker queue up behind each other; different
    brokers never share a lock.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks = {}

    def _lock_for(self, broker_id):
        with self._guard:
            lock = self._locks.get(broker_id)
            if lock is None:
                lock = self._locks[broker_id] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, broker_id):
        lock = self._lock_for(broker_id)
        with lock:
            yield
