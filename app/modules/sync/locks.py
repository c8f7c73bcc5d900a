"""Process-local single-flight guard: at most one sync per calendar account at a time."""
import logging
import threading
from contextlib import contextmanager

logger = logging.getLogger(__name__)
_lock = threading.Lock()
_in_flight: set[str] = set()


class SyncInProgressError(Exception):
    pass


def try_acquire(account_id: str) -> bool:
    with _lock:
        if account_id in _in_flight:
            return False
        _in_flight.add(account_id)
        logger.debug(f"Acquired sync slot for account {account_id}")
        return True


def release(account_id: str) -> None:
    with _lock:
        _in_flight.discard(account_id)
        logger.debug(f"Released sync slot for account {account_id}")


def is_syncing(account_id: str) -> bool:
    with _lock:
        return account_id in _in_flight


@contextmanager
def single_flight(account_id: str):
    if not try_acquire(account_id):
        raise SyncInProgressError(account_id)
    try:
        yield
    finally:
        release(account_id)
