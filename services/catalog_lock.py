"""
Per-catalog exclusive lease.

Reconciliation runs and restores read a snapshot, then write back against
it; two of them interleaving on one catalog would diff against stale data.
The lease is process-local: one lock per catalog name.
"""

import threading
import time
from contextlib import contextmanager
from typing import Iterator, Optional

import structlog

from config import settings
from exceptions import CatalogBusyError

logger = structlog.get_logger(__name__)

_registry_lock = threading.Lock()
_locks: dict[str, threading.Lock] = {}


def _lock_for(catalog: str) -> threading.Lock:
    with _registry_lock:
        lock = _locks.get(catalog)
        if lock is None:
            lock = threading.Lock()
            _locks[catalog] = lock
        return lock


@contextmanager
def catalog_lease(
    catalog: Optional[str] = None,
    timeout: Optional[float] = None
) -> Iterator[None]:
    """
    Hold the catalog exclusively for the duration of the block.

    Args:
        catalog: Catalog name (defaults to the configured catalog table)
        timeout: Seconds to wait for the lease

    Raises:
        CatalogBusyError: If the lease is not acquired within timeout
    """
    name = catalog or settings.catalog_table
    wait = settings.catalog_lock_timeout_seconds if timeout is None else timeout
    lock = _lock_for(name)

    started = time.monotonic()
    if not lock.acquire(timeout=wait):
        logger.warning("catalog_lease_busy", catalog=name, timeout_seconds=wait)
        raise CatalogBusyError(name, wait)

    logger.debug(
        "catalog_lease_acquired",
        catalog=name,
        waited_ms=round((time.monotonic() - started) * 1000),
    )
    try:
        yield
    finally:
        lock.release()
        logger.debug("catalog_lease_released", catalog=name)
