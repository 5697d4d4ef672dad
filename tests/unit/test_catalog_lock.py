"""
Unit tests for the catalog lease.

Run: pytest tests/unit/test_catalog_lock.py -v
"""

import threading

import pytest

from services.catalog_lock import catalog_lease
from exceptions import CatalogBusyError


class TestCatalogLease:
    """Tests for catalog_lease()"""

    def test_second_holder_is_rejected(self):
        with catalog_lease("lease-test-a", timeout=0.05):
            with pytest.raises(CatalogBusyError) as exc_info:
                with catalog_lease("lease-test-a", timeout=0.05):
                    pass

        assert exc_info.value.status_code == 409
        assert exc_info.value.details["catalog"] == "lease-test-a"

    def test_catalogs_are_independent(self):
        with catalog_lease("lease-test-b", timeout=0.05):
            with catalog_lease("lease-test-c", timeout=0.05):
                pass

    def test_released_on_error(self):
        with pytest.raises(ValueError):
            with catalog_lease("lease-test-d", timeout=0.05):
                raise ValueError("boom")

        with catalog_lease("lease-test-d", timeout=0.05):
            pass

    def test_other_thread_waits_for_release(self):
        acquired = threading.Event()
        release = threading.Event()

        def holder():
            with catalog_lease("lease-test-e", timeout=1):
                acquired.set()
                release.wait(timeout=1)

        thread = threading.Thread(target=holder)
        thread.start()
        acquired.wait(timeout=1)

        with pytest.raises(CatalogBusyError):
            with catalog_lease("lease-test-e", timeout=0.05):
                pass

        release.set()
        thread.join(timeout=1)

        with catalog_lease("lease-test-e", timeout=1):
            pass
