"""
Unit tests for the database connection helpers.

Run: pytest tests/unit/test_database.py -v
"""

from unittest.mock import patch

import pytest

from config import database
from exceptions import CatalogUnavailableError
from tests.factories import CatalogEntryFactory


class TestCheckConnection:
    """Tests for check_connection()"""

    def test_healthy_reports_counts(self, mock_db, mock_supabase):
        mock_supabase.set_table_data("products", CatalogEntryFactory.row_batch(3))

        status = database.check_connection()

        assert status == {"status": "healthy", "catalog_count": 3, "history_count": 0}

    def test_unconfigured_is_unhealthy(self):
        with patch.object(database, "get_supabase_client",
                          side_effect=CatalogUnavailableError("SUPABASE_URL and SUPABASE_KEY must be set")):
            status = database.check_connection()

        assert status["status"] == "unhealthy"
        assert "SUPABASE_URL" in status["error"]


class TestGetSupabaseClient:
    """Tests for get_supabase_client()"""

    def test_missing_credentials_raise(self):
        database.reset_connection()
        with patch.object(database.settings, "supabase_url", None):
            with pytest.raises(CatalogUnavailableError) as exc_info:
                database.get_supabase_client()

        assert exc_info.value.code == "CATALOG_UNAVAILABLE"
        database.reset_connection()
