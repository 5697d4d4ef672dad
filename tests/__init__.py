"""
Test suite for catalog feed reconciliation.

Run all tests: pytest
Run unit tests only: pytest tests/unit/
Run specific file: pytest tests/unit/test_reconciliation_service.py -v
"""
