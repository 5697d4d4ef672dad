"""
Custom exceptions module.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    NotFoundError,
    ValidationError,
    ConflictError,
    ExternalServiceError,
    DatabaseError,
    ConfigurationError,

    # Reconciliation
    RowValidationError,
    AmbiguousMatchError,
    PersistenceError,
    EmptyFeedError,
    CatalogUnavailableError,
    CatalogBusyError,

    # Feed parser
    FeedParseError,

    # History / restore
    HistoryNotFoundError,
    NothingToRestoreError,
)

__all__ = [
    # Base
    "AppError",
    "NotFoundError",
    "ValidationError",
    "ConflictError",
    "ExternalServiceError",
    "DatabaseError",
    "ConfigurationError",

    # Reconciliation
    "RowValidationError",
    "AmbiguousMatchError",
    "PersistenceError",
    "EmptyFeedError",
    "CatalogUnavailableError",
    "CatalogBusyError",

    # Feed parser
    "FeedParseError",

    # History / restore
    "HistoryNotFoundError",
    "NothingToRestoreError",
]
