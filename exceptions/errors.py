"""
Custom exception classes for the application.

Every error carries a stable code, an HTTP status and a details dict so
routes can return them unchanged.
"""

from typing import Optional, Any
from datetime import datetime, timezone


class AppError(Exception):
    """
    Base exception for all application errors.

    All custom exceptions inherit from this.

    Attributes:
        code: Error code (e.g., "HISTORY_NOT_FOUND")
        message: Human-readable message
        status_code: HTTP status code
        details: Additional context
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc).isoformat()
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to API response format."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp
            }
        }


class NotFoundError(AppError):
    """Resource not found (404)."""

    def __init__(
        self,
        resource: str,
        identifier: str,
        code: Optional[str] = None
    ):
        super().__init__(
            code=code or f"{resource.upper()}_NOT_FOUND",
            message=f"{resource} not found",
            status_code=404,
            details={"id": identifier}
        )


class ValidationError(AppError):
    """Validation failed (422)."""

    def __init__(
        self,
        message: str,
        code: str = "VALIDATION_ERROR",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=422,
            details=details
        )


class ConflictError(AppError):
    """Conflict with existing resource (409)."""

    def __init__(
        self,
        message: str,
        code: str = "CONFLICT",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=409,
            details=details
        )


class ExternalServiceError(AppError):
    """External service failure (503)."""

    def __init__(
        self,
        service: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code=f"{service.upper()}_ERROR",
            message=message,
            status_code=503,
            details={"service": service, **(details or {})}
        )


class DatabaseError(AppError):
    """Database operation failed (500)."""

    def __init__(
        self,
        operation: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="DATABASE_ERROR",
            message=f"Database {operation} failed: {message}",
            status_code=500,
            details={"operation": operation, **(details or {})}
        )


class ConfigurationError(AppError):
    """A run cannot start at all (fatal for the whole run)."""

    def __init__(
        self,
        message: str,
        code: str = "CONFIGURATION_ERROR",
        status_code: int = 500,
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=status_code,
            details=details
        )


# ===================
# RECONCILIATION ERRORS
# ===================

class RowValidationError(ValidationError):
    """A feed row cannot be turned into an incoming record."""

    def __init__(self, row_number: int, message: str):
        self.row_number = row_number
        super().__init__(
            code="ROW_VALIDATION_ERROR",
            message=message,
            details={"row": row_number}
        )


class AmbiguousMatchError(ConflictError):
    """
    Several catalog entries are equally good matches for one feed row.

    Not a failure of the run: the row is reported with suggestions and
    nothing is mutated.
    """

    def __init__(self, row_number: int, tier: str, candidates: list):
        self.row_number = row_number
        self.tier = tier
        self.candidates = candidates
        super().__init__(
            code="AMBIGUOUS_MATCH",
            message=f"{len(candidates)} catalog entries match at tier {tier}",
            details={
                "row": row_number,
                "tier": tier,
                "candidate_ids": [c.id for c in candidates],
            }
        )


class PersistenceError(DatabaseError):
    """A single catalog or history write failed."""

    def __init__(
        self,
        operation: str,
        message: str,
        entry_id: Optional[str] = None,
        details: Optional[dict] = None
    ):
        self.entry_id = entry_id
        super().__init__(
            operation=operation,
            message=message,
            details={"entry_id": entry_id, **(details or {})}
        )


class EmptyFeedError(ConfigurationError):
    """The feed contains no rows."""

    def __init__(self, file_name: Optional[str] = None):
        super().__init__(
            code="EMPTY_FEED",
            message="The feed is empty or contains no data rows",
            status_code=400,
            details={"file_name": file_name}
        )


class CatalogUnavailableError(ConfigurationError):
    """The catalog store cannot be reached."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(
            code="CATALOG_UNAVAILABLE",
            message=message,
            status_code=503,
            details=details
        )


class CatalogBusyError(ConflictError):
    """Another run holds the catalog lease."""

    def __init__(self, catalog: str, timeout_seconds: float):
        super().__init__(
            code="CATALOG_BUSY",
            message="Another reconciliation or restore is running on this catalog",
            details={"catalog": catalog, "timeout_seconds": timeout_seconds}
        )


# ===================
# FEED PARSER ERRORS
# ===================

class FeedParseError(ValidationError):
    """Feed file parsing failed."""

    def __init__(
        self,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="FEED_PARSE_ERROR",
            message=message,
            details=details
        )


# ===================
# HISTORY ERRORS
# ===================

class HistoryNotFoundError(NotFoundError):
    """History entry not found."""

    def __init__(self, history_id: str):
        super().__init__(
            resource="History entry",
            identifier=history_id,
            code="HISTORY_NOT_FOUND"
        )


class NothingToRestoreError(ValidationError):
    """History entry has no snapshot to restore from."""

    def __init__(self, history_id: str):
        super().__init__(
            code="NOTHING_TO_RESTORE",
            message="History entry has no snapshot to restore",
            details={"history_id": history_id}
        )
