"""
Catalog reconciliation API routes.

Feed upload, Google Sheet sync, run history and restore.
"""

from fastapi import APIRouter, File, Form, Query, UploadFile
from fastapi.responses import JSONResponse, Response
import structlog

from config import settings
from models.history import HistoryEntry, HistorySummary, RestoreResult
from models.reconciliation import ReconciliationReport
from parsers.feed_parser import build_feed_template, feed_extension, parse_feed_file
from integrations.google_sheet import fetch_sheet_rows
from services.reconciliation_service import get_reconciliation_service
from services.history_service import get_history_service
from services.restore_service import get_restore_service
from exceptions import AppError, ValidationError

logger = structlog.get_logger(__name__)

router = APIRouter()

TEMPLATE_MEDIA_TYPES = {
    "csv": "text/csv; charset=utf-8",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}


# ===================
# EXCEPTION HANDLER
# ===================

def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
    if isinstance(e, AppError):
        return JSONResponse(
            status_code=e.status_code,
            content=e.to_dict()
        )
    # Unexpected error
    logger.error("unexpected_error", error=str(e), type=type(e).__name__)
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred"
            }
        }
    )


# ===================
# RECONCILIATION ROUTES
# ===================

@router.post("/upload", response_model=ReconciliationReport)
async def upload_feed(
    file: UploadFile = File(...),
    sync_stock: bool = Form(False),
    dry_run: bool = Form(False),
):
    """
    Reconcile the catalog against an uploaded feed (.xlsx, .xls, .csv).

    With dry_run the report is built but nothing is written.
    With sync_stock, entries absent from the feed get stock 0.

    Raises:
        409: Another run holds the catalog
        422: Unsupported or unreadable file
    """
    logger.info(
        "feed_upload_started",
        filename=file.filename,
        content_type=file.content_type,
        sync_stock=sync_stock,
        dry_run=dry_run,
    )

    try:
        feed_extension(file.filename)

        content = await file.read()
        if len(content) > settings.max_upload_bytes:
            raise ValidationError(
                f"File too large (max {settings.max_upload_bytes // (1024 * 1024)}MB)",
                code="FILE_TOO_LARGE",
                details={"size": len(content), "max_size": settings.max_upload_bytes}
            )

        feed = parse_feed_file(content, file.filename)

        service = get_reconciliation_service()
        return service.run(
            feed.rows,
            file_name=file.filename,
            sync_stock=sync_stock,
            dry_run=dry_run,
        )

    except Exception as e:
        return handle_error(e)


@router.post("/sync-sheet", response_model=ReconciliationReport)
async def sync_sheet(
    sync_stock: bool = Query(True, description="Zero stock for entries missing from the sheet"),
    dry_run: bool = Query(False),
):
    """
    Reconcile the catalog against the configured Google Sheet.

    Raises:
        500: Sheet not configured
        503: Sheet could not be downloaded
    """
    try:
        feed = fetch_sheet_rows()

        service = get_reconciliation_service()
        return service.run(
            feed.rows,
            file_name=feed.file_name,
            sync_stock=sync_stock,
            dry_run=dry_run,
        )

    except Exception as e:
        return handle_error(e)


@router.get("/template")
async def download_template(
    format: str = Query("csv", pattern="^(csv|xlsx)$"),
):
    """Download an example feed file."""
    try:
        content = build_feed_template(format)
        return Response(
            content=content,
            media_type=TEMPLATE_MEDIA_TYPES[format],
            headers={"Content-Disposition": f'attachment; filename="template-stock.{format}"'},
        )

    except Exception as e:
        return handle_error(e)


# ===================
# HISTORY ROUTES
# ===================

@router.get("/history", response_model=list[HistorySummary])
async def list_history(
    limit: int = Query(5, ge=1, le=50),
):
    """List recent runs, newest first (snapshots omitted)."""
    try:
        service = get_history_service()
        return service.list_recent(limit)

    except Exception as e:
        return handle_error(e)


@router.get("/history/{history_id}", response_model=HistoryEntry)
async def get_history(history_id: str):
    """
    Get one run including the catalog snapshot taken before it.

    Raises:
        404: History entry not found
    """
    try:
        service = get_history_service()
        return service.get(history_id)

    except Exception as e:
        return handle_error(e)


@router.post("/restore/{history_id}", response_model=RestoreResult)
async def restore_history(history_id: str):
    """
    Restore the catalog to the state captured before a run.

    Raises:
        404: History entry not found
        409: Another run holds the catalog
        422: Entry has no snapshot
    """
    logger.info("restore_requested", history_id=history_id)

    try:
        service = get_restore_service()
        return service.restore(history_id)

    except Exception as e:
        return handle_error(e)
