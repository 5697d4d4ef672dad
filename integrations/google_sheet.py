"""
Google Sheets feed source.

Reads the catalog sheet through its published CSV export
(File → Share → Publish to web → CSV) and hands the rows to the same
parser as uploaded files.
"""

from typing import Optional
import requests
import structlog

from config import settings
from exceptions import ConfigurationError, ExternalServiceError
from parsers.feed_parser import ParsedFeed, parse_feed_file

logger = structlog.get_logger(__name__)

SHEET_FEED_NAME = "google-sheet.csv"


def fetch_sheet_rows(url: Optional[str] = None, timeout: Optional[float] = None) -> ParsedFeed:
    """
    Download the sheet's CSV export and parse it.

    Args:
        url: CSV export URL (defaults to GOOGLE_SHEET_CSV_URL)
        timeout: Request timeout in seconds

    Returns:
        ParsedFeed of the sheet rows

    Raises:
        ConfigurationError: If no sheet URL is configured
        ExternalServiceError: If the sheet cannot be downloaded
        FeedParseError: If the export is not readable CSV
    """
    url = url or settings.google_sheet_csv_url
    if not url:
        raise ConfigurationError(
            "Google Sheet is not configured. Set GOOGLE_SHEET_CSV_URL",
            code="SHEET_NOT_CONFIGURED"
        )

    timeout = timeout or settings.google_sheet_timeout_seconds

    try:
        logger.info("fetching_google_sheet")

        response = requests.get(url, timeout=timeout)
        response.raise_for_status()

    except requests.exceptions.RequestException as e:
        logger.error("google_sheet_fetch_failed", error=str(e))
        raise ExternalServiceError(
            "google_sheets",
            f"Failed to download Google Sheet: {str(e)}"
        )

    # A private sheet answers with the Google sign-in page instead of CSV
    content_type = response.headers.get("Content-Type", "")
    if "text/html" in content_type:
        logger.error("google_sheet_not_published", content_type=content_type)
        raise ExternalServiceError(
            "google_sheets",
            "Google Sheet returned HTML; make sure it is published as CSV"
        )

    feed = parse_feed_file(response.content, SHEET_FEED_NAME)
    logger.info("google_sheet_fetched", rows=len(feed))
    return feed
