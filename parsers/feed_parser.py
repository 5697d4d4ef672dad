"""
Feed file parser.

Reads an uploaded catalog feed (.xlsx, .xls or .csv) into raw rows
(column header → cell text). Column meaning is resolved later by the row
normalizer, so any header layout is accepted here.

Also builds the downloadable feed template.
"""

from dataclasses import dataclass, field
from io import BytesIO
from pathlib import Path
from typing import Any, Union
import structlog

import pandas as pd

from exceptions import FeedParseError
from models.reconciliation import ROW_NUMBER_KEY

logger = structlog.get_logger(__name__)

SUPPORTED_EXTENSIONS = (".xlsx", ".xls", ".csv")

# Engine per Excel extension
EXCEL_ENGINES = {
    ".xlsx": "openpyxl",
    ".xls": "xlrd",
}

CSV_ENCODINGS = ("utf-8-sig", "cp1255", "latin-1")
CSV_SEPARATORS = (",", ";", "\t")

TEMPLATE_COLUMNS = [
    "id", "modelRef", "color", "size", "stockQuantity", "collection",
    "category", "brand", "priceRetail", "priceWholesale",
]
TEMPLATE_ROWS = [
    ["AA947142", "AA947142", "BLACK MULTI", "", "10", "FALL 2024", "bag", "GUESS", "199.9", "99.95"],
    ["", "NEW_PRODUCT", "BLUE", "M", "5", "SPRING 2025", "shoes", "GUESS", "299.9", "149.95"],
]
TEMPLATE_SHEET = "Stock"


@dataclass
class ParsedFeed:
    """Rows read from one feed file."""
    file_name: str
    columns: list[str] = field(default_factory=list)
    rows: list[dict[str, Any]] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.rows)


def feed_extension(file_name: str) -> str:
    """
    Lower-cased extension of a feed file name.

    Raises:
        FeedParseError: If the extension is not supported
    """
    extension = Path(file_name or "").suffix.lower()
    if extension not in SUPPORTED_EXTENSIONS:
        raise FeedParseError(
            message=f"Unsupported file type. Use {', '.join(SUPPORTED_EXTENSIONS)}",
            details={"file_name": file_name}
        )
    return extension


def parse_feed_file(
    file: Union[bytes, BytesIO, str, Path],
    file_name: str,
) -> ParsedFeed:
    """
    Parse a feed file into raw rows.

    Header is sheet row 1, so the first data row is row 2. Rows with no
    value in any column are skipped.

    Args:
        file: File content (bytes/BytesIO) or path
        file_name: Original name, used to pick the reader

    Returns:
        ParsedFeed with one dict per non-empty row; each dict carries its
        sheet row number under ROW_NUMBER_KEY

    Raises:
        FeedParseError: If the file cannot be read
    """
    extension = feed_extension(file_name)
    logger.info("parsing_feed", file_name=file_name, extension=extension)

    if isinstance(file, bytes):
        file = BytesIO(file)

    if extension == ".csv":
        df = _load_csv(file, file_name)
    else:
        df = _load_excel(file, file_name, EXCEL_ENGINES[extension])

    return dataframe_to_feed(df, file_name)


def dataframe_to_feed(df: pd.DataFrame, file_name: str) -> ParsedFeed:
    """Convert a string-typed DataFrame into a ParsedFeed."""
    df = df.rename(columns=lambda c: str(c).strip())
    columns = [c for c in df.columns if c and not c.startswith("Unnamed:")]

    feed = ParsedFeed(file_name=file_name, columns=columns)
    for idx, row in df.iterrows():
        values = {col: _cell(row[col]) for col in columns}
        if not any(values.values()):
            continue
        values[ROW_NUMBER_KEY] = idx + 2  # Sheet row (1-indexed + header)
        feed.rows.append(values)

    logger.info("feed_parsed", file_name=file_name, rows=len(feed), columns=len(columns))
    return feed


def build_feed_template(fmt: str = "csv") -> bytes:
    """
    Build the feed template file.

    Args:
        fmt: "csv" or "xlsx"

    Returns:
        File content
    """
    df = pd.DataFrame(TEMPLATE_ROWS, columns=TEMPLATE_COLUMNS)

    if fmt == "csv":
        return df.to_csv(index=False).encode("utf-8")

    buffer = BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name=TEMPLATE_SHEET, index=False)
        sheet = writer.sheets[TEMPLATE_SHEET]
        for column_cells in sheet.columns:
            sheet.column_dimensions[column_cells[0].column_letter].width = 18
    return buffer.getvalue()


# ===================
# HELPER FUNCTIONS
# ===================

def _cell(value: Any) -> str:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return ""
    return str(value).strip()


def _load_excel(file: Union[BytesIO, str, Path], file_name: str, engine: str) -> pd.DataFrame:
    """Load the first sheet as text."""
    try:
        return pd.read_excel(file, sheet_name=0, engine=engine, dtype=str, keep_default_na=False)
    except Exception as e:
        logger.error("feed_read_failed", file_name=file_name, engine=engine, error=str(e))
        raise FeedParseError(
            message="Failed to read Excel file",
            details={"file_name": file_name, "original_error": str(e)}
        )


def _load_csv(file: Union[BytesIO, str, Path], file_name: str) -> pd.DataFrame:
    """Load CSV, trying common encodings and separators."""
    original_bytes = file.getvalue() if isinstance(file, BytesIO) else None
    last_error = None
    single_column = None

    for encoding in CSV_ENCODINGS:
        for sep in CSV_SEPARATORS:
            source = BytesIO(original_bytes) if original_bytes is not None else file
            try:
                df = pd.read_csv(source, sep=sep, encoding=encoding, dtype=str, keep_default_na=False)
            except (UnicodeDecodeError, pd.errors.ParserError) as e:
                last_error = e
                continue
            except pd.errors.EmptyDataError:
                return pd.DataFrame()

            # A wrong separator yields a single column holding whole lines
            if len(df.columns) > 1:
                logger.debug("csv_loaded", encoding=encoding, separator=sep, columns=len(df.columns))
                return df
            if single_column is None:
                single_column = df

    if single_column is not None:
        return single_column

    logger.error("feed_read_failed", file_name=file_name, error=str(last_error))
    raise FeedParseError(
        message="Failed to read CSV file",
        details={"file_name": file_name, "original_error": str(last_error)}
    )
