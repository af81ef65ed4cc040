"""
Shared reading of uploaded import files.

CSV, XLSX and XLS uploads are read positionally (header=None) into a
pandas DataFrame of strings. Callers skip the header row themselves.
"""

from io import BytesIO
from pathlib import Path
from typing import Optional
import structlog

import pandas as pd

from config import settings
from exceptions import ImportFileError, ImportParseError
from utils.text_utils import clean_text

logger = structlog.get_logger(__name__)

ALLOWED_EXTENSIONS = (".csv", ".xlsx", ".xls")

EXCEL_ENGINES = {
    ".xlsx": "openpyxl",
    ".xls": "xlrd",
}


def validate_import_file(filename: str, size: int, max_bytes: Optional[int] = None) -> str:
    """
    Check extension and size of an upload.

    Args:
        filename: Original file name
        size: Size in bytes
        max_bytes: Limit (defaults to settings.import_max_bytes)

    Returns:
        Lowercase extension

    Raises:
        ImportFileError: If the type or size is not accepted
    """
    max_bytes = max_bytes or settings.import_max_bytes
    extension = Path(filename or "").suffix.lower()

    if extension not in ALLOWED_EXTENSIONS:
        raise ImportFileError(
            "Ungültiges Dateiformat. Bitte eine CSV- oder Excel-Datei (.csv, .xlsx, .xls) hochladen.",
            filename=filename
        )
    if size > max_bytes:
        raise ImportFileError(
            f"Die Datei ist zu groß. Maximum: {max_bytes // (1024 * 1024)}MB",
            filename=filename
        )
    return extension


def read_rows(content: bytes, filename: str) -> pd.DataFrame:
    """
    Read the first sheet (or the CSV) without header interpretation.

    Args:
        content: Raw file bytes
        filename: Original file name (selects the reader)

    Returns:
        DataFrame of strings, empty cells as ""

    Raises:
        ImportParseError: If the file cannot be read or has no data rows
    """
    extension = validate_import_file(filename, len(content))
    logger.info("reading_import_file", filename=filename, size_bytes=len(content))

    try:
        if extension == ".csv":
            df = pd.read_csv(
                BytesIO(content),
                header=None,
                dtype=str,
                sep=None,
                engine="python",
                keep_default_na=False,
            )
        else:
            df = pd.read_excel(
                BytesIO(content),
                sheet_name=0,
                header=None,
                dtype=str,
                engine=EXCEL_ENGINES[extension],
            )
    except Exception as e:
        logger.error("import_file_read_failed", filename=filename, error=str(e))
        raise ImportParseError(
            f"Fehler beim Verarbeiten der Datei: {e}",
            details={"filename": filename}
        )

    df = df.fillna("")

    if len(df) < 2:
        raise ImportParseError(
            "Die Datei enthält keine Daten",
            details={"filename": filename}
        )

    return df


def cell(row: pd.Series, index: int) -> str:
    """Trimmed string value of a positional column ("" when absent)."""
    if index >= len(row):
        return ""
    return clean_text(row.iloc[index]) or ""


def to_number(text: str) -> Optional[float]:
    """Parse 1.5, 1,5 or "12 EUR"-style cells; None when not numeric."""
    if not text:
        return None
    cleaned = text.replace("€", "").replace("EUR", "").strip()
    if "," in cleaned and "." in cleaned:
        cleaned = cleaned.replace(".", "").replace(",", ".")
    else:
        cleaned = cleaned.replace(",", ".")
    try:
        return float(cleaned)
    except ValueError:
        return None
