"""
Market list import.

Reads the market master list export (CSV/XLSX/XLS, first sheet,
header in row 1). Columns are positional:

    A id            D channel       E banner        F chain
    H name          I postal code   J city          K street
    M GL name       N GL email      O status        Q frequency
    U phone         V email

Rows without id or name are skipped and reported.
"""

from dataclasses import dataclass, field
from typing import Optional
import structlog

from models.market import DEFAULT_VISIT_FREQUENCY, MarketCreate
from parsers.file_reader import cell, read_rows, to_number

logger = structlog.get_logger(__name__)

DEFAULT_CHAIN = "Sonstige"

CHAIN_NAMES = {
    "adeg": "Adeg",
    "billa+": "Billa+",
    "billa plus": "Billa+",
    "billa+ privat": "BILLA+ Privat",
    "billa privat": "BILLA Privat",
    "eurospar": "Eurospar",
    "futterhaus": "Futterhaus",
    "hagebau": "Hagebau",
    "interspar": "Interspar",
    "spar": "Spar",
    "spar gourmet": "Spar Gourmet",
    "zoofachhandel": "Zoofachhandel",
    "hofer": "Hofer",
    "merkur": "Merkur",
}


@dataclass
class RowError:
    """One skipped input row."""
    row: int
    error: str


@dataclass
class MarketImportParseResult:
    """Parsed markets plus skipped rows."""
    markets: list[MarketCreate] = field(default_factory=list)
    errors: list[RowError] = field(default_factory=list)


def normalize_chain(chain: Optional[str]) -> str:
    """Map spelling variants of a chain to its canonical name."""
    if not chain or not chain.strip():
        return DEFAULT_CHAIN
    return CHAIN_NAMES.get(chain.strip().lower(), chain.strip())


def parse_frequency(text: str) -> int:
    """Visits per year; 12 when missing, at least 1."""
    value = to_number(text)
    if value is None:
        return DEFAULT_VISIT_FREQUENCY
    return max(1, int(round(value)))


def parse_market_file(content: bytes, filename: str) -> MarketImportParseResult:
    """
    Parse an uploaded market list.

    Args:
        content: Raw file bytes
        filename: Original file name

    Returns:
        MarketImportParseResult

    Raises:
        ImportFileError: If type or size is rejected
        ImportParseError: If the file cannot be read
    """
    df = read_rows(content, filename)
    result = MarketImportParseResult()

    for index in range(1, len(df)):
        row = df.iloc[index]
        line = index + 1
        market_id = cell(row, 0)
        name = cell(row, 7)

        if not market_id and not any(cell(row, i) for i in range(len(row))):
            continue
        if not market_id or not name:
            result.errors.append(RowError(row=line, error="ID oder Name fehlt"))
            continue

        try:
            result.markets.append(MarketCreate(
                id=market_id,
                internal_id=market_id,
                name=name,
                channel=cell(row, 3) or None,
                banner=cell(row, 4) or None,
                chain=normalize_chain(cell(row, 5)),
                postal_code=cell(row, 8),
                city=cell(row, 9),
                address=cell(row, 10),
                gebietsleiter_name=cell(row, 12) or None,
                gebietsleiter_email=cell(row, 13) or None,
                is_active=cell(row, 14).lower() == "aktiv",
                frequency=parse_frequency(cell(row, 16)),
                phone=cell(row, 20) or None,
                email=cell(row, 21) or None,
            ))
        except ValueError as e:
            result.errors.append(RowError(row=line, error=str(e)))

    logger.info(
        "market_file_parsed",
        filename=filename,
        markets=len(result.markets),
        errors=len(result.errors)
    )
    return result
