"""
Product list import.

Positional columns (header in row 1):

    A name      C weight      D content      F pallet size      K price

All rows of one file belong to the department chosen for the upload.
"""

from dataclasses import dataclass, field
import structlog

from models.product import Department, ProductCreate
from parsers.file_reader import cell, read_rows, to_number
from parsers.market_import_parser import RowError

logger = structlog.get_logger(__name__)


@dataclass
class ProductImportParseResult:
    """Parsed products plus skipped rows."""
    products: list[ProductCreate] = field(default_factory=list)
    errors: list[RowError] = field(default_factory=list)


def parse_product_file(
    content: bytes,
    filename: str,
    department: Department
) -> ProductImportParseResult:
    """
    Parse an uploaded product list.

    Args:
        content: Raw file bytes
        filename: Original file name
        department: Department assigned to every product

    Returns:
        ProductImportParseResult

    Raises:
        ImportFileError: If type or size is rejected
        ImportParseError: If the file cannot be read
    """
    df = read_rows(content, filename)
    result = ProductImportParseResult()

    for index in range(1, len(df)):
        row = df.iloc[index]
        name = cell(row, 0)
        if not name:
            continue

        price_text = cell(row, 10)
        price = to_number(price_text)
        if price_text and price is None:
            result.errors.append(RowError(row=index + 1, error=f"Ungültiger Preis: {price_text}"))
            continue

        pallet_size = to_number(cell(row, 5))

        try:
            result.products.append(ProductCreate(
                name=name,
                department=department,
                weight=cell(row, 2),
                content=cell(row, 3) or None,
                pallet_size=int(pallet_size) if pallet_size is not None else None,
                price=price or 0.0,
            ))
        except ValueError as e:
            result.errors.append(RowError(row=index + 1, error=str(e)))

    logger.info(
        "product_file_parsed",
        filename=filename,
        department=department.value,
        products=len(result.products),
        errors=len(result.errors)
    )
    return result
