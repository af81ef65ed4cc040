"""
Import file parsers module.
"""

from parsers.file_reader import validate_import_file, read_rows
from parsers.market_import_parser import (
    parse_market_file,
    normalize_chain,
    MarketImportParseResult,
)
from parsers.product_import_parser import (
    parse_product_file,
    ProductImportParseResult,
)

__all__ = [
    "validate_import_file",
    "read_rows",
    "parse_market_file",
    "normalize_chain",
    "MarketImportParseResult",
    "parse_product_file",
    "ProductImportParseResult",
]
