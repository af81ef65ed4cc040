"""
Text utilities for German market and product names.

Used for chain normalization during imports and for search filters.
"""

import unicodedata
from typing import Optional


def normalize_name(name: Optional[str]) -> Optional[str]:
    """
    Normalize a name for comparison.

    - "Billa Plus" -> "BILLA PLUS"
    - "  Müller  " -> "MULLER"
    - "Spar  Gourmet" -> "SPAR GOURMET"

    Args:
        name: Original name (may have umlauts, mixed case, extra spaces)

    Returns:
        Uppercase ASCII string with single spaces, or None if input is empty
    """
    if not name:
        return None

    name = " ".join(str(name).split())
    if not name:
        return None

    # NFD separates base chars from umlaut/accent marks
    normalized = unicodedata.normalize("NFD", name)
    ascii_name = "".join(
        c for c in normalized
        if unicodedata.category(c) != "Mn"
    )
    return ascii_name.upper()


def clean_text(value: Optional[object], max_length: int = 255) -> Optional[str]:
    """
    Clean a cell value for storage (preserves umlauts).

    Args:
        value: Raw value from an import row
        max_length: Maximum characters to store

    Returns:
        Stripped string, or None for empty/NaN values
    """
    if value is None:
        return None

    text = str(value).strip()
    if not text or text.lower() == "nan":
        return None

    return text[:max_length]


def matches_query(query: Optional[str], *fields: Optional[str]) -> bool:
    """Case- and accent-insensitive substring match over any of the fields."""
    needle = normalize_name(query)
    if not needle:
        return True
    return any(needle in (normalize_name(f) or "") for f in fields)
