"""
Declarative row mapping between backend rows and domain models.

Every entity declares one field table. The table drives both directions
of the translation, including default substitution for absent optional
columns, so services never hand-write per-field conversions.

Example:
    PRODUCT_MAPPER = RowMapper([
        Column("name"),
        Column("is_active", default=True),
    ])
    attrs = PRODUCT_MAPPER.from_row(row)
    row = PRODUCT_MAPPER.to_row(product.model_dump())
"""

from copy import deepcopy
from dataclasses import dataclass, field
from typing import Any, Callable, Optional


@dataclass(frozen=True)
class Column:
    """
    One mapped field.

    Attributes:
        attr: Attribute name on the domain model
        column: Backend column name (defaults to attr)
        default: Value substituted when the column is absent or null
        parse: Optional converter applied to non-null column values
    """
    attr: str
    column: Optional[str] = None
    default: Any = None
    parse: Optional[Callable[[Any], Any]] = None

    @property
    def name(self) -> str:
        return self.column or self.attr


# Hooks receive (source, target) and mutate target in place
RowHook = Callable[[dict, dict], None]


@dataclass
class RowMapper:
    """
    Translate rows to domain attribute dicts and back.

    Attributes:
        columns: Field table for the entity
        read_hooks: Extra translations applied after from_row
        write_hooks: Extra translations applied after to_row
    """
    columns: list[Column]
    read_hooks: list[RowHook] = field(default_factory=list)
    write_hooks: list[RowHook] = field(default_factory=list)

    def from_row(self, row: dict) -> dict:
        """
        Convert a backend row into domain attributes.

        Args:
            row: Row as returned by Supabase

        Returns:
            Dict keyed by domain attribute names
        """
        data = {}
        for col in self.columns:
            value = row.get(col.name)
            if value is None:
                value = deepcopy(col.default)
            elif col.parse is not None:
                value = col.parse(value)
            data[col.attr] = value

        for hook in self.read_hooks:
            hook(row, data)
        return data

    def to_row(self, data: dict, partial: bool = False) -> dict:
        """
        Convert domain attributes into a backend row.

        Args:
            data: Dict keyed by domain attribute names
            partial: Only emit columns whose attribute is present in data
                (used for updates)

        Returns:
            Dict keyed by backend column names
        """
        row = {}
        for col in self.columns:
            if col.attr in data:
                row[col.name] = data[col.attr]
            elif not partial:
                row[col.name] = deepcopy(col.default)

        for hook in self.write_hooks:
            hook(data, row)
        return row


# ===================
# COMMON HOOKS
# ===================

def read_coordinates(row: dict, data: dict) -> None:
    """Set coordinates only when both latitude and longitude are present."""
    lat = row.get("latitude")
    lng = row.get("longitude")
    if lat is not None and lng is not None:
        data["coordinates"] = {"lat": float(lat), "lng": float(lng)}
    else:
        data["coordinates"] = None


def write_coordinates(data: dict, row: dict) -> None:
    """Split coordinates into latitude/longitude columns."""
    if "coordinates" not in data:
        return
    coords = data["coordinates"]
    if coords:
        row["latitude"] = coords["lat"]
        row["longitude"] = coords["lng"]
    else:
        row["latitude"] = None
        row["longitude"] = None


def to_float(value: Any) -> float:
    """Numeric columns arrive as strings from PostgREST decimals."""
    return float(value)
