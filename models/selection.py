"""
Immutable selection snapshots for the pre-order wizard.

A snapshot pairs the candidate items of a wave with the quantities the
GL entered. Every derived number (totals, bundle values, line items) is
computed from a snapshot by the pure functions in
services.selection_service.
"""

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Mapping, Optional

from models.wave import ItemType


def item_key(item_type: ItemType, item_id: str) -> str:
    """Quantity-map key; ids are only unique within one collection."""
    return f"{ItemType(item_type).value}:{item_id}"


@dataclass(frozen=True)
class CandidateItem:
    """
    One orderable line offered by a wave.

    Attributes:
        item_type: Collection the line belongs to
        item_id: Wave item id (constituent id for palettes/schuetten)
        name: Display name
        unit_value: Value per unit, if known
        bundle_id: Parent palette/schuette for constituent lines
    """
    item_type: ItemType
    item_id: str
    name: str
    unit_value: Optional[float] = None
    bundle_id: Optional[str] = None

    @property
    def key(self) -> str:
        return item_key(self.item_type, self.item_id)


@dataclass(frozen=True)
class SelectionSnapshot:
    """Candidate items plus entered quantities; never mutated in place."""

    candidates: tuple[CandidateItem, ...] = ()
    quantities: Mapping[str, int] = field(default_factory=lambda: MappingProxyType({}))

    def quantity(self, key: str) -> int:
        return self.quantities.get(key, 0)

    def with_quantity(self, key: str, quantity: int) -> "SelectionSnapshot":
        """Copy of the snapshot with one quantity replaced."""
        updated = dict(self.quantities)
        updated[key] = quantity
        return replace(self, quantities=MappingProxyType(updated))

    def cleared(self) -> "SelectionSnapshot":
        return replace(self, quantities=MappingProxyType({}))


@dataclass(frozen=True)
class SelectionTotals:
    """Derived numbers shown under the item list."""

    total_quantity: int
    total_value: float
    line_count: int
    bundle_values: Mapping[str, float]
    bundles_below_minimum: frozenset[str] = frozenset()
