"""
Pure functions over selection snapshots.

The pre-order wizard keeps the entered quantities in an immutable
SelectionSnapshot. Everything shown or submitted is derived here, so the
same snapshot always yields the same totals and line items.
"""

from types import MappingProxyType
from typing import Optional

from config import settings
from models.selection import (
    CandidateItem,
    SelectionSnapshot,
    SelectionTotals,
)
from models.wave import GoalType, ItemType, SubmissionLine, WaveResponse


# ===================
# QUANTITY INPUT
# ===================

def clamp_quantity(quantity: int) -> int:
    """Quantities never go below zero."""
    return max(0, quantity)


def parse_quantity_input(text: Optional[str], current: int) -> int:
    """
    Interpret free-text quantity entry.

    Args:
        text: What the user typed
        current: Quantity before the edit

    Returns:
        0 for empty input, the number for a non-negative integer,
        otherwise the unchanged current quantity
    """
    if text is None:
        return current
    text = text.strip()
    if text == "":
        return 0
    if text.isascii() and text.isdigit():
        return int(text)
    return current


def adjust_quantity(snapshot: SelectionSnapshot, key: str, delta: int) -> SelectionSnapshot:
    """Add delta to one quantity, clamped at zero."""
    return snapshot.with_quantity(key, clamp_quantity(snapshot.quantity(key) + delta))


def enter_quantity(snapshot: SelectionSnapshot, key: str, text: Optional[str]) -> SelectionSnapshot:
    """Apply free-text entry to one quantity."""
    return snapshot.with_quantity(key, parse_quantity_input(text, snapshot.quantity(key)))


# ===================
# CANDIDATES
# ===================

def candidates_for_wave(wave: WaveResponse) -> tuple[CandidateItem, ...]:
    """
    All orderable lines of a wave.

    Order: displays, kartonware, einzelprodukte, palette constituents,
    schuette constituents.
    """
    candidates = []
    for item_type, items in (
        (ItemType.DISPLAY, wave.displays),
        (ItemType.KARTONWARE, wave.kartonware_items),
        (ItemType.EINZELPRODUKT, wave.einzelprodukt_items),
    ):
        for item in items:
            if item.id is None:
                continue
            candidates.append(CandidateItem(
                item_type=item_type,
                item_id=item.id,
                name=item.name,
                unit_value=item.item_value,
            ))

    for item_type, bundles in (
        (ItemType.PALETTE, wave.palette_items),
        (ItemType.SCHUETTE, wave.schuette_items),
    ):
        for bundle in bundles:
            for line in bundle.products:
                if line.id is None:
                    continue
                candidates.append(CandidateItem(
                    item_type=item_type,
                    item_id=line.id,
                    name=line.name,
                    unit_value=line.value_per_ve,
                    bundle_id=bundle.id,
                ))

    return tuple(candidates)


def new_snapshot(wave: WaveResponse) -> SelectionSnapshot:
    """Empty selection over the wave's candidates."""
    return SelectionSnapshot(
        candidates=candidates_for_wave(wave),
        quantities=MappingProxyType({}),
    )


# ===================
# DERIVED VALUES
# ===================

def collect_line_items(snapshot: SelectionSnapshot) -> list[SubmissionLine]:
    """Submission lines for every candidate with a quantity above zero."""
    return [
        SubmissionLine(
            item_type=candidate.item_type,
            item_id=candidate.item_id,
            quantity=snapshot.quantity(candidate.key),
            value_per_unit=candidate.unit_value,
        )
        for candidate in snapshot.candidates
        if snapshot.quantity(candidate.key) > 0
    ]


def bundle_value(snapshot: SelectionSnapshot, bundle_id: str) -> float:
    """Sum of quantity x unit value over one palette or schuette."""
    return round(sum(
        snapshot.quantity(c.key) * (c.unit_value or 0)
        for c in snapshot.candidates
        if c.bundle_id == bundle_id
    ), 2)


def compute_totals(snapshot: SelectionSnapshot, minimum: Optional[float] = None) -> SelectionTotals:
    """
    Totals shown under the item list.

    Palettes and schuetten with a selected value under the order minimum
    are flagged in bundles_below_minimum. Untouched bundles are not.
    """
    lines = collect_line_items(snapshot)
    bundle_ids = []
    for c in snapshot.candidates:
        if c.bundle_id is not None and c.bundle_id not in bundle_ids:
            bundle_ids.append(c.bundle_id)
    values = {b: bundle_value(snapshot, b) for b in bundle_ids}

    return SelectionTotals(
        total_quantity=sum(line.quantity for line in lines),
        total_value=round(sum(line.quantity * (line.value_per_unit or 0) for line in lines), 2),
        line_count=len(lines),
        bundle_values=MappingProxyType(values),
        bundles_below_minimum=frozenset(
            b for b, value in values.items() if value > 0 and not meets_minimum(value, minimum)
        ),
    )


def meets_minimum(value: float, minimum: Optional[float] = None) -> bool:
    """Whether a palette/schuette value reaches the order minimum. Informational only."""
    if minimum is None:
        minimum = settings.palette_minimum_value
    return value >= minimum


def goal_progress(wave: WaveResponse) -> float:
    """
    Progress of a wave towards its goal.

    Percentage goals: sum of current over sum of target, in percent.
    Value goals: sum of current x item value, including palette and
    schuette constituent lines.
    """
    items = wave.displays + wave.kartonware_items + wave.einzelprodukt_items

    if wave.goal_type == GoalType.PERCENTAGE:
        target = sum(item.target_number for item in items)
        if target == 0:
            return 0.0
        current = sum(item.current_number for item in items)
        return round(current / target * 100, 2)

    value = sum(item.current_number * (item.item_value or 0) for item in items)
    for bundle in wave.palette_items + wave.schuette_items:
        value += sum(line.current_number * line.value_per_ve for line in bundle.products)
    return round(value, 2)
