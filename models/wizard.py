"""
Pre-order wizard states and transition table.

The wizard is an explicit state machine: each (state, action) pair maps
to an ordered list of candidate transitions. The first candidate whose
guard accepts the current context wins. No candidate means the action
is blocked.

Flow:
    SELECTING_TARGET -> SELECTING_MARKET -> (CHECKING_PENDING_PHOTOS)
    -> SELECTING_ITEMS -> (PHOTO_CAPTURE) -> SUBMITTING -> SUCCESS
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Callable, Optional

from models.market import MarketResponse
from models.selection import SelectionSnapshot
from models.wave import PendingDeliveryPhoto, WaveResponse
from utils.dates import is_within_days


class WizardState(str, Enum):
    SELECTING_TARGET = "selecting-target"
    SELECTING_MARKET = "selecting-market"
    CHECKING_PENDING_PHOTOS = "checking-pending-photos"
    SELECTING_ITEMS = "selecting-items"
    PHOTO_CAPTURE = "photo-capture"
    SUBMITTING = "submitting"
    SUCCESS = "success"


class WizardAction(str, Enum):
    CONTINUE = "continue"
    BACK = "back"
    SUCCEED = "succeed"
    FAIL = "fail"
    CLOSE = "close"


class VisitChoice(str, Enum):
    """How a submission inside the recency window is counted."""
    NEW_VISIT = "new_visit"
    COUNT_TO_EXISTING = "count_to_existing"


class PendingPhotoResolution(str, Enum):
    PHOTOGRAPHED = "photographed"
    SKIPPED = "skipped"


@dataclass
class WizardContext:
    """Everything the guards look at."""

    gebietsleiter_id: str
    wave: Optional[WaveResponse] = None
    market: Optional[MarketResponse] = None
    pending_photos: list[PendingDeliveryPhoto] = field(default_factory=list)
    pending_resolutions: dict[str, PendingPhotoResolution] = field(default_factory=dict)
    selection: SelectionSnapshot = field(default_factory=SelectionSnapshot)
    photo: Optional[str] = None
    visit_choice: Optional[VisitChoice] = None
    today: Optional[date] = None
    recency_days: int = 21
    error: Optional[str] = None

    @property
    def total_quantity(self) -> int:
        return sum(q for q in self.selection.quantities.values() if q > 0)

    @property
    def requires_photo(self) -> bool:
        return bool(self.wave and self.wave.requires_photo)

    @property
    def visit_is_recent(self) -> bool:
        """Market was visited inside the recency window."""
        if self.market is None or self.market.last_visit_date is None:
            return False
        return is_within_days(
            self.market.last_visit_date,
            self.recency_days,
            today=self.today
        )


# ===================
# GUARDS
# ===================

Guard = Callable[[WizardContext], bool]


def always(ctx: WizardContext) -> bool:
    return True


def has_target(ctx: WizardContext) -> bool:
    return ctx.wave is not None


def has_market_without_pending(ctx: WizardContext) -> bool:
    return ctx.market is not None and not ctx.pending_photos


def has_market_with_pending(ctx: WizardContext) -> bool:
    return ctx.market is not None and bool(ctx.pending_photos)


def pending_photos_resolved(ctx: WizardContext) -> bool:
    return all(p.submission_id in ctx.pending_resolutions for p in ctx.pending_photos)


def visit_choice_resolved(ctx: WizardContext) -> bool:
    return not ctx.visit_is_recent or ctx.visit_choice is not None


def items_need_photo(ctx: WizardContext) -> bool:
    return ctx.total_quantity > 0 and ctx.requires_photo


def items_ready_to_submit(ctx: WizardContext) -> bool:
    return ctx.total_quantity > 0 and not ctx.requires_photo and visit_choice_resolved(ctx)


def photo_ready_to_submit(ctx: WizardContext) -> bool:
    return ctx.photo is not None and visit_choice_resolved(ctx)


def had_pending_photos(ctx: WizardContext) -> bool:
    return bool(ctx.pending_photos)


def had_no_pending_photos(ctx: WizardContext) -> bool:
    return not ctx.pending_photos


@dataclass(frozen=True)
class Transition:
    target: WizardState
    guard: Guard = always
    reason: str = ""


S = WizardState
A = WizardAction

TRANSITIONS: dict[tuple[WizardState, WizardAction], tuple[Transition, ...]] = {
    (S.SELECTING_TARGET, A.CONTINUE): (
        Transition(S.SELECTING_MARKET, has_target, "Bitte wähle eine Welle aus."),
    ),
    (S.SELECTING_MARKET, A.CONTINUE): (
        Transition(S.SELECTING_ITEMS, has_market_without_pending, "Bitte wähle einen Markt aus."),
        Transition(S.CHECKING_PENDING_PHOTOS, has_market_with_pending),
    ),
    (S.SELECTING_MARKET, A.BACK): (
        Transition(S.SELECTING_TARGET),
    ),
    (S.CHECKING_PENDING_PHOTOS, A.CONTINUE): (
        Transition(S.SELECTING_ITEMS, pending_photos_resolved,
                   "Bitte fotografiere oder überspringe alle offenen Lieferungen."),
    ),
    (S.CHECKING_PENDING_PHOTOS, A.BACK): (
        Transition(S.SELECTING_MARKET),
    ),
    (S.SELECTING_ITEMS, A.CONTINUE): (
        Transition(S.PHOTO_CAPTURE, items_need_photo),
        Transition(S.SUBMITTING, items_ready_to_submit,
                   "Bitte gib mindestens eine Menge ein und wähle die Besuchsart."),
    ),
    (S.SELECTING_ITEMS, A.BACK): (
        Transition(S.CHECKING_PENDING_PHOTOS, had_pending_photos),
        Transition(S.SELECTING_MARKET, had_no_pending_photos),
    ),
    (S.PHOTO_CAPTURE, A.CONTINUE): (
        Transition(S.SUBMITTING, photo_ready_to_submit,
                   "Bitte nimm ein Foto auf und wähle die Besuchsart."),
    ),
    (S.PHOTO_CAPTURE, A.BACK): (
        Transition(S.SELECTING_ITEMS),
    ),
    (S.SUBMITTING, A.SUCCEED): (
        Transition(S.SUCCESS),
    ),
    (S.SUBMITTING, A.FAIL): (
        Transition(S.SELECTING_ITEMS),
    ),
}


def next_state(
    state: WizardState,
    action: WizardAction,
    ctx: WizardContext
) -> tuple[Optional[WizardState], str]:
    """
    Resolve an action against the transition table.

    Args:
        state: Current state
        action: Requested action
        ctx: Guard input

    Returns:
        (next state, "") when allowed, (None, reason) when a guard blocks.
        CLOSE always returns to SELECTING_TARGET.

    Raises:
        KeyError: If the table has no entry for (state, action)
    """
    if action == WizardAction.CLOSE:
        return WizardState.SELECTING_TARGET, ""

    candidates = TRANSITIONS[(state, action)]
    for transition in candidates:
        if transition.guard(ctx):
            return transition.target, ""

    reasons = [t.reason for t in candidates if t.reason]
    return None, reasons[-1] if reasons else "Aktion nicht möglich."


def can_advance(state: WizardState, ctx: WizardContext) -> bool:
    """Whether the continue control is enabled."""
    if (state, WizardAction.CONTINUE) not in TRANSITIONS:
        return False
    target, _ = next_state(state, WizardAction.CONTINUE, ctx)
    return target is not None
