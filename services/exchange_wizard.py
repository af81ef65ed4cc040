"""
Vorverkauf (exchange) wizard.

The GL lists products taken out of a market and the products placed
instead. Continuing with take-outs but no replacements first offers
value-balanced replacement suggestions.

Steps:
    EDITING -> (SUGGESTIONS) -> CONFIRMING_MARKET -> SUBMITTING -> SUCCESS
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional
import structlog

from models.exchange import ExchangeCreate, ExchangeCreated, ExchangeLine, ExchangeReason
from models.product import ProductResponse
from exceptions import (
    AppError,
    InvalidTransitionError,
    SubmissionFailedError,
    SubmissionInProgressError,
    WizardGuardError,
)
from services.exchange_service import ExchangeService, get_exchange_service

logger = structlog.get_logger(__name__)

MAX_SUGGESTIONS = 6
MAX_SINGLE_SUGGESTIONS = 4
MAX_BUNDLE_SUGGESTIONS = 2
SINGLE_PRICE_TOLERANCE = 0.4
BUNDLE_VALUE_TOLERANCE = 0.25
BUNDLE_MIN_TOTAL = 10.0


class ExchangeStep(str, Enum):
    EDITING = "editing"
    SUGGESTIONS = "suggestions"
    CONFIRMING_MARKET = "confirming-market"
    SUBMITTING = "submitting"
    SUCCESS = "success"


@dataclass(frozen=True)
class Suggestion:
    """One product, or a pair of products, offered as replacement."""
    products: tuple[ProductResponse, ...]

    @property
    def total_value(self) -> float:
        return round(sum(p.price for p in self.products), 2)

    @property
    def is_bundle(self) -> bool:
        return len(self.products) > 1


def suggest_replacements(
    catalog: list[ProductResponse],
    take_out: dict[str, int],
    listed: set[str]
) -> list[Suggestion]:
    """
    Value-balanced replacement suggestions.

    Singles share a brand with a removed product or are priced within
    40% of the average removed price. Pairs are only built when the
    removed value exceeds 10 EUR and must land within 25% of it.

    Args:
        catalog: Active products to choose from
        take_out: product_id -> quantity of removed products
        listed: Product ids already on either list (never suggested)

    Returns:
        At most 6 suggestions, singles first
    """
    by_id = {p.id: p for p in catalog}
    removed = [by_id[pid] for pid in take_out if pid in by_id]
    if not removed:
        return []

    total = sum(by_id[pid].price * qty for pid, qty in take_out.items() if pid in by_id)
    average = total / len(removed)
    brands = {p.brand for p in removed if p.brand}
    available = [p for p in catalog if p.id not in listed]

    singles = [
        Suggestion((p,))
        for p in available
        if p.brand in brands or abs(p.price - average) < average * SINGLE_PRICE_TOLERANCE
    ][:MAX_SINGLE_SUGGESTIONS]

    bundles = []
    if total > BUNDLE_MIN_TOTAL:
        candidates = [p for p in available if p.price < total * 0.8][:20]
        for i in range(min(len(candidates), 10)):
            for j in range(i + 1, min(len(candidates), 15)):
                pair_total = candidates[i].price + candidates[j].price
                if abs(pair_total - total) < total * BUNDLE_VALUE_TOLERANCE:
                    bundles.append(Suggestion((candidates[i], candidates[j])))
                    break
            if len(bundles) >= MAX_BUNDLE_SUGGESTIONS:
                break

    return (singles + bundles)[:MAX_SUGGESTIONS]


class ExchangeWizard:
    """State holder for one Vorverkauf session."""

    def __init__(
        self,
        gebietsleiter_id: str,
        catalog: list[ProductResponse],
        exchange_service: Optional[ExchangeService] = None
    ):
        self.gebietsleiter_id = gebietsleiter_id
        self.catalog = catalog
        self._by_id = {p.id: p for p in catalog}
        self._exchange_service = exchange_service
        self.step = ExchangeStep.EDITING
        self.take_out: dict[str, int] = {}
        self.replace: dict[str, int] = {}
        self.reason: Optional[ExchangeReason] = None
        self.notes: Optional[str] = None
        self.market_id: Optional[str] = None
        self.suggestions: list[Suggestion] = []
        self.submitting = False
        self.error: Optional[str] = None
        self.result: Optional[ExchangeCreated] = None

    @property
    def exchange_service(self) -> ExchangeService:
        if self._exchange_service is None:
            self._exchange_service = get_exchange_service()
        return self._exchange_service

    def _require(self, *steps: ExchangeStep, action: str) -> None:
        if self.step not in steps:
            raise InvalidTransitionError(self.step.value, action)

    # ===================
    # LISTS
    # ===================

    def add_take_out(self, product_id: str, quantity: int = 1) -> None:
        self._require(ExchangeStep.EDITING, action="add_take_out")
        self.take_out[product_id] = max(1, self.take_out.get(product_id, 0) + quantity)

    def add_replacement(self, product_id: str, quantity: int = 1) -> None:
        self._require(ExchangeStep.EDITING, ExchangeStep.SUGGESTIONS, action="add_replacement")
        self.replace[product_id] = max(1, self.replace.get(product_id, 0) + quantity)

    def set_quantity(self, product_id: str, quantity: int, replacement: bool = False) -> int:
        """Set a listed quantity, clamped to at least 1. Returns the stored value."""
        self._require(ExchangeStep.EDITING, action="set_quantity")
        items = self.replace if replacement else self.take_out
        if product_id not in items:
            raise WizardGuardError(self.step.value, "Produkt ist nicht in der Liste.")
        items[product_id] = max(1, quantity)
        return items[product_id]

    def remove(self, product_id: str, replacement: bool = False) -> None:
        self._require(ExchangeStep.EDITING, action="remove")
        (self.replace if replacement else self.take_out).pop(product_id, None)

    def set_reason(self, reason: ExchangeReason, notes: Optional[str] = None) -> None:
        self.reason = ExchangeReason(reason)
        self.notes = notes

    def _value(self, items: dict[str, int]) -> float:
        return round(sum(
            self._by_id[pid].price * qty for pid, qty in items.items() if pid in self._by_id
        ), 2)

    @property
    def take_out_total(self) -> float:
        return self._value(self.take_out)

    @property
    def replace_total(self) -> float:
        return self._value(self.replace)

    # ===================
    # NAVIGATION
    # ===================

    def continue_(self) -> ExchangeStep:
        """
        Advance one step.

        Raises:
            WizardGuardError: If the lists or the reason are incomplete
        """
        if self.step == ExchangeStep.EDITING:
            if not self.take_out and not self.replace:
                raise WizardGuardError(self.step.value, "Bitte füge mindestens ein Produkt hinzu.")
            if self.take_out and not self.replace:
                self.suggestions = suggest_replacements(
                    self.catalog,
                    self.take_out,
                    set(self.take_out) | set(self.replace)
                )
                self.step = ExchangeStep.SUGGESTIONS
                return self.step
            return self._to_market_confirmation()

        if self.step == ExchangeStep.SUGGESTIONS:
            return self._to_market_confirmation()

        raise InvalidTransitionError(self.step.value, "continue")

    def _to_market_confirmation(self) -> ExchangeStep:
        if self.reason is None:
            raise WizardGuardError(self.step.value, "Bitte wähle einen Grund aus.")
        self.step = ExchangeStep.CONFIRMING_MARKET
        return self.step

    def accept_suggestion(self, index: int) -> None:
        """Put the products of one suggestion on the replace list."""
        self._require(ExchangeStep.SUGGESTIONS, action="accept_suggestion")
        if not 0 <= index < len(self.suggestions):
            raise WizardGuardError(self.step.value, "Vorschlag nicht gefunden.")
        for product in self.suggestions[index].products:
            self.add_replacement(product.id)

    def back(self) -> ExchangeStep:
        self._require(
            ExchangeStep.SUGGESTIONS,
            ExchangeStep.CONFIRMING_MARKET,
            action="back"
        )
        self.step = ExchangeStep.EDITING
        return self.step

    def confirm_market(self, market_id: str) -> None:
        self._require(ExchangeStep.CONFIRMING_MARKET, action="confirm_market")
        self.market_id = market_id

    def submit(self) -> ExchangeStep:
        """
        Save the exchange with one create call.

        A failed save returns to market confirmation with the form kept.

        Raises:
            SubmissionInProgressError: If a save is already running
            WizardGuardError: If no market is confirmed
        """
        if self.submitting:
            raise SubmissionInProgressError()
        self._require(ExchangeStep.CONFIRMING_MARKET, action="submit")
        if not self.market_id:
            raise WizardGuardError(self.step.value, "Bitte bestätige den Markt.")

        self.submitting = True
        self.error = None
        self.step = ExchangeStep.SUBMITTING
        try:
            data = ExchangeCreate(
                gebietsleiter_id=self.gebietsleiter_id,
                market_id=self.market_id,
                reason=self.reason,
                notes=self.notes,
                take_out_items=[ExchangeLine(product_id=p, quantity=q) for p, q in self.take_out.items()],
                replace_items=[ExchangeLine(product_id=p, quantity=q) for p, q in self.replace.items()],
            )
            try:
                self.result = self.exchange_service.create(data)
            except AppError as e:
                logger.error("exchange_submit_failed", market_id=self.market_id, error=e.message)
                self.error = SubmissionFailedError.USER_MESSAGE
                self.step = ExchangeStep.CONFIRMING_MARKET
                return self.step

            self.step = ExchangeStep.SUCCESS
            logger.info("exchange_submitted", entry_id=self.result.id)
            return self.step
        finally:
            self.submitting = False
