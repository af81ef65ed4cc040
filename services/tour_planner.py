"""
Tour planner.

Multi-select markets, pick a transport mode once per session and get a
placeholder route estimate: fixed work minutes per stop plus fixed
travel minutes between consecutive stops. The stops keep the order in
which markets were selected or manually rearranged.
"""

from typing import Optional
import structlog

from config import settings
from models.market import MarketResponse
from models.tour import (
    TourEstimate,
    TourStep,
    TourStop,
    TransportMode,
    is_valid_step_transition,
)
from exceptions import InvalidTransitionError, WizardGuardError

logger = structlog.get_logger(__name__)


def estimate_tour(
    market_ids: list[str],
    transport_mode: TransportMode = TransportMode.CAR,
    markets: Optional[dict[str, MarketResponse]] = None
) -> TourEstimate:
    """
    Estimate a tour over markets in the given order.

    total = N x work minutes + max(N - 1, 0) x travel minutes

    Args:
        market_ids: Stops in visiting order
        transport_mode: car or train
        markets: Optional id -> market lookup for names on the stops

    Returns:
        TourEstimate with one stop per market
    """
    mode = TransportMode(transport_mode)
    work = settings.tour_work_minutes_per_stop
    travel = settings.travel_minutes(mode.value)
    markets = markets or {}

    stops = []
    for index, market_id in enumerate(market_ids):
        market = markets.get(market_id)
        stops.append(TourStop(
            position=index + 1,
            market_id=market_id,
            market_name=market.name if market else None,
            chain=market.chain if market else None,
            travel_minutes=travel if index > 0 else 0,
            work_minutes=work,
        ))

    total_work = len(stops) * work
    total_travel = max(len(stops) - 1, 0) * travel

    return TourEstimate(
        transport_mode=mode,
        stops=stops,
        total_work_minutes=total_work,
        total_travel_minutes=total_travel,
        total_minutes=total_work + total_travel,
    )


class TourPlanner:
    """
    State holder for one tour-planning session.

    Attributes:
        step: Current step
        selected: Selected market ids in selection order
        order: Stop order of the current result
        transport_mode: Chosen once, kept for the session
        modified: The result order was rearranged since the last estimate
        started: The GL started the tour
    """

    def __init__(self, markets: Optional[list[MarketResponse]] = None):
        self.markets = {m.id: m for m in markets or []}
        self.step = TourStep.SELECTION
        self.selected: list[str] = []
        self.order: list[str] = []
        self.transport_mode: Optional[TransportMode] = None
        self.modified = False
        self.started = False
        self.estimate: Optional[TourEstimate] = None

    def _move(self, new_step: TourStep) -> None:
        if not is_valid_step_transition(self.step, new_step):
            raise InvalidTransitionError(self.step.value, new_step.value)
        logger.debug("tour_step", from_step=self.step.value, to_step=new_step.value)
        self.step = new_step

    # ===================
    # SELECTION
    # ===================

    def toggle_market(self, market_id: str) -> bool:
        """Select or deselect a market. Returns True if now selected."""
        if self.step != TourStep.SELECTION:
            raise InvalidTransitionError(self.step.value, "toggle_market")
        if market_id in self.selected:
            self.selected.remove(market_id)
            return False
        self.selected.append(market_id)
        return True

    def request_route(self) -> TourStep:
        """
        Ask for the route.

        Prompts for the transport mode on first use, otherwise starts
        optimizing right away.

        Raises:
            WizardGuardError: If no market is selected
        """
        if self.step != TourStep.SELECTION:
            raise InvalidTransitionError(self.step.value, "request_route")
        if not self.selected:
            raise WizardGuardError(self.step.value, "Bitte wähle mindestens einen Markt aus.")

        if self.transport_mode is None:
            self._move(TourStep.TRANSPORT_MODE_PROMPT)
            return self.step

        self.order = list(self.selected)
        self._move(TourStep.OPTIMIZING)
        return self.step

    def select_transport_mode(self, mode: TransportMode) -> TourStep:
        if self.step != TourStep.TRANSPORT_MODE_PROMPT:
            raise InvalidTransitionError(self.step.value, "select_transport_mode")
        self.transport_mode = TransportMode(mode)
        self.order = list(self.selected)
        self._move(TourStep.OPTIMIZING)
        return self.step

    def cancel_prompt(self) -> TourStep:
        if self.step != TourStep.TRANSPORT_MODE_PROMPT:
            raise InvalidTransitionError(self.step.value, "cancel_prompt")
        self._move(TourStep.SELECTION)
        return self.step

    # ===================
    # OPTIMIZATION & RESULT
    # ===================

    def complete_optimization(self) -> TourEstimate:
        """Compute the estimate over the current order."""
        self._move(TourStep.COMPLETED)
        self.estimate = estimate_tour(self.order, self.transport_mode, self.markets)
        self.modified = False
        logger.info(
            "tour_estimated",
            stops=len(self.order),
            transport_mode=self.transport_mode.value,
            total_minutes=self.estimate.total_minutes
        )
        return self.estimate

    def show_result(self) -> TourStep:
        self._move(TourStep.RESULT)
        return self.step

    def plan(self) -> TourEstimate:
        """Run optimizing through result in one go."""
        if self.step != TourStep.OPTIMIZING:
            raise InvalidTransitionError(self.step.value, "plan")
        estimate = self.complete_optimization()
        self.show_result()
        return estimate

    def reorder(self, from_index: int, to_index: int) -> list[str]:
        """Move one stop in the result list and mark the result modified."""
        if self.step != TourStep.RESULT:
            raise InvalidTransitionError(self.step.value, "reorder")
        if not (0 <= from_index < len(self.order) and 0 <= to_index < len(self.order)):
            raise WizardGuardError(self.step.value, "Ungültige Position in der Route.")
        market_id = self.order.pop(from_index)
        self.order.insert(to_index, market_id)
        self.modified = True
        return list(self.order)

    def continue_(self) -> TourStep:
        """
        From the result: recompute a rearranged order, otherwise start the tour.
        """
        if self.step != TourStep.RESULT:
            raise InvalidTransitionError(self.step.value, "continue")
        if self.modified:
            self.selected = list(self.order)
            self._move(TourStep.OPTIMIZING)
            self.plan()
            return self.step

        self.started = True
        logger.info("tour_started", stops=len(self.order))
        return self.step

    def back(self) -> TourStep:
        """Return from the result to market selection."""
        self._move(TourStep.SELECTION)
        self.estimate = None
        self.modified = False
        return self.step
