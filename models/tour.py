"""
Tour planner states and estimate schemas.

The route estimate is a fixed-constant placeholder: work minutes per
stop plus travel minutes between consecutive stops. No distance data is
involved.
"""

from pydantic import Field
from typing import Optional
from enum import Enum

from models.base import BaseSchema


class TourStep(str, Enum):
    SELECTION = "selection"
    TRANSPORT_MODE_PROMPT = "transport-mode-prompt"
    OPTIMIZING = "optimizing"
    COMPLETED = "completed"
    RESULT = "result"


class TransportMode(str, Enum):
    CAR = "car"
    TRAIN = "train"


# Allowed step changes. RESULT -> SELECTION is the only way back.
TOUR_TRANSITIONS: dict[TourStep, tuple[TourStep, ...]] = {
    TourStep.SELECTION: (TourStep.TRANSPORT_MODE_PROMPT, TourStep.OPTIMIZING),
    TourStep.TRANSPORT_MODE_PROMPT: (TourStep.OPTIMIZING, TourStep.SELECTION),
    TourStep.OPTIMIZING: (TourStep.COMPLETED,),
    TourStep.COMPLETED: (TourStep.RESULT,),
    TourStep.RESULT: (TourStep.OPTIMIZING, TourStep.SELECTION),
}


def is_valid_step_transition(current: TourStep, new: TourStep) -> bool:
    return new in TOUR_TRANSITIONS.get(current, ())


class TourStop(BaseSchema):
    """One market on the route."""

    position: int = Field(..., ge=1)
    market_id: str
    market_name: Optional[str] = None
    chain: Optional[str] = None
    travel_minutes: int = Field(..., ge=0, description="Travel before this stop (0 for the first)")
    work_minutes: int = Field(..., ge=0)

    @property
    def stop_minutes(self) -> int:
        return self.travel_minutes + self.work_minutes


class TourEstimate(BaseSchema):
    """Placeholder route over the selected markets in their current order."""

    transport_mode: TransportMode
    stops: list[TourStop] = Field(default_factory=list)
    total_work_minutes: int = 0
    total_travel_minutes: int = 0
    total_minutes: int = 0

    @property
    def order(self) -> list[str]:
        return [stop.market_id for stop in self.stops]


class TourRequest(BaseSchema):
    """Stateless estimate request for the API."""

    market_ids: list[str] = Field(..., min_length=1)
    transport_mode: TransportMode = TransportMode.CAR
