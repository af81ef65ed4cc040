"""
NARA incentive schemas.

Submissions are read back with product prices and grouped per market
and calendar day for reporting.
"""

from pydantic import Field
from typing import Optional
from datetime import date, datetime

from models.base import BaseSchema


class IncentiveLine(BaseSchema):
    product_id: str = Field(..., min_length=1)
    quantity: int = Field(default=1, ge=1)


class IncentiveCreate(BaseSchema):
    """Create a NARA submission with at least one line."""

    gebietsleiter_id: str = Field(..., min_length=1)
    market_id: str = Field(..., min_length=1)
    items: list[IncentiveLine] = Field(..., min_length=1)


class IncentiveItem(BaseSchema):
    """Stored line with product price and line total."""

    id: str
    product_id: str
    product_name: str = "Unbekannt"
    product_weight: str = ""
    product_price: float = 0.0
    quantity: int

    @property
    def line_total(self) -> float:
        return round(self.product_price * self.quantity, 2)

    def to_api(self) -> dict:
        data = super().to_api()
        data["lineTotal"] = self.line_total
        return data


class IncentiveSubmission(BaseSchema):
    """NARA submission as returned by the API."""

    id: str
    gebietsleiter_id: str
    gl_name: str = "Unbekannt"
    market_id: str
    market_name: str = "Unbekannt"
    market_chain: str = ""
    market_address: str = ""
    market_city: str = ""
    items: list[IncentiveItem] = Field(default_factory=list)
    created_at: Optional[datetime] = None

    @property
    def total_value(self) -> float:
        return round(sum(item.line_total for item in self.items), 2)

    def to_api(self) -> dict:
        data = super().to_api()
        data["items"] = [item.to_api() for item in self.items]
        data["totalValue"] = self.total_value
        return data


class IncentiveGroup(BaseSchema):
    """All submissions of one market on one calendar day."""

    market_id: str
    market_name: str
    market_chain: str = ""
    day: date
    gebietsleiter_ids: list[str] = Field(default_factory=list)
    submission_ids: list[str] = Field(default_factory=list)
    items: list[IncentiveItem] = Field(default_factory=list)

    @property
    def total_value(self) -> float:
        return round(sum(item.line_total for item in self.items), 2)

    def to_api(self) -> dict:
        data = super().to_api()
        data["items"] = [item.to_api() for item in self.items]
        data["totalValue"] = self.total_value
        return data


class IncentiveCreated(BaseSchema):
    id: str
    items_count: int
