"""
Vorverkauf (product exchange) schemas.

An exchange documents products taken out of a market and the products
placed instead, with a reason code.
"""

from pydantic import Field, model_validator
from typing import Optional
from enum import Enum
from datetime import datetime

from models.base import BaseSchema


class ExchangeReason(str, Enum):
    """Why products were swapped."""
    OOS = "OOS"
    LISTUNGSLUECKE = "Listungslücke"
    PLATZIERUNG = "Platzierung"


class ExchangeItemType(str, Enum):
    TAKE_OUT = "take_out"
    REPLACE = "replace"


class ExchangeLine(BaseSchema):
    """Product and quantity on one side of the exchange."""

    product_id: str = Field(..., min_length=1)
    quantity: int = Field(default=1, ge=1)


class ExchangeCreate(BaseSchema):
    """
    Create a Vorverkauf entry.

    Required: gebietsleiter_id, market_id, reason and at least one line
    """

    gebietsleiter_id: str = Field(..., min_length=1)
    market_id: str = Field(..., min_length=1)
    reason: ExchangeReason
    notes: Optional[str] = None
    take_out_items: list[ExchangeLine] = Field(default_factory=list)
    replace_items: list[ExchangeLine] = Field(default_factory=list)

    @model_validator(mode="after")
    def has_lines(self):
        if not self.take_out_items and not self.replace_items:
            raise ValueError("at least one take_out or replace item is required")
        return self

    def item_rows(self, entry_id: str) -> list[dict]:
        """vorverkauf_items rows for both sides."""
        rows = []
        for item_type, lines in (
            (ExchangeItemType.TAKE_OUT, self.take_out_items),
            (ExchangeItemType.REPLACE, self.replace_items),
        ):
            for line in lines:
                rows.append({
                    "vorverkauf_entry_id": entry_id,
                    "product_id": line.product_id,
                    "quantity": line.quantity,
                    "item_type": item_type.value,
                })
        return rows


class ExchangeItem(BaseSchema):
    """Stored line with product details."""

    id: str
    product_id: str
    product_name: str = "Unbekannt"
    product_brand: str = ""
    product_size: str = ""
    product_price: float = 0.0
    quantity: int
    item_type: ExchangeItemType = ExchangeItemType.TAKE_OUT


class ExchangeEntry(BaseSchema):
    """Vorverkauf entry as returned by the API."""

    id: str
    gebietsleiter_id: str
    gl_name: str = "Unbekannt"
    market_id: str
    market_name: str = "Unbekannt"
    market_chain: str = ""
    market_address: str = ""
    market_city: str = ""
    reason: ExchangeReason
    notes: Optional[str] = None
    items: list[ExchangeItem] = Field(default_factory=list)
    created_at: Optional[datetime] = None

    @property
    def total_items(self) -> int:
        return sum(item.quantity for item in self.items)

    def to_api(self) -> dict:
        data = super().to_api()
        data["totalItems"] = self.total_items
        return data


class ExchangeStats(BaseSchema):
    """Summary over all entries."""

    total_entries: int = 0
    total_items: int = 0
    by_reason: dict[str, int] = Field(default_factory=dict)


class ExchangeCreated(BaseSchema):
    id: str
    items_count: int
