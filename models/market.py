"""
Market schemas for validation and serialization.

A market is a retail store visited by a Gebietsleiter (GL). Visit
counters are mutated only through visit recording.
"""

from pydantic import Field, field_validator
from typing import Optional
from datetime import date

from models.base import BaseSchema, TimestampMixin
from models.mapping import Column, RowMapper, read_coordinates, write_coordinates


DEFAULT_VISIT_FREQUENCY = 12


class Coordinates(BaseSchema):
    """Geographic position of a market."""
    lat: float
    lng: float


class MarketBase(BaseSchema):
    """Fields shared by create and response schemas."""

    internal_id: Optional[str] = Field(None, max_length=50, description="Customer number")
    name: str = Field(..., min_length=1, max_length=255, description="Market display name")
    address: str = Field(default="", description="Street address")
    city: str = Field(default="", description="City")
    postal_code: str = Field(default="", description="Postal code (PLZ)")
    chain: str = Field(default="", description="Retail chain, e.g. Billa+, Spar")
    banner: Optional[str] = None
    channel: Optional[str] = None
    branch: Optional[str] = None
    maingroup: Optional[str] = None
    subgroup: Optional[str] = None
    gebietsleiter_id: Optional[str] = Field(None, description="Owning GL")
    gebietsleiter_name: Optional[str] = None
    gebietsleiter_email: Optional[str] = None
    frequency: int = Field(
        default=DEFAULT_VISIT_FREQUENCY,
        ge=1,
        description="Target visits per year"
    )
    current_visits: int = Field(default=0, ge=0)
    last_visit_date: Optional[date] = None
    is_completed: bool = False
    is_active: bool = True
    visit_day: Optional[str] = None
    visit_duration: Optional[str] = None
    customer_type: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    coordinates: Optional[Coordinates] = None


class MarketCreate(MarketBase):
    """
    Create a new market.

    Required: id, name
    """

    id: str = Field(..., min_length=1, max_length=50, description="Market ID")

    @field_validator("id")
    @classmethod
    def id_not_blank(cls, v: str) -> str:
        return v.strip()


class MarketUpdate(BaseSchema):
    """
    Update existing market.

    All fields optional - only provided fields are updated.
    """

    internal_id: Optional[str] = None
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    address: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None
    chain: Optional[str] = None
    banner: Optional[str] = None
    channel: Optional[str] = None
    branch: Optional[str] = None
    maingroup: Optional[str] = None
    subgroup: Optional[str] = None
    gebietsleiter_id: Optional[str] = None
    gebietsleiter_name: Optional[str] = None
    gebietsleiter_email: Optional[str] = None
    frequency: Optional[int] = Field(None, ge=1)
    current_visits: Optional[int] = Field(None, ge=0)
    last_visit_date: Optional[date] = None
    is_completed: Optional[bool] = None
    is_active: Optional[bool] = None
    visit_day: Optional[str] = None
    visit_duration: Optional[str] = None
    customer_type: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    coordinates: Optional[Coordinates] = None


class MarketResponse(MarketBase, TimestampMixin):
    """Market as returned by the API."""

    id: str = Field(..., description="Market ID")


class VisitResult(BaseSchema):
    """Outcome of recording a visit."""

    market_id: str
    incremented: bool = Field(..., description="False when already visited today")
    current_visits: int
    last_visit_date: date
    is_completed: bool = False


class MarketImportResult(BaseSchema):
    """Outcome of a bulk import."""

    success: int
    failed: int


MARKET_MAPPER = RowMapper(
    columns=[
        Column("id"),
        Column("internal_id"),
        Column("name", default=""),
        Column("address", default=""),
        Column("city", default=""),
        Column("postal_code", default=""),
        Column("chain", default=""),
        Column("banner"),
        Column("channel"),
        Column("branch"),
        Column("maingroup"),
        Column("subgroup"),
        Column("gebietsleiter_id"),
        Column("gebietsleiter_name"),
        Column("gebietsleiter_email"),
        Column("frequency", default=DEFAULT_VISIT_FREQUENCY),
        Column("current_visits", default=0),
        Column("last_visit_date"),
        Column("is_completed", default=False),
        Column("is_active", default=True),
        Column("visit_day"),
        Column("visit_duration"),
        Column("customer_type"),
        Column("phone"),
        Column("email"),
    ],
    read_hooks=[read_coordinates],
    write_hooks=[write_coordinates],
)


def market_from_row(row: dict) -> MarketResponse:
    """Build a response model from a markets row."""
    data = MARKET_MAPPER.from_row(row)
    data["created_at"] = row.get("created_at")
    data["updated_at"] = row.get("updated_at")
    return MarketResponse.model_validate(data)


def market_to_row(market: BaseSchema, partial: bool = False) -> dict:
    """
    Build a markets row from a schema.

    Args:
        market: MarketCreate, MarketUpdate or MarketResponse
        partial: Only include fields explicitly set (for updates)
    """
    data = market.model_dump(mode="json", exclude_unset=partial)
    return MARKET_MAPPER.to_row(data, partial=partial)
