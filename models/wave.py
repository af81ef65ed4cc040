"""
Wave ("Welle") schemas.

A wave is a time-boxed pre-order campaign. GLs record pre-orders
against its item collections; submissions accumulate into per-GL
progress rows.
"""

from pydantic import Field, field_validator, model_validator
from typing import Optional
from enum import Enum
from datetime import date, datetime

from models.base import BaseSchema, TimestampMixin
from models.mapping import Column, RowMapper, to_float


class WaveStatus(str, Enum):
    """Campaign lifecycle, derived from the delivery window."""
    UPCOMING = "upcoming"
    ACTIVE = "active"
    PAST = "past"


class GoalType(str, Enum):
    """How a wave goal is measured."""
    PERCENTAGE = "percentage"
    VALUE = "value"


class ItemType(str, Enum):
    """Item collections of a wave (also the submission line kind)."""
    DISPLAY = "display"
    KARTONWARE = "kartonware"
    EINZELPRODUKT = "einzelprodukt"
    PALETTE = "palette"
    SCHUETTE = "schuette"


class PhotoTagType(str, Enum):
    FIXED = "fixed"
    OPTIONAL = "optional"


def derive_wave_status(start_date: date, end_date: date, today: Optional[date] = None) -> WaveStatus:
    """
    Status from the date window.

    Args:
        start_date: First delivery day
        end_date: Last delivery day
        today: Reference day (defaults to date.today())

    Returns:
        ACTIVE inside the window (inclusive), PAST after it, else UPCOMING
    """
    today = today or date.today()
    if end_date < today:
        return WaveStatus.PAST
    if start_date <= today:
        return WaveStatus.ACTIVE
    return WaveStatus.UPCOMING


# ===================
# ITEM COLLECTIONS
# ===================

class WaveItem(BaseSchema):
    """Display, Kartonware or Einzelprodukt target."""

    id: Optional[str] = None
    name: str = Field(..., min_length=1)
    target_number: int = Field(..., gt=0)
    current_number: int = Field(default=0, ge=0)
    picture: Optional[str] = None
    item_value: Optional[float] = Field(None, ge=0, description="Used for value goals")


class WaveBundleLine(BaseSchema):
    """Constituent product of a wave palette/schuette."""

    id: Optional[str] = None
    name: str = Field(..., min_length=1)
    value_per_ve: float = Field(..., ge=0)
    ve: int = Field(default=1, ge=0)
    ean: Optional[str] = None
    current_number: int = Field(default=0, ge=0)


class WaveBundle(BaseSchema):
    """Palette or Schütte offered in a wave."""

    id: Optional[str] = None
    name: str = Field(..., min_length=1)
    size: Optional[str] = None
    picture: Optional[str] = None
    products: list[WaveBundleLine] = Field(default_factory=list)


class KwDay(BaseSchema):
    """Order window: calendar week and weekdays, e.g. KW48 ['MO', 'MI']."""

    kw: str = Field(..., min_length=1)
    days: list[str] = Field(default_factory=list)

    @field_validator("kw")
    @classmethod
    def kw_uppercase(cls, v: str) -> str:
        return v.upper()


class PhotoTag(BaseSchema):
    name: str = Field(..., min_length=1)
    tag_type: PhotoTagType = PhotoTagType.OPTIONAL


# ===================
# WAVE
# ===================

class WaveFields(BaseSchema):
    """Fields shared by create and response schemas."""

    name: str = Field(..., min_length=1, max_length=255)
    image: Optional[str] = None
    start_date: date
    end_date: date
    goal_type: GoalType
    goal_percentage: Optional[float] = Field(None, ge=0, le=100)
    goal_value: Optional[float] = Field(None, ge=0)
    displays: list[WaveItem] = Field(default_factory=list)
    kartonware_items: list[WaveItem] = Field(default_factory=list)
    einzelprodukt_items: list[WaveItem] = Field(default_factory=list)
    palette_items: list[WaveBundle] = Field(default_factory=list)
    schuette_items: list[WaveBundle] = Field(default_factory=list)
    kw_days: list[KwDay] = Field(default_factory=list)
    assigned_market_ids: list[str] = Field(default_factory=list)
    foto_enabled: bool = False
    foto_only: bool = False
    foto_header: Optional[str] = None
    foto_description: Optional[str] = None
    photo_tags: list[PhotoTag] = Field(default_factory=list)


class WaveCreate(WaveFields):
    """
    Create a new wave.

    Required: name, start_date, end_date, goal_type
    """

    @model_validator(mode="after")
    def window_is_ordered(self):
        """End date may not precede start date."""
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class WaveUpdate(BaseSchema):
    """
    Update an existing wave.

    Scalar fields are patched; a provided collection replaces the stored one.
    """

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    image: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    goal_type: Optional[GoalType] = None
    goal_percentage: Optional[float] = Field(None, ge=0, le=100)
    goal_value: Optional[float] = Field(None, ge=0)
    displays: Optional[list[WaveItem]] = None
    kartonware_items: Optional[list[WaveItem]] = None
    einzelprodukt_items: Optional[list[WaveItem]] = None
    kw_days: Optional[list[KwDay]] = None
    assigned_market_ids: Optional[list[str]] = None
    foto_enabled: Optional[bool] = None
    foto_only: Optional[bool] = None
    foto_header: Optional[str] = None
    foto_description: Optional[str] = None


class WaveResponse(WaveFields, TimestampMixin):
    """Wave with collections and accumulated progress."""

    id: str
    status: WaveStatus
    types: list[ItemType] = Field(default_factory=list)
    participating_gls: int = 0

    @property
    def requires_photo(self) -> bool:
        """A completion photo is captured before submitting."""
        return self.foto_enabled or self.foto_only


WAVE_MAPPER = RowMapper(
    columns=[
        Column("id"),
        Column("name", default=""),
        Column("image", column="image_url"),
        Column("start_date"),
        Column("end_date"),
        Column("status"),
        Column("goal_type", default=GoalType.PERCENTAGE.value),
        Column("goal_percentage", parse=to_float),
        Column("goal_value", parse=to_float),
        Column("foto_enabled", default=False),
        Column("foto_only", default=False),
        Column("foto_header"),
        Column("foto_description"),
    ]
)

WAVE_ITEM_MAPPER = RowMapper(
    columns=[
        Column("id"),
        Column("name", default=""),
        Column("target_number", default=1),
        Column("item_value", parse=to_float),
        Column("picture", column="picture_url"),
    ]
)

WAVE_BUNDLE_MAPPER = RowMapper(
    columns=[
        Column("id"),
        Column("name", default=""),
        Column("size"),
        Column("picture", column="picture_url"),
    ]
)

WAVE_BUNDLE_LINE_MAPPER = RowMapper(
    columns=[
        Column("id"),
        Column("name", default=""),
        Column("value_per_ve", default=0.0, parse=to_float),
        Column("ve", default=1),
        Column("ean"),
    ]
)


# ===================
# PROGRESS & SUBMISSIONS
# ===================

class SubmissionLine(BaseSchema):
    """One pre-ordered line of a batch."""

    item_type: ItemType
    item_id: str
    quantity: int = Field(..., ge=0)
    value_per_unit: Optional[float] = Field(None, ge=0)


class SubmissionBatch(BaseSchema):
    """
    Everything the wizard sends in one call.

    Lines with quantity 0 are dropped before persisting.
    """

    gebietsleiter_id: str = Field(..., min_length=1)
    market_id: str = Field(..., min_length=1)
    items: list[SubmissionLine] = Field(default_factory=list)
    photo_url: Optional[str] = None

    @property
    def positive_items(self) -> list[SubmissionLine]:
        return [item for item in self.items if item.quantity > 0]


class BatchResult(BaseSchema):
    """Outcome of a batch submission."""

    submission_ids: list[str] = Field(default_factory=list)
    items_updated: int = 0


class GLProgress(BaseSchema):
    """Cumulative progress of one GL on one wave item."""

    welle_id: str
    gebietsleiter_id: str
    item_type: ItemType
    item_id: str
    current_number: int = 0


class WaveProgressEntry(BaseSchema):
    """
    One GL progress row with names resolved, for the admin wave view.

    The market is the one of the GL's latest submission of the item.
    """

    id: Optional[str] = None
    gebietsleiter_id: str
    gl_name: str
    market_id: Optional[str] = None
    market_name: str
    market_chain: str = ""
    item_type: ItemType
    item_id: str
    item_name: str
    quantity: int = 0
    value: float = 0.0
    updated_at: Optional[datetime] = None


class WaveSubmission(BaseSchema):
    """Stored submission line (wellen_submissions row)."""

    id: str
    welle_id: str
    gebietsleiter_id: str
    market_id: str
    item_type: ItemType
    item_id: str
    quantity: int
    value_per_unit: Optional[float] = None
    photo_url: Optional[str] = None
    delivery_photo_url: Optional[str] = None
    created_at: Optional[datetime] = None


class SubmissionUpdate(BaseSchema):
    quantity: Optional[int] = Field(None, ge=0)
    value_per_unit: Optional[float] = Field(None, ge=0)


class PendingDeliveryPhoto(BaseSchema):
    """Submission line at a market still waiting for its delivery photo."""

    submission_id: str
    welle_id: str
    welle_name: Optional[str] = None
    item_type: ItemType
    item_id: str
    item_name: Optional[str] = None
    quantity: int
    created_at: Optional[datetime] = None


class DeliveryPhotoUpload(BaseSchema):
    """One photo attached to one or more submission lines."""

    submission_ids: list[str] = Field(..., min_length=1)
    photo_url: str = Field(..., min_length=1)


SUBMISSION_MAPPER = RowMapper(
    columns=[
        Column("id"),
        Column("welle_id"),
        Column("gebietsleiter_id"),
        Column("market_id"),
        Column("item_type"),
        Column("item_id"),
        Column("quantity", default=0),
        Column("value_per_unit", parse=to_float),
        Column("photo_url"),
        Column("delivery_photo_url"),
        Column("created_at"),
    ]
)


def submission_from_row(row: dict) -> WaveSubmission:
    return WaveSubmission.model_validate(SUBMISSION_MAPPER.from_row(row))
