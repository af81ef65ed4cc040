"""
Pydantic models for validation and serialization.
"""

from models.base import (
    BaseSchema,
    TimestampMixin,
    PaginationParams,
    PaginatedResponse
)
from models.mapping import Column, RowMapper
from models.market import (
    MarketCreate,
    MarketUpdate,
    MarketResponse,
    VisitResult,
    MarketImportResult,
)
from models.product import (
    Department,
    ProductType,
    PaletteProduct,
    ProductCreate,
    ProductUpdate,
    ProductResponse,
)
from models.wave import (
    WaveStatus,
    GoalType,
    ItemType,
    WaveCreate,
    WaveUpdate,
    WaveResponse,
    SubmissionLine,
    SubmissionBatch,
    BatchResult,
    PendingDeliveryPhoto,
)
from models.exchange import (
    ExchangeReason,
    ExchangeCreate,
    ExchangeEntry,
    ExchangeStats,
)
from models.incentive import (
    IncentiveCreate,
    IncentiveSubmission,
    IncentiveGroup,
)
from models.selection import CandidateItem, SelectionSnapshot, SelectionTotals, item_key
from models.wizard import WizardState, WizardAction, VisitChoice
from models.tour import TourStep, TransportMode, TourEstimate

__all__ = [
    # Base
    "BaseSchema",
    "TimestampMixin",
    "PaginationParams",
    "PaginatedResponse",
    "Column",
    "RowMapper",
    # Market
    "MarketCreate",
    "MarketUpdate",
    "MarketResponse",
    "VisitResult",
    "MarketImportResult",
    # Product
    "Department",
    "ProductType",
    "PaletteProduct",
    "ProductCreate",
    "ProductUpdate",
    "ProductResponse",
    # Wave
    "WaveStatus",
    "GoalType",
    "ItemType",
    "WaveCreate",
    "WaveUpdate",
    "WaveResponse",
    "SubmissionLine",
    "SubmissionBatch",
    "BatchResult",
    "PendingDeliveryPhoto",
    # Exchange
    "ExchangeReason",
    "ExchangeCreate",
    "ExchangeEntry",
    "ExchangeStats",
    # Incentive
    "IncentiveCreate",
    "IncentiveSubmission",
    "IncentiveGroup",
    # Flows
    "CandidateItem",
    "SelectionSnapshot",
    "SelectionTotals",
    "item_key",
    "WizardState",
    "WizardAction",
    "VisitChoice",
    "TourStep",
    "TransportMode",
    "TourEstimate",
]
