"""
Business logic services.

Each service handles one domain area.
"""

from services import invalidation
from services.market_service import MarketService, get_market_service
from services.product_service import ProductService, get_product_service
from services.wave_service import WaveService, get_wave_service
from services.exchange_service import ExchangeService, get_exchange_service
from services.incentive_service import IncentiveService, get_incentive_service
from services.submission_wizard import SubmissionWizard
from services.exchange_wizard import ExchangeWizard, ExchangeStep, suggest_replacements
from services.tour_planner import TourPlanner, estimate_tour

__all__ = [
    "invalidation",
    "MarketService",
    "get_market_service",
    "ProductService",
    "get_product_service",
    "WaveService",
    "get_wave_service",
    "ExchangeService",
    "get_exchange_service",
    "IncentiveService",
    "get_incentive_service",
    "SubmissionWizard",
    "ExchangeWizard",
    "ExchangeStep",
    "suggest_replacements",
    "TourPlanner",
    "estimate_tour",
]
