"""
API route modules.

Each module defines routes for one domain area.
"""

from routes.markets import router as markets_router
from routes.products import router as products_router
from routes.waves import router as waves_router
from routes.exchanges import router as exchanges_router
from routes.incentives import router as incentives_router
from routes.tours import router as tours_router

__all__ = [
    "markets_router",
    "products_router",
    "waves_router",
    "exchanges_router",
    "incentives_router",
    "tours_router",
]
