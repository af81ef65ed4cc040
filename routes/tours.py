"""
Tour estimate API route.
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse
import structlog

from models.tour import TourRequest
from services.market_service import get_market_service
from services.tour_planner import estimate_tour
from utils.dates import format_minutes
from exceptions import AppError

logger = structlog.get_logger(__name__)

router = APIRouter()


def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
    if isinstance(e, AppError):
        return JSONResponse(
            status_code=e.status_code,
            content=e.to_dict()
        )
    logger.error("unexpected_error", error=str(e), type=type(e).__name__)
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred"
            }
        }
    )


@router.post("/estimate")
async def estimate(request: TourRequest):
    """
    Placeholder route estimate over the markets in the given order.

    total = N x work minutes + max(N - 1, 0) x travel minutes
    """
    try:
        markets = {m.id: m for m in get_market_service().get_by_ids(request.market_ids)}
        result = estimate_tour(request.market_ids, request.transport_mode, markets)

        data = result.to_api()
        data["totalFormatted"] = format_minutes(result.total_minutes)
        return data

    except Exception as e:
        return handle_error(e)
