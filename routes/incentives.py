"""
NARA incentive API routes.
"""

from fastapi import APIRouter, Query, Response
from fastapi.responses import JSONResponse
from typing import Optional
import structlog

from models.incentive import IncentiveCreate
from services.incentive_service import get_incentive_service
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


@router.get("")
async def list_incentives(gebietsleiter_id: Optional[str] = Query(None, alias="glId")):
    """NARA submissions with priced lines and totals."""
    try:
        submissions = get_incentive_service().get_all(gebietsleiter_id)
        return [s.to_api() for s in submissions]

    except Exception as e:
        return handle_error(e)


@router.get("/grouped")
async def grouped_incentives(gebietsleiter_id: Optional[str] = Query(None, alias="glId")):
    """Submissions merged per market and calendar day."""
    try:
        groups = get_incentive_service().group_by_market_day(gebietsleiter_id)
        return [g.to_api() for g in groups]

    except Exception as e:
        return handle_error(e)


@router.post("", status_code=201)
async def create_incentive(data: IncentiveCreate):
    """Store a NARA submission. Returns {id, itemsCount}."""
    try:
        return get_incentive_service().create(data).to_api()

    except Exception as e:
        return handle_error(e)


@router.delete("/{submission_id}", status_code=204)
async def delete_incentive(submission_id: str):
    """
    Raises:
        404: Submission not found
    """
    try:
        get_incentive_service().delete(submission_id)
        return Response(status_code=204)

    except Exception as e:
        return handle_error(e)
