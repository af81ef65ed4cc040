"""
Vorverkauf (exchange) API routes.
"""

from fastapi import APIRouter, Query, Response
from fastapi.responses import JSONResponse
from typing import Optional
import structlog

from models.exchange import ExchangeCreate
from services.exchange_service import get_exchange_service
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
async def list_exchanges(
    gebietsleiter_id: Optional[str] = Query(None, alias="glId"),
    search: Optional[str] = Query(None)
):
    """Exchange entries, newest first, with names and lines."""
    try:
        entries = get_exchange_service().get_all(gebietsleiter_id=gebietsleiter_id, search=search)
        return [e.to_api() for e in entries]

    except Exception as e:
        return handle_error(e)


@router.post("", status_code=201)
async def create_exchange(data: ExchangeCreate):
    """Store an exchange. Returns {id, itemsCount}."""
    try:
        return get_exchange_service().create(data).to_api()

    except Exception as e:
        return handle_error(e)


@router.get("/stats/summary")
async def exchange_stats():
    """Totals and entries per reason."""
    try:
        return get_exchange_service().get_stats().to_api()

    except Exception as e:
        return handle_error(e)


@router.get("/{entry_id}")
async def get_exchange(entry_id: str):
    """
    Raises:
        404: Entry not found
    """
    try:
        return get_exchange_service().get_by_id(entry_id).to_api()

    except Exception as e:
        return handle_error(e)


@router.delete("/{entry_id}", status_code=204)
async def delete_exchange(entry_id: str):
    """
    Raises:
        404: Entry not found
    """
    try:
        get_exchange_service().delete(entry_id)
        return Response(status_code=204)

    except Exception as e:
        return handle_error(e)
