"""
Market API routes.

Admin CRUD, bulk and file import, and visit recording.
"""

from fastapi import APIRouter, File, Query, Response, UploadFile
from fastapi.responses import JSONResponse
from typing import Optional
import structlog

from models.market import MarketCreate, MarketUpdate
from services.market_service import get_market_service
from parsers.market_import_parser import parse_market_file
from exceptions import AppError

logger = structlog.get_logger(__name__)

router = APIRouter()


# ===================
# EXCEPTION HANDLER
# ===================

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


# ===================
# ROUTES
# ===================

@router.get("")
async def list_markets(
    gebietsleiter_id: Optional[str] = Query(None, alias="glId", description="Only markets of this GL"),
    chain: Optional[str] = Query(None, description="Filter by chain"),
    active_only: bool = Query(False, alias="activeOnly"),
    search: Optional[str] = Query(None, description="Search name, chain, address, city")
):
    """List markets sorted by name."""
    try:
        markets = get_market_service().get_all(
            gebietsleiter_id=gebietsleiter_id,
            chain=chain,
            active_only=active_only,
            search=search
        )
        return [m.to_api() for m in markets]

    except Exception as e:
        return handle_error(e)


@router.post("", status_code=201)
async def create_market(data: MarketCreate):
    """
    Create a market.

    Raises:
        422: Validation error
    """
    try:
        return get_market_service().create(data).to_api()

    except Exception as e:
        return handle_error(e)


@router.options("")
async def market_options():
    """CORS preflight without the browser headers."""
    return Response(status_code=200)


@router.api_route("", methods=["PUT", "PATCH", "DELETE"], include_in_schema=False)
async def markets_method_not_allowed():
    return JSONResponse(status_code=405, content={"error": "Method not allowed"})


# ===================
# IMPORT
# ===================

@router.post("/import")
async def import_markets(markets: list[MarketCreate]):
    """Bulk upsert markets on id. Returns {success, failed}."""
    try:
        return get_market_service().import_markets(markets).to_api()

    except Exception as e:
        return handle_error(e)


@router.post("/import/file")
async def import_market_file(file: UploadFile = File(...)):
    """
    Parse a CSV/XLSX/XLS market list and upsert the parsed markets.

    Raises:
        422: Wrong file type, too large, or unreadable
    """
    try:
        content = await file.read()
        parsed = parse_market_file(content, file.filename)
        outcome = get_market_service().import_markets(parsed.markets)

        return {
            **outcome.to_api(),
            "skipped": [{"row": e.row, "error": e.error} for e in parsed.errors],
        }

    except Exception as e:
        return handle_error(e)


# ===================
# SINGLE MARKET
# ===================

@router.get("/{market_id}")
async def get_market(market_id: str):
    """
    Get a single market.

    Raises:
        404: Market not found
    """
    try:
        return get_market_service().get_by_id(market_id).to_api()

    except Exception as e:
        return handle_error(e)


@router.put("/{market_id}")
async def update_market(market_id: str, data: MarketUpdate):
    """
    Update a market. Only provided fields change.

    Raises:
        404: Market not found
    """
    try:
        return get_market_service().update(market_id, data).to_api()

    except Exception as e:
        return handle_error(e)


@router.delete("/{market_id}", status_code=204)
async def delete_market(market_id: str):
    """
    Delete a market.

    Raises:
        404: Market not found
    """
    try:
        get_market_service().delete(market_id)
        return Response(status_code=204)

    except Exception as e:
        return handle_error(e)


@router.post("/{market_id}/visit")
async def record_visit(
    market_id: str,
    gebietsleiter_id: Optional[str] = Query(None, alias="glId")
):
    """
    Count a visit (at most once per day).

    Raises:
        404: Market not found
    """
    try:
        return get_market_service().record_visit(market_id, gebietsleiter_id).to_api()

    except Exception as e:
        return handle_error(e)
