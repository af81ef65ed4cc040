"""
Product API routes.

Catalog CRUD plus file import.
"""

from fastapi import APIRouter, File, Query, Response, UploadFile
from fastapi.responses import JSONResponse
from typing import Optional, Union
import structlog

from models.base import PaginatedResponse, PaginationParams
from models.product import Department, ProductCreate, ProductType, ProductUpdate
from services.product_service import get_product_service
from parsers.product_import_parser import parse_product_file
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
    # Unexpected error
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
async def list_products(
    department: Optional[Department] = Query(None, description="pets or food"),
    product_type: Optional[ProductType] = Query(None, alias="productType"),
    search: Optional[str] = Query(None, description="Search name, SKU, brand, article number"),
    include_inactive: bool = Query(False, alias="includeInactive"),
    page: Optional[int] = Query(None, ge=1, description="Paginate when set"),
    page_size: int = Query(50, ge=1, le=500, alias="pageSize")
):
    """
    List products sorted by name.

    Without page the whole list is returned.
    """
    try:
        products = get_product_service().get_all(
            department=department,
            product_type=product_type,
            search=search,
            active_only=not include_inactive
        )
        data = [p.to_api() for p in products]

        if page is None:
            return data

        params = PaginationParams(page=page, page_size=page_size)
        return PaginatedResponse.create(
            data=data[params.offset:params.offset + params.limit],
            total=len(data),
            page=page,
            page_size=page_size
        ).model_dump()

    except Exception as e:
        return handle_error(e)


@router.post("", status_code=201)
async def create_products(data: Union[ProductCreate, list[ProductCreate]]):
    """
    Create one product or a list of products.

    Raises:
        422: Validation error
    """
    try:
        service = get_product_service()
        if isinstance(data, list):
            return [p.to_api() for p in service.create_many(data)]
        return service.create(data).to_api()

    except Exception as e:
        return handle_error(e)


@router.post("/import/file", status_code=201)
async def import_product_file(
    file: UploadFile = File(...),
    department: Department = Query(..., description="Department for every row")
):
    """
    Parse a CSV/XLSX/XLS product list and create the parsed products.

    Raises:
        422: Wrong file type, too large, or unreadable
    """
    try:
        content = await file.read()
        parsed = parse_product_file(content, file.filename, department)
        created = get_product_service().create_many(parsed.products)

        return {
            "created": len(created),
            "products": [p.to_api() for p in created],
            "skipped": [{"row": e.row, "error": e.error} for e in parsed.errors],
        }

    except Exception as e:
        return handle_error(e)


@router.get("/{product_id}")
async def get_product(product_id: str):
    """
    Get a single product by ID.

    Raises:
        404: Product not found
    """
    try:
        return get_product_service().get_by_id(product_id).to_api()

    except Exception as e:
        return handle_error(e)


@router.put("/{product_id}")
async def update_product(product_id: str, data: ProductUpdate):
    """
    Update a product. Only provided fields change.

    Raises:
        404: Product not found
    """
    try:
        return get_product_service().update(product_id, data).to_api()

    except Exception as e:
        return handle_error(e)


@router.delete("/{product_id}", status_code=204)
async def delete_product(product_id: str):
    """
    Delete a product (soft delete).

    Raises:
        404: Product not found
    """
    try:
        get_product_service().delete(product_id)
        return Response(status_code=204)

    except Exception as e:
        return handle_error(e)
