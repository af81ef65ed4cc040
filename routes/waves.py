"""
Wave (Welle) API routes.

Wave CRUD, batch pre-order submissions, GL progress and photos.
"""

from fastapi import APIRouter, Query, Response
from fastapi.responses import JSONResponse
from typing import Optional
import structlog

from pydantic import Field

from models.base import BaseSchema
from models.wave import (
    DeliveryPhotoUpload,
    SubmissionBatch,
    SubmissionUpdate,
    WaveCreate,
    WaveUpdate,
)
from services.wave_service import get_wave_service
from services.selection_service import goal_progress
from exceptions import AppError

logger = structlog.get_logger(__name__)

router = APIRouter()


class SubmissionPhotoUpload(BaseSchema):
    """Completion photo of a batch."""

    gebietsleiter_id: str = Field(..., min_length=1)
    market_id: str = Field(..., min_length=1)
    photo: str = Field(..., min_length=1, description="Data URL or URL")
    submission_ids: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)


class DeliveryPhotoItem(BaseSchema):
    submission_id: str = Field(..., min_length=1)
    photo: str = Field(..., min_length=1)


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


def wave_to_api(wave) -> dict:
    data = wave.to_api()
    data["goalProgress"] = goal_progress(wave)
    return data


# ===================
# WAVES
# ===================

@router.get("")
async def list_waves(
    status: Optional[str] = Query(None, pattern="^(upcoming|active|past)$"),
    market_id: Optional[str] = Query(None, alias="marketId")
):
    """List waves, newest first, with collections and progress."""
    try:
        waves = get_wave_service().get_all(status=status, market_id=market_id)
        return [wave_to_api(w) for w in waves]

    except Exception as e:
        return handle_error(e)


@router.post("", status_code=201)
async def create_wave(data: WaveCreate):
    """
    Create a wave with all collections.

    Returns {id, message}.
    """
    try:
        wave = get_wave_service().create(data)
        return {"id": wave.id, "message": "Welle erfolgreich erstellt"}

    except Exception as e:
        return handle_error(e)


@router.get("/pending-photos")
async def pending_delivery_photos(market_id: str = Query(..., alias="marketId")):
    """Submission lines at a market still waiting for a delivery photo."""
    try:
        pending = get_wave_service().get_pending_delivery_photos(market_id)
        return [p.to_api() for p in pending]

    except Exception as e:
        return handle_error(e)


@router.post("/delivery-photo")
async def upload_delivery_photo(data: DeliveryPhotoUpload):
    """Attach one delivery photo to several submission lines."""
    try:
        url, updated = get_wave_service().upload_delivery_photo(data.submission_ids, data.photo_url)
        return {"photoUrl": url, "updated": updated}

    except Exception as e:
        return handle_error(e)


@router.post("/delivery-photos")
async def upload_delivery_photos(items: list[DeliveryPhotoItem]):
    """Attach one photo per submission line."""
    try:
        updated = get_wave_service().upload_delivery_photos_per_item(
            [(item.submission_id, item.photo) for item in items]
        )
        return {"updated": updated}

    except Exception as e:
        return handle_error(e)


@router.get("/submissions")
async def list_submissions(
    gebietsleiter_id: str = Query(..., alias="glId"),
    wave_id: Optional[str] = Query(None, alias="waveId")
):
    """Submission lines of one GL, newest first."""
    try:
        submissions = get_wave_service().get_submissions_for_gl(gebietsleiter_id, wave_id)
        return [s.to_api() for s in submissions]

    except Exception as e:
        return handle_error(e)


@router.put("/submissions/{submission_id}")
async def update_submission(submission_id: str, data: SubmissionUpdate):
    """
    Correct a submission line.

    Raises:
        404: Submission not found
    """
    try:
        return get_wave_service().update_submission(submission_id, data).to_api()

    except Exception as e:
        return handle_error(e)


@router.delete("/submissions/{submission_id}", status_code=204)
async def delete_submission(submission_id: str):
    """
    Delete a submission line.

    Raises:
        404: Submission not found
    """
    try:
        get_wave_service().delete_submission(submission_id)
        return Response(status_code=204)

    except Exception as e:
        return handle_error(e)


@router.get("/{wave_id}")
async def get_wave(wave_id: str):
    """
    Get a wave with collections and progress.

    Raises:
        404: Wave not found
    """
    try:
        return wave_to_api(get_wave_service().get_by_id(wave_id))

    except Exception as e:
        return handle_error(e)


@router.put("/{wave_id}")
async def update_wave(wave_id: str, data: WaveUpdate):
    """
    Update a wave. Provided collections replace the stored ones.

    Raises:
        404: Wave not found
    """
    try:
        return wave_to_api(get_wave_service().update(wave_id, data))

    except Exception as e:
        return handle_error(e)


@router.delete("/{wave_id}", status_code=204)
async def delete_wave(wave_id: str):
    """
    Delete a wave.

    Raises:
        404: Wave not found
    """
    try:
        get_wave_service().delete(wave_id)
        return Response(status_code=204)

    except Exception as e:
        return handle_error(e)


# ===================
# PROGRESS
# ===================

@router.post("/{wave_id}/progress/batch", status_code=201)
async def submit_batch(wave_id: str, batch: SubmissionBatch):
    """
    Save a pre-order batch. Lines with quantity 0 are dropped.

    Raises:
        422: No line with quantity > 0
    """
    try:
        return get_wave_service().submit_batch(wave_id, batch).to_api()

    except Exception as e:
        return handle_error(e)


@router.get("/{wave_id}/all-progress")
async def all_progress(wave_id: str):
    """
    Progress of every GL on a wave with GL, market and item names.

    Raises:
        404: Wave not found
    """
    try:
        return [p.to_api() for p in get_wave_service().get_all_progress(wave_id)]

    except Exception as e:
        return handle_error(e)


@router.get("/{wave_id}/progress/{gebietsleiter_id}")
async def gl_progress(wave_id: str, gebietsleiter_id: str):
    """Cumulative progress rows of one GL."""
    try:
        progress = get_wave_service().get_gl_progress(wave_id, gebietsleiter_id)
        return [p.to_api() for p in progress]

    except Exception as e:
        return handle_error(e)


@router.post("/{wave_id}/photos", status_code=201)
async def upload_submission_photo(wave_id: str, data: SubmissionPhotoUpload):
    """Store the completion photo of a batch."""
    try:
        url = get_wave_service().upload_submission_photo(
            wave_id,
            data.gebietsleiter_id,
            data.market_id,
            data.photo,
            submission_ids=data.submission_ids,
            tags=data.tags
        )
        return {"photoUrl": url}

    except Exception as e:
        return handle_error(e)
