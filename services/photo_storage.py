"""
Photo upload to Supabase Storage.

The field app sends photos as base64 data URLs. They are stored in the
photo bucket and referenced by their public URL.
"""

import base64
import binascii
import re
import uuid
from typing import Optional
import structlog

from config import get_supabase_client, settings
from exceptions import ExternalServiceError, ValidationError

logger = structlog.get_logger(__name__)

DATA_URL_PATTERN = re.compile(r"^data:(?P<mime>image/[\w.+-]+);base64,(?P<data>.+)$", re.DOTALL)

EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/heic": "heic",
}


def decode_photo(photo: str) -> tuple[bytes, str]:
    """
    Decode a data URL or bare base64 string.

    Args:
        photo: "data:image/jpeg;base64,..." or plain base64

    Returns:
        Tuple of (raw bytes, mime type)

    Raises:
        ValidationError: If the payload is not valid base64
    """
    mime = "image/jpeg"
    payload = photo
    match = DATA_URL_PATTERN.match(photo)
    if match:
        mime = match.group("mime")
        payload = match.group("data")

    try:
        return base64.b64decode(payload, validate=True), mime
    except (binascii.Error, ValueError):
        raise ValidationError(
            "Ungültiges Foto.",
            code="INVALID_PHOTO"
        )


class PhotoStorage:
    """Stores photos and returns their public URLs."""

    def __init__(self, bucket: Optional[str] = None):
        self.db = get_supabase_client()
        self.bucket = bucket or settings.supabase_storage_bucket

    def store(self, photo: str, prefix: str) -> str:
        """
        Store a photo unless it is already a URL.

        Args:
            photo: Data URL, bare base64, or an http(s) URL
            prefix: Folder inside the bucket, e.g. "submissions/<welle_id>"

        Returns:
            Public URL of the stored photo

        Raises:
            ValidationError: If the photo cannot be decoded
            ExternalServiceError: If the upload fails
        """
        if photo.startswith(("http://", "https://")):
            return photo

        data, mime = decode_photo(photo)
        path = f"{prefix}/{uuid.uuid4()}.{EXTENSIONS.get(mime, 'jpg')}"

        logger.debug("uploading_photo", path=path, size_bytes=len(data))

        try:
            bucket = self.db.storage.from_(self.bucket)
            bucket.upload(path, data, file_options={"content-type": mime})
            url = bucket.get_public_url(path)

        except Exception as e:
            logger.error("photo_upload_failed", path=path, error=str(e))
            raise ExternalServiceError("storage", f"Foto-Upload fehlgeschlagen: {e}")

        logger.info("photo_uploaded", path=path)
        return url
