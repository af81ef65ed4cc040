"""
Unit tests for photo decoding and upload.

Run: pytest tests/unit/test_photo_storage.py -v
"""

import pytest

from exceptions import ExternalServiceError, ValidationError
from services.photo_storage import PhotoStorage, decode_photo


class TestDecodePhoto:

    def test_data_url(self):
        data, mime = decode_photo("data:image/png;base64,aGVsbG8=")

        assert data == b"hello"
        assert mime == "image/png"

    def test_bare_base64_defaults_to_jpeg(self):
        assert decode_photo("aGVsbG8=") == (b"hello", "image/jpeg")

    def test_invalid(self):
        with pytest.raises(ValidationError):
            decode_photo("not base64!")


class TestPhotoStorage:

    def test_upload_returns_public_url(self, mock_db, mock_supabase):
        url = PhotoStorage(bucket="photos").store("data:image/png;base64,aGVsbG8=", "delivery")

        bucket, path, options = mock_supabase.storage.uploads[0]
        assert bucket == "photos"
        assert path.startswith("delivery/") and path.endswith(".png")
        assert options == {"content-type": "image/png"}
        assert url == f"https://storage.test/photos/{path}"

    def test_existing_url_passes_through(self, mock_db, mock_supabase):
        url = PhotoStorage().store("https://cdn.example.at/foto.jpg", "delivery")

        assert url == "https://cdn.example.at/foto.jpg"
        assert mock_supabase.storage.uploads == []

    def test_upload_failure(self, mock_db, mock_supabase):
        mock_supabase.storage.fail_uploads = True

        with pytest.raises(ExternalServiceError):
            PhotoStorage().store("aGVsbG8=", "delivery")
