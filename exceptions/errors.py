"""
Custom exception classes for the application.

User-facing messages are German, matching the field app.
"""

from typing import Optional, Any
from datetime import datetime


class AppError(Exception):
    """
    Base exception for all application errors.

    All custom exceptions inherit from this.

    Attributes:
        code: Error code (e.g., "MARKET_NOT_FOUND")
        message: Human-readable message
        status_code: HTTP status code
        details: Additional context
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.utcnow().isoformat()
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to API response format."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp
            }
        }


class NotFoundError(AppError):
    """Resource not found (404)."""

    def __init__(
        self,
        resource: str,
        identifier: str,
        code: Optional[str] = None
    ):
        super().__init__(
            code=code or f"{resource.upper()}_NOT_FOUND",
            message=f"{resource} not found",
            status_code=404,
            details={"id": identifier}
        )


class ValidationError(AppError):
    """Validation failed (422)."""

    def __init__(
        self,
        message: str,
        code: str = "VALIDATION_ERROR",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=422,
            details=details
        )


class ConflictError(AppError):
    """Conflict with existing resource (409)."""

    def __init__(
        self,
        message: str,
        code: str = "CONFLICT",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=409,
            details=details
        )


class ExternalServiceError(AppError):
    """External service failure (503)."""

    def __init__(
        self,
        service: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code=f"{service.upper()}_ERROR",
            message=message,
            status_code=503,
            details={"service": service, **(details or {})}
        )


class DatabaseError(AppError):
    """Database operation failed (500)."""

    def __init__(
        self,
        operation: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="DATABASE_ERROR",
            message=f"Database {operation} failed: {message}",
            status_code=500,
            details={"operation": operation, **(details or {})}
        )


# ===================
# NOT FOUND
# ===================

class MarketNotFoundError(NotFoundError):
    """Market not found."""

    def __init__(self, market_id: str):
        super().__init__(
            resource="Market",
            identifier=market_id,
            code="MARKET_NOT_FOUND"
        )


class ProductNotFoundError(NotFoundError):
    """Product not found."""

    def __init__(self, product_id: str):
        super().__init__(
            resource="Product",
            identifier=product_id,
            code="PRODUCT_NOT_FOUND"
        )


class WaveNotFoundError(NotFoundError):
    """Wave (Welle) not found."""

    def __init__(self, wave_id: str):
        super().__init__(
            resource="Welle",
            identifier=wave_id,
            code="WAVE_NOT_FOUND"
        )


class SubmissionNotFoundError(NotFoundError):
    """Wave submission row not found."""

    def __init__(self, submission_id: str):
        super().__init__(
            resource="Submission",
            identifier=submission_id,
            code="SUBMISSION_NOT_FOUND"
        )


class ExchangeNotFoundError(NotFoundError):
    """Vorverkauf entry not found."""

    def __init__(self, entry_id: str):
        super().__init__(
            resource="Vorverkauf entry",
            identifier=entry_id,
            code="EXCHANGE_NOT_FOUND"
        )


class IncentiveNotFoundError(NotFoundError):
    """NARA submission not found."""

    def __init__(self, submission_id: str):
        super().__init__(
            resource="NARA submission",
            identifier=submission_id,
            code="INCENTIVE_NOT_FOUND"
        )


# ===================
# FLOW ERRORS
# ===================

class InvalidTransitionError(ValidationError):
    """A flow action is not allowed in the current step."""

    def __init__(self, current_state: str, action: str):
        super().__init__(
            code="INVALID_TRANSITION",
            message=f"Cannot {action} from {current_state}",
            details={
                "current_state": current_state,
                "action": action
            }
        )


class WizardGuardError(ValidationError):
    """A step cannot be left because its input is incomplete."""

    def __init__(self, state: str, reason: str):
        super().__init__(
            code="WIZARD_GUARD_FAILED",
            message=reason,
            details={"state": state}
        )


class SubmissionInProgressError(ConflictError):
    """A submit was triggered while the previous one is still running."""

    def __init__(self):
        super().__init__(
            code="SUBMISSION_IN_PROGRESS",
            message="Die Einreichung läuft bereits."
        )


class SubmissionFailedError(AppError):
    """Saving the batch failed; entered data is kept."""

    USER_MESSAGE = "Fehler beim Speichern. Bitte versuche es erneut."

    def __init__(self, reason: str):
        super().__init__(
            code="SUBMISSION_FAILED",
            message=self.USER_MESSAGE,
            status_code=502,
            details={"reason": reason}
        )


# ===================
# IMPORT ERRORS
# ===================

class ImportParseError(ValidationError):
    """Import file could not be read or has no usable rows."""

    def __init__(
        self,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="IMPORT_PARSE_ERROR",
            message=message,
            details=details
        )


class ImportFileError(ValidationError):
    """Import file rejected before parsing (type or size)."""

    def __init__(self, message: str, filename: Optional[str] = None):
        super().__init__(
            code="IMPORT_FILE_INVALID",
            message=message,
            details={"filename": filename} if filename else None
        )
