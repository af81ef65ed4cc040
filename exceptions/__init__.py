"""
Custom exceptions module.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    NotFoundError,
    ValidationError,
    ConflictError,
    ExternalServiceError,
    DatabaseError,

    # Not found
    MarketNotFoundError,
    ProductNotFoundError,
    WaveNotFoundError,
    SubmissionNotFoundError,
    ExchangeNotFoundError,
    IncentiveNotFoundError,

    # Flows
    InvalidTransitionError,
    WizardGuardError,
    SubmissionInProgressError,
    SubmissionFailedError,

    # Imports
    ImportParseError,
    ImportFileError,
)

__all__ = [
    # Base
    "AppError",
    "NotFoundError",
    "ValidationError",
    "ConflictError",
    "ExternalServiceError",
    "DatabaseError",

    # Not found
    "MarketNotFoundError",
    "ProductNotFoundError",
    "WaveNotFoundError",
    "SubmissionNotFoundError",
    "ExchangeNotFoundError",
    "IncentiveNotFoundError",

    # Flows
    "InvalidTransitionError",
    "WizardGuardError",
    "SubmissionInProgressError",
    "SubmissionFailedError",

    # Imports
    "ImportParseError",
    "ImportFileError",
]
