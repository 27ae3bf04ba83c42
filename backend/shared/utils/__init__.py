"""
Utilities module: Exceptions, wire schemas.
"""

from shared.utils.exceptions import (
    KioskError,
    ValidationError,
    SubmissionError,
    AllocationError,
    ConcurrencyError,
    ExternalServiceError,
)

__all__ = [
    "KioskError",
    "ValidationError",
    "SubmissionError",
    "AllocationError",
    "ConcurrencyError",
    "ExternalServiceError",
]
