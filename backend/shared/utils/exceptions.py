"""
Centralized kiosk flow exceptions for consistent error handling.

Every exception logs itself on construction with structured context, so
callers only need to catch and surface them to the guest.

Usage:
    from shared.utils.exceptions import ValidationError, AllocationError

    raise ValidationError("Party size must be between 1 and 8", party_size=9)
    raise AllocationError(AllocationReason.NONE_AVAILABLE)
"""

from typing import Any

from shared.config.logging import get_logger

logger = get_logger(__name__)


class KioskError(Exception):
    """
    Base exception with automatic logging.

    All kiosk flow exceptions inherit from this class to ensure consistent
    logging and a guest-facing `detail` message.
    """

    retryable: bool = False

    def __init__(
        self,
        detail: str,
        log_level: str = "warning",
        **log_context: Any,
    ):
        self.detail = detail
        self.context = log_context

        log_fn = getattr(logger, log_level, logger.warning)
        log_fn(detail, error=type(self).__name__, **log_context)

        super().__init__(detail)


# =============================================================================
# Validation Errors (blocked locally, no network call issued)
# =============================================================================


class ValidationError(KioskError):
    """
    Input or rule violation detected before any network call.

    Usage:
        raise ValidationError("Guest name is required")
    """

    def __init__(self, detail: str, **log_context: Any):
        super().__init__(detail, log_level="warning", **log_context)


class InvalidPartyError(ValidationError):
    """Party configuration is not valid."""

    def __init__(self, party_size: int, max_party_size: int, **log_context: Any):
        detail = f"Party size must be between 1 and {max_party_size}, got {party_size}"
        super().__init__(detail, party_size=party_size, **log_context)


class MissingSelectionError(ValidationError):
    """A required single-choice section has no selection."""

    def __init__(self, section_id: str, section_name: str | None = None, **log_context: Any):
        self.section_id = section_id
        label = section_name or section_id
        super().__init__(f"Please choose an option for {label}", section_id=section_id, **log_context)


class InvalidTransitionError(ValidationError):
    """Event is not valid in the current view."""

    def __init__(self, action: str, current_view: str, **log_context: Any):
        self.action = action
        self.current_view = current_view
        detail = f"Cannot {action} while in view '{current_view}'"
        super().__init__(detail, action=action, current_view=current_view, **log_context)


# =============================================================================
# Submission Errors (network call failed, state unchanged, retry allowed)
# =============================================================================


class SubmissionError(KioskError):
    """
    Order creation, charge or order update failed.

    The flow stays in its current view; retrying re-issues only the
    failed action.
    """

    retryable = True

    def __init__(self, detail: str, **log_context: Any):
        super().__init__(detail, log_level="error", **log_context)


class PaymentDeclinedError(SubmissionError):
    """The payment gateway did not approve the charge."""

    def __init__(self, reference: str, status: str, **log_context: Any):
        self.reference = reference
        self.status = status
        super().__init__(
            f"Payment was not approved ({status}). Please try again.",
            reference=reference,
            status=status,
            **log_context,
        )


# =============================================================================
# Allocation Errors (seat could not be chosen, selection not applied)
# =============================================================================


class AllocationReason:
    """Why a seat could not be allocated."""

    NONE_AVAILABLE = "NONE_AVAILABLE"
    DUAL_NOT_ALLOWED = "DUAL_NOT_ALLOWED"
    SEAT_UNAVAILABLE = "SEAT_UNAVAILABLE"
    HIDDEN_PARTNER = "HIDDEN_PARTNER"
    ALREADY_CLAIMED = "ALREADY_CLAIMED"
    UNKNOWN_SEAT = "UNKNOWN_SEAT"


_ALLOCATION_MESSAGES = {
    AllocationReason.NONE_AVAILABLE: "No pods are available right now. Please wait a moment and try again.",
    AllocationReason.DUAL_NOT_ALLOWED: (
        "Dual pods are for two guests sharing one check. "
        "Choose a single pod or order as a party paying together."
    ),
    AllocationReason.SEAT_UNAVAILABLE: "That pod is no longer available. Please choose another.",
    AllocationReason.HIDDEN_PARTNER: "That seat is part of a dual pod. Select the dual pod instead.",
    AllocationReason.ALREADY_CLAIMED: "That pod is already taken by someone in your party.",
    AllocationReason.UNKNOWN_SEAT: "That pod could not be found. Please choose another.",
}


class AllocationError(KioskError):
    """
    No seat could be allocated, or the requested seat is not eligible.

    The attempted selection is never applied.
    """

    def __init__(self, reason: str, seat_id: str | None = None, **log_context: Any):
        self.reason = reason
        self.seat_id = seat_id
        detail = _ALLOCATION_MESSAGES.get(reason, "That pod cannot be selected.")
        super().__init__(detail, log_level="warning", reason=reason, seat_id=seat_id, **log_context)


# =============================================================================
# Concurrency Errors (seat claimed elsewhere between snapshot and commit)
# =============================================================================


class ConcurrencyError(KioskError):
    """
    A conditional seat reservation was rejected.

    The guest is routed back to re-select from a refreshed seat list.
    """

    def __init__(self, seat_ids: list[str], guest_index: int | None = None, **log_context: Any):
        self.seat_ids = list(seat_ids)
        # Index of the guest whose reservation failed, filled in by the payer
        self.guest_index = guest_index
        super().__init__(
            "Someone else just took that pod. Please choose another.",
            log_level="warning",
            seat_ids=self.seat_ids,
            **log_context,
        )


# =============================================================================
# External Service Errors
# =============================================================================


class ExternalServiceError(KioskError):
    """A collaborator (backend API, payment gateway) failed or was unreachable."""

    retryable = True

    def __init__(
        self,
        service: str,
        status_code: int | None = None,
        reason: str | None = None,
        **log_context: Any,
    ):
        self.service = service
        self.status_code = status_code
        self.reason = reason
        if status_code is not None:
            detail = f"Error communicating with {service} (HTTP {status_code})"
        else:
            detail = f"Service {service} temporarily unavailable"
        super().__init__(
            detail,
            log_level="error",
            service=service,
            status_code=status_code,
            reason=reason,
            **log_context,
        )
