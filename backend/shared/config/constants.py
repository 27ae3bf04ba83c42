"""
Centralized constants for the kiosk ordering flow.
Avoid magic strings for statuses, modes and views.

Usage:
    from shared.config.constants import SeatStatus, PaymentType, FlowView

    if seat.status == SeatStatus.AVAILABLE:
        ...

    if session.payment_type == PaymentType.SINGLE:
        ...
"""

from enum import Enum
from typing import Final


# =============================================================================
# Party / Payment
# =============================================================================


class PaymentType(str, Enum):
    """How a party settles its sub-orders."""

    SINGLE = "SINGLE"  # One combined check for every guest
    SEPARATE = "SEPARATE"  # Each guest pays their own order


class FlowView(str, Enum):
    """Views of the kiosk ordering state machine."""

    NAME = "NAME"
    MENU = "MENU"
    REVIEW = "REVIEW"
    POD_SELECTION = "POD_SELECTION"
    PASS = "PASS"
    PAYMENT = "PAYMENT"
    COMPLETE = "COMPLETE"


# =============================================================================
# Seats / Pods
# =============================================================================


class SeatStatus(str, Enum):
    """Seat status as stored by the seat registry."""

    AVAILABLE = "AVAILABLE"
    OCCUPIED = "OCCUPIED"
    RESERVED = "RESERVED"
    CLEANING = "CLEANING"


class PodType(str, Enum):
    """Pod layout of a seat."""

    SINGLE = "SINGLE"
    DUAL = "DUAL"


class PodSelectionMethod:
    """How a seat ended up on an order."""

    CUSTOMER_SELECTED: Final[str] = "CUSTOMER_SELECTED"
    AUTO: Final[str] = "AUTO"


# =============================================================================
# Menu
# =============================================================================


class SelectionMode(str, Enum):
    """How a menu section is chosen from."""

    SINGLE = "SINGLE"  # Radio: one item per section, base price
    MULTIPLE = "MULTIPLE"  # Quantities per item, tiered price
    SLIDER = "SLIDER"  # Qualitative level, never priced


# =============================================================================
# Orders
# =============================================================================


class OrderPaymentStatus:
    """Payment status written back to the order."""

    PENDING: Final[str] = "PENDING"
    PAID: Final[str] = "PAID"


class FulfillmentType:
    """Order fulfillment types understood by the backend."""

    WALK_IN: Final[str] = "WALK_IN"


class ChargeStatus:
    """Charge statuses reported by the payment gateway."""

    SUCCEEDED: Final[str] = "succeeded"
    REQUIRES_ACTION: Final[str] = "requires_action"
    DECLINED: Final[str] = "declined"
    CANCELED: Final[str] = "canceled"


# =============================================================================
# Validation Constants
# =============================================================================


class Limits:
    """Validation limits."""

    MIN_PARTY_SIZE: Final[int] = 1
    MAX_PARTY_SIZE: Final[int] = 8

    MAX_GUEST_NAME_LENGTH: Final[int] = 50

    MIN_QUANTITY: Final[int] = 0
    MAX_QUANTITY: Final[int] = 99

    # A dual pod seats exactly two guests sharing one check
    MIN_PARTY_FOR_DUAL_POD: Final[int] = 2
