"""
Configuration module: Settings, logging, constants.
"""

from shared.config.settings import settings, get_settings
from shared.config.logging import get_logger, setup_logging, mask_guest_name
from shared.config.constants import (
    PaymentType,
    FlowView,
    SeatStatus,
    PodType,
    SelectionMode,
    Limits,
)

__all__ = [
    # settings
    "settings",
    "get_settings",
    # logging
    "get_logger",
    "setup_logging",
    "mask_guest_name",
    # constants
    "PaymentType",
    "FlowView",
    "SeatStatus",
    "PodType",
    "SelectionMode",
    "Limits",
]
