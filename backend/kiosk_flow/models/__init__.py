"""
Kiosk flow domain models.
"""

from kiosk_flow.models.session import (
    POD_AUTO_REQUESTED,
    POD_UNSET,
    GuestOrder,
    OrderTotals,
    PartySession,
    PodAssigned,
    PodAutoRequested,
    PodChoice,
    PodUnset,
)

__all__ = [
    "POD_AUTO_REQUESTED",
    "POD_UNSET",
    "GuestOrder",
    "OrderTotals",
    "PartySession",
    "PodAssigned",
    "PodAutoRequested",
    "PodChoice",
    "PodUnset",
]
