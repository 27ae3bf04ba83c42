"""
Infrastructure module: kiosk session correlation for logs.
"""

from shared.infrastructure.correlation import (
    KioskSessionFilter,
    bind_kiosk_session_id,
    get_kiosk_session_id,
    kiosk_session_scope,
    new_kiosk_session_id,
)

__all__ = [
    "KioskSessionFilter",
    "bind_kiosk_session_id",
    "get_kiosk_session_id",
    "kiosk_session_scope",
    "new_kiosk_session_id",
]
