"""
Kiosk session correlation for logging.

Every party that walks up to the kiosk gets a session id. It is held in a
ContextVar so that all log records emitted while that party's flow runs
(including from background seat polling tasks, which copy the context
when created) carry the same id.
"""

import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator

from shared.config.logging import get_logger

logger = get_logger(__name__)

# Context variable for the active kiosk session id
kiosk_session_id_var: ContextVar[str] = ContextVar("kiosk_session_id", default="")


def get_kiosk_session_id() -> str:
    """Get the active kiosk session id ("" outside a session)."""
    return kiosk_session_id_var.get()


def new_kiosk_session_id() -> str:
    """Generate a fresh kiosk session id."""
    return str(uuid.uuid4())


@contextmanager
def kiosk_session_scope(session_id: str | None = None) -> Iterator[str]:
    """
    Bind a kiosk session id to the current context.

    Usage:
        with kiosk_session_scope(controller.session.session_id):
            await controller.submit_order()
    """
    session_id = session_id or new_kiosk_session_id()
    token = kiosk_session_id_var.set(session_id)
    try:
        yield session_id
    finally:
        kiosk_session_id_var.reset(token)


def bind_kiosk_session_id(session_id: str) -> None:
    """
    Bind a kiosk session id for the rest of the current context.

    Used by the flow controller when a session starts; the kiosk runs one
    party at a time, so the binding lives until the next session replaces it.
    """
    kiosk_session_id_var.set(session_id)


class KioskSessionFilter:
    """
    Logging filter that adds kiosk_session_id to log records.

    Usage:
        import logging
        handler = logging.StreamHandler()
        handler.addFilter(KioskSessionFilter())
    """

    def filter(self, record) -> bool:
        record.kiosk_session_id = kiosk_session_id_var.get() or "-"
        return True
