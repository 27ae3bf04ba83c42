"""
Seat snapshot poller.

Keeps a fresh seat snapshot while a guest is choosing a pod. The poll
task exists only while the flow is in POD_SELECTION: the FlowController
starts it on entry and stops it on every exit, so no fetch is in flight
once the guest has moved on.
"""

import asyncio
from collections.abc import Callable
from typing import Protocol

from shared.config.logging import get_logger
from shared.utils.exceptions import ExternalServiceError
from shared.utils.schemas import Seat

logger = get_logger(__name__)


class SeatFetcher(Protocol):
    async def fetch_seats(self, location_id: str) -> list[Seat]: ...


class SeatSnapshotPoller:
    """
    Periodic seat fetch with start/stop lifecycle.

    Fetch failures are logged and the last good snapshot is kept; the
    next tick tries again.
    """

    def __init__(
        self,
        seat_client: SeatFetcher,
        location_id: str,
        interval_seconds: float = 5.0,
        on_snapshot: Callable[[list[Seat]], None] | None = None,
    ):
        self._seats = seat_client
        self._location_id = location_id
        self._interval = interval_seconds
        self._on_snapshot = on_snapshot
        self._snapshot: list[Seat] = []
        self._fetch_count = 0
        self._running = False
        self._task: asyncio.Task | None = None

    @property
    def snapshot(self) -> list[Seat]:
        return self._snapshot

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def fetch_count(self) -> int:
        """Successful fetches since creation."""
        return self._fetch_count

    async def start(self) -> None:
        """Fetch once, then keep fetching every interval in the background."""
        if self._running:
            return

        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.debug("Seat poller started", interval=self._interval)
        await self._guarded_refresh()

    async def stop(self) -> None:
        self._running = False
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            logger.debug("Seat poller stopped", fetches=self._fetch_count)

    async def refresh(self) -> list[Seat]:
        """Fetch a snapshot now; on failure the previous one is returned."""
        try:
            seats = await self._seats.fetch_seats(self._location_id)
        except ExternalServiceError as e:
            logger.warning("Seat snapshot refresh failed", status_code=e.status_code, reason=e.reason)
            return self._snapshot

        self._snapshot = seats
        self._fetch_count += 1
        if self._on_snapshot is not None:
            self._on_snapshot(seats)
        return seats

    async def _run_loop(self) -> None:
        while self._running:
            await asyncio.sleep(self._interval)
            if not self._running:
                break
            await self._guarded_refresh()

    async def _guarded_refresh(self) -> None:
        try:
            await self.refresh()
        except Exception as e:
            # Unexpected failures must not kill polling for the rest of the selection
            logger.error("Seat poller error", error=str(e), exc_info=True)
