"""
Seat registry client.

Reads seat snapshots and commits reservations. A reservation is a
conditional write: the registry only flips seats AVAILABLE -> RESERVED if
every requested seat is still AVAILABLE, and answers 409 otherwise.
"""

from datetime import datetime

import httpx

from kiosk_flow.clients.base import BackendClient
from shared.config.logging import get_logger
from shared.config.settings import Settings
from shared.utils.exceptions import ConcurrencyError, ExternalServiceError
from shared.utils.schemas import Seat, SeatReservationRequest

logger = get_logger(__name__)


class SeatRegistryClient(BackendClient):
    service_name = "seat-registry"

    @classmethod
    def from_settings(cls, settings: Settings, transport: httpx.AsyncBaseTransport | None = None):
        return cls(settings.api_base_url, timeout=settings.http_timeout_seconds, transport=transport)

    async def fetch_seats(self, location_id: str) -> list[Seat]:
        response = await self._request("GET", f"/locations/{location_id}/seats")
        try:
            payload = response.json()
            if isinstance(payload, dict):
                payload = payload.get("seats", [])
            return [Seat.model_validate(item) for item in payload]
        except (TypeError, ValueError) as e:
            raise ExternalServiceError(self.service_name, reason="invalid seat payload") from e

    async def reserve_seats(
        self,
        location_id: str,
        seat_ids: list[str],
        order_id: str,
        expires_at: datetime,
    ) -> None:
        """
        Reserve seats for an order if they are all still AVAILABLE.

        Raises:
            ConcurrencyError: another party claimed a seat first.
            ExternalServiceError: registry unreachable or failed.
        """
        body = SeatReservationRequest(seat_ids=seat_ids, order_id=order_id, expires_at=expires_at)
        response = await self._request(
            "POST",
            f"/locations/{location_id}/seats/reserve",
            json=body.to_wire(),
            allowed_statuses=(409,),
        )
        if response.status_code == 409:
            raise ConcurrencyError(seat_ids, order_id=order_id)

        logger.info("Seats reserved", seat_ids=seat_ids, order_id=order_id)
