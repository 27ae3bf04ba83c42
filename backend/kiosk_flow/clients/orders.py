"""
Order API client.
"""

import httpx

from kiosk_flow.clients.base import BackendClient
from shared.config.settings import Settings
from shared.utils.exceptions import ExternalServiceError
from shared.utils.schemas import CreateOrderRequest, CreateOrderResponse, LineItem, OrderUpdate


class OrderClient(BackendClient):
    """Creates kiosk walk-in orders and writes payment and pod results back."""

    service_name = "orders"

    @classmethod
    def from_settings(cls, settings: Settings, transport: httpx.AsyncBaseTransport | None = None):
        return cls(settings.api_base_url, timeout=settings.http_timeout_seconds, transport=transport)

    async def create_order(
        self,
        location_id: str,
        guest_name: str,
        line_items: list[LineItem],
    ) -> CreateOrderResponse:
        body = CreateOrderRequest(location_id=location_id, guest_name=guest_name, items=line_items)
        response = await self._request("POST", "/orders", json=body.to_wire())

        try:
            payload = response.json()
            # Some deployments wrap the created order in {"order": {...}}
            if isinstance(payload, dict) and isinstance(payload.get("order"), dict):
                payload = payload["order"]
            return CreateOrderResponse.model_validate(payload)
        except ValueError as e:
            raise ExternalServiceError(self.service_name, reason="invalid order payload") from e

    async def update_order(self, order_id: str, update: OrderUpdate) -> None:
        await self._request("PATCH", f"/orders/{order_id}", json=update.to_wire())
