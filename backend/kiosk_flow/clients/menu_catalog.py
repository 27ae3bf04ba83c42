"""
Menu catalog client (read-only).
"""

import httpx

from kiosk_flow.clients.base import BackendClient
from shared.config.logging import get_logger
from shared.config.settings import Settings
from shared.utils.exceptions import ExternalServiceError
from shared.utils.schemas import MenuResponse, MenuStep

logger = get_logger(__name__)


class MenuCatalogClient(BackendClient):
    """Fetches the ordered menu steps for the kiosk's tenant."""

    service_name = "menu-catalog"

    @classmethod
    def from_settings(cls, settings: Settings, transport: httpx.AsyncBaseTransport | None = None):
        return cls(
            settings.api_base_url,
            timeout=settings.http_timeout_seconds,
            headers={"x-tenant-slug": settings.tenant_slug},
            transport=transport,
        )

    async def fetch_menu(self, locale: str = "en") -> list[MenuStep]:
        response = await self._request("GET", "/menu/steps", params={"locale": locale})
        try:
            payload = response.json()
            # Older backends return the bare list of steps
            if isinstance(payload, list):
                payload = {"steps": payload}
            menu = MenuResponse.model_validate(payload)
        except ValueError as e:
            raise ExternalServiceError(self.service_name, reason="invalid menu payload") from e

        logger.info("Menu loaded", locale=locale, steps=len(menu.steps))
        return menu.steps
