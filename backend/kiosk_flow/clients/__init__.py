"""
HTTP clients for the kiosk's external collaborators.
"""

from kiosk_flow.clients.base import BackendClient
from kiosk_flow.clients.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitBreakerError,
    CircuitState,
)
from kiosk_flow.clients.menu_catalog import MenuCatalogClient
from kiosk_flow.clients.orders import OrderClient
from kiosk_flow.clients.payment_gateway import PaymentGatewayClient
from kiosk_flow.clients.seat_registry import SeatRegistryClient

__all__ = [
    "BackendClient",
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitBreakerError",
    "CircuitState",
    "MenuCatalogClient",
    "OrderClient",
    "PaymentGatewayClient",
    "SeatRegistryClient",
]
