"""
Payment gateway client.

The gateway is an opaque charge-and-confirm call: the kiosk asks for an
amount, the card reader collects it, the gateway answers with the final
status. Transport failures count against a circuit breaker; declines do
not, a declined card says nothing about the gateway's health.
"""

import httpx

from kiosk_flow.clients.base import BackendClient
from kiosk_flow.clients.circuit_breaker import CircuitBreaker, CircuitBreakerConfig
from shared.config.constants import ChargeStatus
from shared.config.logging import get_logger
from shared.config.settings import Settings
from shared.utils.exceptions import ExternalServiceError, PaymentDeclinedError
from shared.utils.schemas import ChargeRequest, ChargeResult

logger = get_logger(__name__)


class PaymentGatewayClient(BackendClient):
    service_name = "payment-gateway"

    def __init__(
        self,
        base_url: str,
        timeout: float = 60.0,
        breaker: CircuitBreaker | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        super().__init__(base_url, timeout=timeout, transport=transport)
        self.breaker = breaker or CircuitBreaker(CircuitBreakerConfig(name="payments"))

    @classmethod
    def from_settings(cls, settings: Settings, transport: httpx.AsyncBaseTransport | None = None):
        breaker = CircuitBreaker(
            CircuitBreakerConfig(
                name="payments",
                failure_threshold=settings.payment_breaker_failure_threshold,
                timeout_seconds=settings.payment_breaker_timeout_seconds,
            )
        )
        return cls(
            settings.payments_base_url,
            timeout=settings.payment_timeout_seconds,
            breaker=breaker,
            transport=transport,
        )

    async def charge(
        self,
        amount_cents: int,
        reference: str,
        idempotency_key: str,
        metadata: dict[str, str] | None = None,
    ) -> ChargeResult:
        """
        Charge and confirm an amount.

        The idempotency key lets the gateway answer a retried request with
        the first result instead of charging again.

        Raises:
            PaymentDeclinedError: gateway answered with a non-succeeded status.
            ExternalServiceError: gateway unreachable or failed.
            CircuitBreakerError: too many recent gateway failures.
        """
        body = ChargeRequest(amount_cents=amount_cents, reference=reference, metadata=metadata or {})

        async with self.breaker.call():
            response = await self._request(
                "POST",
                "/charges",
                json=body.to_wire(),
                headers={"Idempotency-Key": idempotency_key},
                allowed_statuses=(402,),
            )
            try:
                result = ChargeResult.model_validate(response.json())
            except ValueError as e:
                raise ExternalServiceError(self.service_name, reason="invalid charge payload") from e

        if result.status != ChargeStatus.SUCCEEDED:
            raise PaymentDeclinedError(reference, result.status, charge_id=result.charge_id)

        logger.info("Charge succeeded", reference=reference, charge_id=result.charge_id, amount_cents=amount_cents)
        return result
