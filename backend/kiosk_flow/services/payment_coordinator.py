"""
Payment coordinator.

Sequences the charge and the per-guest finalisation that follows it:
    1. charge (one guest for SEPARATE, the whole party once for SINGLE)
    2. for each guest being paid for: reserve their seats, then mark the
       order PAID with its pod assignment

Every step records its outcome on the session before the next one runs,
so a retry after any failure resumes at the failed step. A guest is never
charged twice and a reserved seat is never reserved again.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Protocol

from kiosk_flow.models import GuestOrder, PartySession
from kiosk_flow.services.pod_allocator import PodAllocator
from kiosk_flow.clients.circuit_breaker import CircuitBreakerError
from shared.config.constants import OrderPaymentStatus, PaymentType, PodSelectionMethod
from shared.config.logging import get_logger
from shared.utils.exceptions import ConcurrencyError, ExternalServiceError, SubmissionError, ValidationError
from shared.utils.schemas import ChargeResult, OrderUpdate

logger = get_logger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Charger(Protocol):
    async def charge(
        self,
        amount_cents: int,
        reference: str,
        idempotency_key: str,
        metadata: dict[str, str] | None = None,
    ) -> ChargeResult: ...


class OrderUpdater(Protocol):
    async def update_order(self, order_id: str, update: OrderUpdate) -> None: ...


class SeatReserver(Protocol):
    async def reserve_seats(
        self, location_id: str, seat_ids: list[str], order_id: str, expires_at: datetime
    ) -> None: ...


class PaymentCoordinator:
    def __init__(
        self,
        payment_client: Charger,
        order_client: OrderUpdater,
        seat_client: SeatReserver,
        location_id: str,
        reservation_minutes: int = 15,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._payments = payment_client
        self._orders = order_client
        self._seats = seat_client
        self._location_id = location_id
        self._reservation = timedelta(minutes=reservation_minutes)
        self._clock = clock

    async def pay(self, session: PartySession, allocator: PodAllocator) -> None:
        """
        Charge and finalise the guests the current payment covers.

        Raises:
            ValidationError: a guest has no order or no seat yet.
            SubmissionError: charge or order update failed; retry is safe.
            ConcurrencyError: a seat was taken before it could be reserved;
                `guest_index` names the guest who must pick again.
        """
        if session.payment_type == PaymentType.SEPARATE:
            indexes = [session.current_guest_index]
        else:
            indexes = list(range(session.party_size))

        for index in indexes:
            self._check_ready(session.guests[index])

        if session.payment_type == PaymentType.SEPARATE:
            await self._charge_guest(session.current_guest)
        else:
            await self._charge_party(session)

        for index in indexes:
            if not session.guests[index].paid:
                await self._finalize_guest(session, index, allocator)

        logger.info(
            "Payment complete",
            payment_type=session.payment_type.value,
            guests=[session.guests[i].guest_number for i in indexes],
        )

    def amount_due_cents(self, session: PartySession) -> int:
        """What the current payment charges, from the stored order totals."""
        if session.payment_type == PaymentType.SEPARATE:
            guests = [session.current_guest]
        else:
            guests = session.guests
        return sum(g.totals.total_cents for g in guests if g.totals is not None)

    def _check_ready(self, guest: GuestOrder) -> None:
        if guest.paid:
            return
        if not guest.is_submitted or guest.totals is None:
            raise ValidationError("Order must be submitted before payment", guest_number=guest.guest_number)
        if guest.selected_pod_id is None:
            raise ValidationError("Choose a pod before paying", guest_number=guest.guest_number)

    async def _charge_guest(self, guest: GuestOrder) -> None:
        if guest.paid or guest.charge_id is not None:
            return

        amount = guest.totals.total_cents
        if amount <= 0:
            logger.info("Nothing to charge", guest_number=guest.guest_number, order_id=guest.order_id)
            return

        result = await self._charge(
            amount,
            reference=guest.order_id,
            idempotency_key=f"order-{guest.order_id}",
            metadata={"orderId": guest.order_id, "guestNumber": str(guest.guest_number)},
        )
        guest.charge_id = result.charge_id

    async def _charge_party(self, session: PartySession) -> None:
        if session.aggregate_charge_id is not None:
            return

        amount = sum(g.totals.total_cents for g in session.guests)
        if amount <= 0:
            logger.info("Nothing to charge", party_size=session.party_size)
            return

        order_ids = [g.order_id for g in session.guests]
        result = await self._charge(
            amount,
            reference=f"party-{session.session_id}",
            idempotency_key=f"party-{session.session_id}",
            metadata={"orderIds": ",".join(order_ids), "partySize": str(session.party_size)},
        )
        session.aggregate_charge_id = result.charge_id
        for guest in session.guests:
            guest.charge_id = result.charge_id

    async def _charge(self, amount_cents: int, **kwargs) -> ChargeResult:
        try:
            return await self._payments.charge(amount_cents, **kwargs)
        except CircuitBreakerError as e:
            raise SubmissionError(e.detail, reference=kwargs.get("reference")) from e
        except ExternalServiceError as e:
            raise SubmissionError(
                "Payment could not be completed. Please try again.",
                reference=kwargs.get("reference"),
                status_code=e.status_code,
            ) from e

    async def _finalize_guest(self, session: PartySession, index: int, allocator: PodAllocator) -> None:
        guest = session.guests[index]

        if not guest.seat_reserved:
            now = self._clock()
            expires_at = now + self._reservation
            seat_ids = allocator.seats_to_reserve(index, session.guests)
            if seat_ids:
                try:
                    await self._seats.reserve_seats(self._location_id, seat_ids, guest.order_id, expires_at)
                except ConcurrencyError as e:
                    e.guest_index = index
                    raise
                except ExternalServiceError as e:
                    raise SubmissionError(
                        "Could not reserve your pod. Please try again.",
                        guest_number=guest.guest_number,
                        status_code=e.status_code,
                    ) from e
            guest.seat_reserved = True
            guest.pod_assigned_at = now
            guest.pod_reservation_expiry = expires_at

        method = PodSelectionMethod.AUTO if guest.pod_auto_assigned else PodSelectionMethod.CUSTOMER_SELECTED
        update = OrderUpdate(
            payment_status=OrderPaymentStatus.PAID,
            seat_id=guest.selected_pod_id,
            pod_selection_method=method,
            pod_assigned_at=guest.pod_assigned_at,
            pod_reservation_expiry=guest.pod_reservation_expiry,
        )
        try:
            await self._orders.update_order(guest.order_id, update)
        except ExternalServiceError as e:
            raise SubmissionError(
                "Payment received but the order could not be updated. Please try again.",
                guest_number=guest.guest_number,
                order_id=guest.order_id,
                status_code=e.status_code,
            ) from e

        guest.paid = True
        logger.info(
            "Guest finalised",
            guest_number=guest.guest_number,
            order_id=guest.order_id,
            seat_id=guest.selected_pod_id,
            method=method,
        )
