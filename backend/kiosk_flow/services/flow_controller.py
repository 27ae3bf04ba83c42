"""
Kiosk flow controller.

The state machine that walks a party through the kiosk one guest at a
time:

    NAME -> MENU -> REVIEW -> (PASS -> NAME ...) -> POD_SELECTION
         -> PAYMENT -> (PASS -> NAME ...) -> COMPLETE

It owns the PartySession, checks every event against the current view,
delegates the work to the services and applies the next position computed
by the transition functions. Network-bound events are coroutines: the
view only changes once the call has succeeded, so a failure leaves the
flow where it was and the same event can simply be retried.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime

from kiosk_flow.models import POD_AUTO_REQUESTED, OrderTotals, PartySession, PodAssigned, PodAutoRequested
from kiosk_flow.services import transitions
from kiosk_flow.services.guest_order_builder import GuestOrderBuilder, MenuIndex
from kiosk_flow.services.order_submitter import OrderSubmitter
from kiosk_flow.services.payment_coordinator import PaymentCoordinator, utcnow
from kiosk_flow.services.pod_allocator import PodAllocator
from kiosk_flow.services.pricing import build_totals
from kiosk_flow.services.seat_poller import SeatSnapshotPoller
from kiosk_flow.services.transitions import Position
from shared.config.constants import FlowView, Limits, PaymentType
from shared.config.logging import get_logger, mask_guest_name
from shared.config.settings import Settings, get_settings
from shared.infrastructure.correlation import bind_kiosk_session_id
from shared.utils.exceptions import (
    AllocationError,
    AllocationReason,
    ConcurrencyError,
    InvalidTransitionError,
    ValidationError,
)
from shared.utils.schemas import MenuStep, Seat

logger = get_logger(__name__)


class FlowController:
    """
    Drives one party's session on the kiosk.

    Usage:
        controller = FlowController(menu_client, seat_client, order_client, payment_client)
        await controller.load_menu()
        controller.start_session(party_size=2, payment_type=PaymentType.SINGLE)
        controller.submit_name("Ana")
        ...
        await controller.submit_order()
    """

    def __init__(
        self,
        menu_client,
        seat_client,
        order_client,
        payment_client,
        settings: Settings | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._settings = settings or get_settings()
        self._menu_client = menu_client
        self._order_client = order_client
        self._poller = SeatSnapshotPoller(
            seat_client,
            self._settings.location_id,
            interval_seconds=self._settings.seat_poll_interval_seconds,
        )
        self._payments = PaymentCoordinator(
            payment_client,
            order_client,
            seat_client,
            self._settings.location_id,
            reservation_minutes=self._settings.pod_reservation_minutes,
            clock=clock,
        )
        self._menu: MenuIndex | None = None
        self._submitter: OrderSubmitter | None = None
        self.session: PartySession | None = None

    # =========================================================================
    # Session
    # =========================================================================

    @property
    def poller(self) -> SeatSnapshotPoller:
        return self._poller

    @property
    def menu(self) -> MenuIndex | None:
        return self._menu

    @property
    def position(self) -> Position:
        session = self._require_session()
        return Position(session.current_view, session.current_guest_index, session.current_step_index)

    async def load_menu(self, locale: str | None = None) -> list[MenuStep]:
        steps = await self._menu_client.fetch_menu(locale or self._settings.kiosk_locale)
        self.set_menu(steps)
        return steps

    def start_session(
        self,
        party_size: int,
        payment_type: PaymentType | str | None = None,
        menu_steps: list[MenuStep] | None = None,
    ) -> PartySession:
        """
        Start a new party at NAME for the first guest.

        Raises:
            InvalidPartyError: party size out of range.
            ValidationError: payment type missing for a party > 1, or no menu.
        """
        if menu_steps is not None:
            self.set_menu(menu_steps)
        if self._menu is None or self._menu.step_count == 0:
            raise ValidationError("Menu is not loaded")

        session = PartySession.create(party_size, payment_type, self._settings.max_party_size)
        for guest in session.guests:
            GuestOrderBuilder(self._menu, guest).seed_defaults()

        self.session = session
        bind_kiosk_session_id(session.session_id)
        logger.info(
            "Party session started",
            party_size=session.party_size,
            payment_type=session.payment_type.value,
        )
        return session

    async def reset(self) -> None:
        """Discard the session, e.g. on idle timeout."""
        await self._poller.stop()
        if self.session is not None:
            logger.info("Party session reset", view=self.session.current_view.value)
        self.session = None

    # =========================================================================
    # NAME / MENU / REVIEW
    # =========================================================================

    def submit_name(self, name: str) -> None:
        session = self._require_view("submit a name", FlowView.NAME)

        name = (name or "").strip()
        if not name:
            raise ValidationError("Please enter your name", guest_number=session.current_guest.guest_number)

        session.current_guest.guest_name = name[: Limits.MAX_GUEST_NAME_LENGTH]
        logger.info("Guest named", guest_number=session.current_guest.guest_number, guest=mask_guest_name(name))
        self._set_position(transitions.after_name(self.position))

    def update_cart(self, item_id: str, quantity: int, max_quantity: int | None = None) -> int:
        self._require_editable("change quantities")
        return self._builder().update_cart(item_id, quantity, max_quantity)

    def update_slider(self, item_id: str, value: int, label: str | None = None) -> str:
        self._require_editable("change a slider")
        return self._builder().update_slider(item_id, value, label)

    def update_selection(self, section_id: str, item_id: str) -> None:
        self._require_editable("change a selection")
        self._builder().update_selection(section_id, item_id)

    def next_step(self) -> None:
        """Advance a menu step; required choices of the current step must be made."""
        session = self._require_view("go to the next step", FlowView.MENU)
        self._builder().validate_step(session.current_step_index)
        self._set_position(transitions.after_next_step(self.position, self._menu.step_count))

    def previous_step(self) -> None:
        self._require_view("go to the previous step", FlowView.MENU)
        self._set_position(transitions.after_previous_step(self.position))

    def back_to_menu(self) -> None:
        """Leave REVIEW to edit the order again, before it is submitted."""
        session = self._require_view("edit the order", FlowView.REVIEW)
        if session.current_guest.is_submitted:
            raise InvalidTransitionError("edit a submitted order", session.current_view.value)
        self._set_position(Position(FlowView.MENU, session.current_guest_index, session.current_step_index))

    def running_total(self) -> int:
        self._require_session()
        return self._builder().compute_running_total()

    def review_totals(self) -> OrderTotals:
        """Totals shown on REVIEW: the stored ones once submitted, else estimated."""
        guest = self._require_session().current_guest
        if guest.totals is not None:
            return guest.totals
        return build_totals(self.running_total(), self._settings.location_tax_rate)

    async def submit_order(self) -> None:
        """
        Create the active guest's order and move on.

        Raises:
            MissingSelectionError: a required choice is missing.
            SubmissionError: the backend call failed; still in REVIEW.
        """
        session = self._require_view("submit the order", FlowView.REVIEW)
        builder = self._builder()
        builder.validate_all()

        await self._submitter.submit(session.current_guest, builder.compute_running_total())
        await self._enter(transitions.after_submit(self.position, session.party_size, session.payment_type))

    def pass_device(self) -> None:
        """The device has been handed to the next guest."""
        self._require_view("hand over the kiosk", FlowView.PASS)
        self._set_position(transitions.after_pass(self.position))

    # =========================================================================
    # POD_SELECTION
    # =========================================================================

    def allocator(self) -> PodAllocator:
        session = self._require_session()
        return PodAllocator(self._poller.snapshot, session.party_size, session.payment_type)

    def selectable_seats(self) -> list[Seat]:
        session = self._require_view("list pods", FlowView.POD_SELECTION)
        allocator = self.allocator()
        return allocator.selectable_seats(allocator.claimed_by_others(session.guests, session.current_guest_index))

    @property
    def can_select_dual_pod(self) -> bool:
        return self.allocator().can_select_dual_pod

    def select_pod(self, seat_id: str) -> None:
        """
        Pick a seat for the active guest.

        Raises:
            AllocationError: seat not selectable; the guest's choice is unchanged.
        """
        session = self._require_view("select a pod", FlowView.POD_SELECTION)
        allocator = self.allocator()
        claimed = allocator.claimed_by_others(session.guests, session.current_guest_index)
        allocator.validate_selection(seat_id, claimed)

        guest = session.current_guest
        guest.pod = PodAssigned(seat_id)
        guest.pod_auto_assigned = False
        session.last_allocation_error = None

    def request_auto_pod(self) -> None:
        session = self._require_view("request a pod", FlowView.POD_SELECTION)
        session.current_guest.pod = POD_AUTO_REQUESTED
        session.current_guest.pod_auto_assigned = False
        session.last_allocation_error = None

    async def confirm_pod(self) -> None:
        """
        Confirm the active guest's pod and move on.

        An auto request is resolved here against the latest snapshot; an
        explicit choice is checked again since the snapshot may have
        changed since it was made. In a SINGLE party a dual pod hands its
        partner seat to the next guest, who then skips pod selection.

        Raises:
            ValidationError: nothing chosen yet.
            AllocationError: no seat available, or the choice is no longer
                valid; the guest's choice is reset and the flow stays here.
        """
        session = self._require_view("confirm a pod", FlowView.POD_SELECTION)
        guest = session.current_guest
        allocator = self.allocator()
        claimed = allocator.claimed_by_others(session.guests, session.current_guest_index)

        try:
            if isinstance(guest.pod, PodAutoRequested):
                seat = allocator.auto_assign(claimed)
                if seat is None:
                    raise AllocationError(AllocationReason.NONE_AVAILABLE, guest_number=guest.guest_number)
                guest.pod = PodAssigned(seat.id)
                guest.pod_auto_assigned = True
            elif isinstance(guest.pod, PodAssigned):
                allocator.validate_selection(guest.pod.seat_id, claimed)
            else:
                raise ValidationError("Choose a pod or let us pick one for you", guest_number=guest.guest_number)
        except AllocationError as e:
            guest.clear_pod()
            session.last_allocation_error = e.reason
            raise

        session.last_allocation_error = None
        self._assign_dual_partner(allocator, session.current_guest_index)

        logger.info(
            "Pod confirmed",
            guest_number=guest.guest_number,
            seat_id=guest.selected_pod_id,
            auto=guest.pod_auto_assigned,
        )
        await self._enter(
            transitions.after_pod_confirm(
                self.position, session.payment_type, session.guests, reselecting=session.reselecting
            )
        )

    def _assign_dual_partner(self, allocator: PodAllocator, index: int) -> None:
        session = self.session
        guest = session.guests[index]
        seat_id = guest.selected_pod_id

        if session.payment_type != PaymentType.SINGLE or index + 1 >= session.party_size:
            return
        if not allocator.seat_map.is_dual(seat_id) or allocator.seat_map.is_hidden_partner(seat_id):
            return
        partner_seat_id = allocator.seat_map.partner_of(seat_id)
        if partner_seat_id is None:
            return

        partner_guest = session.guests[index + 1]
        if partner_guest.paid or isinstance(partner_guest.pod, PodAssigned):
            return

        partner_guest.pod = PodAssigned(partner_seat_id)
        partner_guest.pod_auto_assigned = guest.pod_auto_assigned
        logger.info(
            "Dual partner seat assigned",
            guest_number=partner_guest.guest_number,
            seat_id=partner_guest.selected_pod_id,
        )

    # =========================================================================
    # PAYMENT
    # =========================================================================

    def amount_due_cents(self) -> int:
        self._require_session()
        return self._payments.amount_due_cents(self.session)

    async def pay(self) -> None:
        """
        Charge and finalise, then continue to the next guest or finish.

        Raises:
            SubmissionError: charge or order update failed; still in PAYMENT.
            ConcurrencyError: a seat was taken meanwhile; the affected guest
                is back in POD_SELECTION with a refreshed seat list.
        """
        session = self._require_view("pay", FlowView.PAYMENT)
        try:
            await self._payments.pay(session, self.allocator())
        except ConcurrencyError as e:
            await self._route_to_reselection(e)
            raise

        session.reselecting = False
        await self._enter(transitions.after_payment(self.position, session.party_size, session.payment_type))

    async def _route_to_reselection(self, error: ConcurrencyError) -> None:
        session = self.session
        index = error.guest_index if error.guest_index is not None else session.current_guest_index
        guest = session.guests[index]

        partner = self.allocator().seat_map.partner_of(guest.selected_pod_id) if guest.selected_pod_id else None
        guest.clear_pod()
        for other in session.guests:
            if other is not guest and not other.paid and partner and other.selected_pod_id == partner:
                other.clear_pod()

        session.reselecting = True
        logger.warning("Seat lost before reservation, re-selecting", guest_number=guest.guest_number)
        await self._enter(Position(FlowView.POD_SELECTION, index, session.current_step_index))

    # =========================================================================
    # Internals
    # =========================================================================

    def set_menu(self, steps: list[MenuStep]) -> None:
        self._menu = MenuIndex(steps)
        self._submitter = OrderSubmitter(
            self._order_client,
            self._menu,
            self._settings.location_id,
            self._settings.location_tax_rate,
        )

    def _builder(self) -> GuestOrderBuilder:
        return GuestOrderBuilder(self._menu, self.session.current_guest)

    def _require_session(self) -> PartySession:
        if self.session is None:
            raise InvalidTransitionError("continue", "no session")
        return self.session

    def _require_view(self, action: str, *views: FlowView) -> PartySession:
        session = self._require_session()
        if session.current_view not in views:
            raise InvalidTransitionError(action, session.current_view.value)
        return session

    def _require_editable(self, action: str) -> PartySession:
        session = self._require_view(action, FlowView.MENU, FlowView.REVIEW)
        if session.current_guest.is_submitted:
            raise InvalidTransitionError(action, session.current_view.value)
        return session

    def _set_position(self, pos: Position) -> None:
        session = self.session
        if pos.view != session.current_view or pos.guest_index != session.current_guest_index:
            logger.info(
                "Flow transition",
                from_view=session.current_view.value,
                to_view=pos.view.value,
                guest_number=pos.guest_index + 1,
            )
        session.current_view = pos.view
        session.current_guest_index = pos.guest_index
        session.current_step_index = pos.step_index

    async def _enter(self, pos: Position) -> None:
        """Apply a position; seat polling runs only in POD_SELECTION."""
        self._set_position(pos)
        if pos.view == FlowView.POD_SELECTION:
            await self._poller.start()
        else:
            await self._poller.stop()
