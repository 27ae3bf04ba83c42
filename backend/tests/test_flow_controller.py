"""
Tests for the FlowController state machine.

End-to-end walks of whole parties through the kiosk against the in-memory
collaborators, plus the guard, retry and recovery paths.
"""

import asyncio

import httpx
import pytest

from kiosk_flow.clients import SeatRegistryClient
from kiosk_flow.models import POD_UNSET, PodAssigned
from kiosk_flow.services.flow_controller import FlowController
from shared.config.constants import FlowView, PaymentType, PodType, SeatStatus
from shared.utils.exceptions import (
    AllocationError,
    AllocationReason,
    ConcurrencyError,
    InvalidPartyError,
    InvalidTransitionError,
    MissingSelectionError,
    SubmissionError,
    ValidationError,
)
from tests.conftest import FIXED_NOW


async def order_rice(controller, name):
    """Walk the active guest from NAME to a submitted order."""
    controller.submit_name(name)
    controller.update_selection("base", "rice")
    controller.next_step()
    controller.next_step()
    assert controller.session.current_view == FlowView.REVIEW
    await controller.submit_order()


# =============================================================================
# Scenarios
# =============================================================================


class TestSoloGuest:
    """Party of one: no payment-type prompt, one guest processed."""

    @pytest.mark.asyncio
    async def test_full_flow(self, controller, payments, orders, seat_registry):
        session = controller.start_session(1)
        assert session.payment_type == PaymentType.SINGLE
        assert session.current_view == FlowView.NAME

        controller.submit_name("Alexandra")
        assert session.current_view == FlowView.MENU
        assert session.current_step_index == 0

        controller.update_selection("base", "rice")
        controller.next_step()
        assert session.current_step_index == 1
        controller.next_step()
        assert session.current_view == FlowView.REVIEW

        await controller.submit_order()
        assert session.current_view == FlowView.POD_SELECTION
        assert controller.poller.is_running
        assert seat_registry.fetches == 1

        controller.select_pod("s1")
        await controller.confirm_pod()
        assert session.current_view == FlowView.PAYMENT
        assert not controller.poller.is_running

        await controller.pay()
        assert session.current_view == FlowView.COMPLETE
        assert len(orders.created) == 1
        assert payments.charges[0]["amount_cents"] == 1650
        assert session.guests[0].paid


class TestSinglePartyDualPod:
    """Party of two paying together, guest 1 picks a dual pod."""

    @pytest.mark.asyncio
    async def test_partner_guest_skips_pod_selection(self, controller, seat_registry, mixed_seats, payments):
        seat_registry.set_seats(mixed_seats)
        session = controller.start_session(2, PaymentType.SINGLE)

        await order_rice(controller, "Ana")
        assert session.current_view == FlowView.PASS
        assert session.current_guest_index == 0

        controller.pass_device()
        assert session.current_view == FlowView.NAME
        assert session.current_guest_index == 1
        assert session.current_step_index == 0

        await order_rice(controller, "Ben")
        assert session.current_view == FlowView.POD_SELECTION
        assert session.current_guest_index == 0
        assert controller.can_select_dual_pod

        controller.select_pod("d1")
        await controller.confirm_pod()

        assert session.current_view == FlowView.PAYMENT
        assert session.guests[0].pod == PodAssigned("d1")
        assert session.guests[1].pod == PodAssigned("d2")

        await controller.pay()

        assert session.current_view == FlowView.COMPLETE
        assert len(payments.charges) == 1
        assert payments.charges[0]["amount_cents"] == 3300
        assert [r["seat_ids"] for r in seat_registry.reservations] == [["d1", "d2"]]

    @pytest.mark.asyncio
    async def test_auto_dual_in_party_of_three(self, controller, seat_registry, mixed_seats):
        seat_registry.set_seats(mixed_seats)
        session = controller.start_session(3, PaymentType.SINGLE)
        for name in ("Ana", "Ben"):
            await order_rice(controller, name)
            controller.pass_device()
        await order_rice(controller, "Cy")

        controller.request_auto_pod()
        await controller.confirm_pod()

        assert session.guests[0].pod == PodAssigned("d1")
        assert session.guests[1].pod == PodAssigned("d2")
        assert session.guests[1].pod_auto_assigned is True
        assert session.current_view == FlowView.POD_SELECTION
        assert session.current_guest_index == 2

        controller.select_pod("s1")
        await controller.confirm_pod()
        assert session.current_view == FlowView.PAYMENT

        await controller.reset()


class TestSeparateParty:
    """Party of three paying separately."""

    @pytest.mark.asyncio
    async def test_each_guest_completes_in_turn(self, controller, seat_registry, make_seat, payments):
        seat_registry.set_seats([
            make_seat("s1", 1),
            make_seat("s2", 2),
            make_seat("s3", 3),
            make_seat("d1", 4, pod_type=PodType.DUAL, partner="d2"),
            make_seat("d2", 5, pod_type=PodType.DUAL),
        ])
        session = controller.start_session(3, PaymentType.SEPARATE)
        seen_indexes = []

        for n in range(3):
            await order_rice(controller, f"Guest {n + 1}")
            assert session.current_view == FlowView.POD_SELECTION
            assert session.current_guest_index == n
            assert not controller.can_select_dual_pod
            assert "d1" not in [s.id for s in controller.selectable_seats()]

            with pytest.raises(AllocationError) as exc:
                controller.select_pod("d1")
            assert exc.value.reason == AllocationReason.DUAL_NOT_ALLOWED
            assert session.current_guest.pod == POD_UNSET

            controller.select_pod(f"s{n + 1}")
            await controller.confirm_pod()
            assert session.current_view == FlowView.PAYMENT

            await controller.pay()
            seen_indexes.append(session.current_guest_index)
            if n < 2:
                assert session.current_view == FlowView.PASS
                controller.pass_device()

        assert session.current_view == FlowView.COMPLETE
        assert seen_indexes == sorted(seen_indexes)
        assert [c["amount_cents"] for c in payments.charges] == [1650, 1650, 1650]
        assert session.all_paid


class TestTieredPriceInFlow:
    def test_running_total_uses_tiered_price(self, controller):
        controller.start_session(1)
        controller.submit_name("Dee")
        controller.update_selection("base", "rice")
        controller.next_step()
        controller.update_cart("chicken", 3)

        assert controller.running_total() == 1200 + 1000


class TestNoSeatsAvailable:
    """Auto-assign with nothing free must not reach PAYMENT."""

    @pytest.mark.asyncio
    async def test_allocation_error_and_recovery(self, controller, seat_registry, make_seat):
        seat_registry.set_seats([make_seat("s1", 1, status=SeatStatus.OCCUPIED)])
        session = controller.start_session(1)
        await order_rice(controller, "Eve")

        controller.request_auto_pod()
        with pytest.raises(AllocationError) as exc:
            await controller.confirm_pod()

        assert exc.value.reason == AllocationReason.NONE_AVAILABLE
        assert session.current_view == FlowView.POD_SELECTION
        assert session.last_allocation_error == AllocationReason.NONE_AVAILABLE
        assert session.current_guest.pod == POD_UNSET
        assert controller.poller.is_running

        seat_registry.set_seats([make_seat("s1", 1), make_seat("s2", 2)])
        await controller.poller.refresh()
        controller.request_auto_pod()
        await controller.confirm_pod()

        assert session.current_view == FlowView.PAYMENT
        assert session.current_guest.pod == PodAssigned("s1")
        assert session.current_guest.pod_auto_assigned is True
        assert session.last_allocation_error is None

    @pytest.mark.asyncio
    async def test_confirm_without_choice(self, controller):
        controller.start_session(1)
        await order_rice(controller, "Flo")

        with pytest.raises(ValidationError):
            await controller.confirm_pod()
        assert controller.session.current_view == FlowView.POD_SELECTION

        await controller.reset()


# =============================================================================
# Guards and local validation
# =============================================================================


class TestSessionStart:
    def test_payment_type_required_for_party(self, controller):
        with pytest.raises(ValidationError):
            controller.start_session(2)

    @pytest.mark.parametrize("party_size", [0, 9])
    def test_party_size_bounds(self, controller, party_size):
        with pytest.raises(InvalidPartyError):
            controller.start_session(party_size, PaymentType.SINGLE)

    def test_slider_defaults_seeded_for_every_guest(self, controller):
        session = controller.start_session(3, PaymentType.SEPARATE)

        for guest in session.guests:
            assert guest.cart["spice-level"] == 2
            assert guest.slider_labels["spice-level"] == "Medium"

    @pytest.mark.asyncio
    async def test_load_menu_uses_kiosk_locale(self, controller, menu_catalog):
        steps = await controller.load_menu()

        assert menu_catalog.locales == ["en"]
        assert controller.menu.step_count == len(steps)


class TestNameAndMenu:
    def test_blank_name_rejected(self, controller):
        controller.start_session(1)

        with pytest.raises(ValidationError):
            controller.submit_name("   ")
        assert controller.session.current_view == FlowView.NAME

    def test_name_trimmed_and_capped(self, controller):
        controller.start_session(1)
        controller.submit_name("  " + "x" * 80 + "  ")

        assert controller.session.current_guest.guest_name == "x" * 50

    def test_required_selection_blocks_next(self, controller):
        controller.start_session(1)
        controller.submit_name("Gus")

        with pytest.raises(MissingSelectionError):
            controller.next_step()
        assert controller.session.current_step_index == 0

    def test_previous_step(self, controller):
        controller.start_session(1)
        controller.submit_name("Hal")
        controller.previous_step()
        assert controller.session.current_step_index == 0

        controller.update_selection("base", "greens")
        controller.next_step()
        controller.previous_step()
        assert controller.session.current_view == FlowView.MENU
        assert controller.session.current_step_index == 0

    def test_back_to_menu_from_review(self, controller):
        controller.start_session(1)
        controller.submit_name("Ivy")
        controller.update_selection("base", "rice")
        controller.next_step()
        controller.next_step()

        controller.back_to_menu()

        assert controller.session.current_view == FlowView.MENU
        assert controller.session.current_step_index == 1

    def test_review_totals_estimate(self, controller):
        controller.start_session(1)
        controller.submit_name("Jo")
        controller.update_selection("base", "rice")

        totals = controller.review_totals()

        assert totals.subtotal_cents == 1200
        assert totals.tax_cents == 120

    def test_events_checked_against_view(self, controller):
        controller.start_session(1)

        with pytest.raises(InvalidTransitionError):
            controller.next_step()
        with pytest.raises(InvalidTransitionError):
            controller.select_pod("s1")
        with pytest.raises(InvalidTransitionError):
            controller.pass_device()

    def test_no_session(self, controller):
        with pytest.raises(InvalidTransitionError):
            controller.submit_name("Kim")


# =============================================================================
# Retries and recovery
# =============================================================================


class TestSubmitRetry:
    @pytest.mark.asyncio
    async def test_failed_submit_stays_in_review(self, controller, orders):
        controller.start_session(1)
        orders.fail_create = 1

        with pytest.raises(SubmissionError):
            await order_rice(controller, "Lu")
        assert controller.session.current_view == FlowView.REVIEW
        assert controller.session.current_guest.order_id is None

        await controller.submit_order()

        assert controller.session.current_view == FlowView.POD_SELECTION
        assert len(orders.created) == 1
        await controller.reset()

    @pytest.mark.asyncio
    async def test_submitted_order_is_read_only(self, controller):
        controller.start_session(2, PaymentType.SINGLE)
        await order_rice(controller, "Mo")

        with pytest.raises(InvalidTransitionError):
            controller.update_cart("egg", 1)


class TestPaymentRetry:
    @pytest.mark.asyncio
    async def test_failed_charge_stays_in_payment(self, controller, payments):
        controller.start_session(1)
        await order_rice(controller, "Ned")
        controller.select_pod("s2")
        await controller.confirm_pod()
        payments.fail_next = 1

        with pytest.raises(SubmissionError):
            await controller.pay()
        assert controller.session.current_view == FlowView.PAYMENT

        await controller.pay()
        assert controller.session.current_view == FlowView.COMPLETE
        assert len(payments.charges) == 1


class TestReservationConflict:
    @pytest.mark.asyncio
    async def test_lost_seat_routes_back_to_selection(self, controller, seat_registry, payments):
        session = controller.start_session(1)
        await order_rice(controller, "Oz")
        controller.select_pod("s1")
        await controller.confirm_pod()
        seat_registry.stolen_on_reserve = {"s1"}

        with pytest.raises(ConcurrencyError):
            await controller.pay()

        assert session.current_view == FlowView.POD_SELECTION
        assert session.reselecting is True
        assert session.current_guest.pod == POD_UNSET
        assert controller.poller.is_running
        assert "s1" not in [s.id for s in controller.selectable_seats()]

        controller.select_pod("s2")
        await controller.confirm_pod()
        assert session.current_view == FlowView.PAYMENT

        await controller.pay()

        assert session.current_view == FlowView.COMPLETE
        assert session.reselecting is False
        assert len(payments.charges) == 1
        assert seat_registry.reservations[-1]["seat_ids"] == ["s2"]

    @pytest.mark.asyncio
    async def test_lost_dual_partner_seat_reselects_both_guests(
        self, controller, seat_registry, mixed_seats, payments
    ):
        seat_registry.set_seats(mixed_seats)
        session = controller.start_session(2, PaymentType.SINGLE)
        await order_rice(controller, "Ana")
        controller.pass_device()
        await order_rice(controller, "Ben")
        controller.select_pod("d1")
        await controller.confirm_pod()
        seat_registry.stolen_on_reserve = {"d2"}

        with pytest.raises(ConcurrencyError):
            await controller.pay()

        assert session.current_view == FlowView.POD_SELECTION
        assert session.current_guest_index == 0
        assert session.guests[0].pod == POD_UNSET
        assert session.guests[1].pod == POD_UNSET
        assert "d1" not in [s.id for s in controller.selectable_seats()]

        controller.select_pod("s1")
        await controller.confirm_pod()
        assert session.current_view == FlowView.POD_SELECTION
        assert session.current_guest_index == 1

        controller.select_pod("s2")
        await controller.confirm_pod()
        assert session.current_view == FlowView.PAYMENT

        await controller.pay()

        assert session.current_view == FlowView.COMPLETE
        assert len(payments.charges) == 1
        assert [r["seat_ids"] for r in seat_registry.reservations] == [["s1"], ["s2"]]
        assert all(g.paid for g in session.guests)


class TestSeatRegistryOutage:
    @pytest.mark.asyncio
    async def test_malformed_seat_payload_keeps_flow_and_polling(
        self, menu_catalog, orders, payments, test_settings, menu_steps
    ):
        bodies = [httpx.Response(200, text="<html>maintenance</html>")]
        seats = [{"id": f"s{n}", "number": n, "status": "AVAILABLE"} for n in range(1, 3)]

        def handler(request):
            return bodies.pop() if bodies else httpx.Response(200, json=seats)

        seat_client = SeatRegistryClient.from_settings(test_settings, transport=httpx.MockTransport(handler))
        settings = test_settings.model_copy(update={"seat_poll_interval_seconds": 0.01})
        controller = FlowController(
            menu_catalog, seat_client, orders, payments, settings=settings, clock=lambda: FIXED_NOW
        )
        controller.set_menu(menu_steps)
        session = controller.start_session(1)

        await order_rice(controller, "Oz")

        assert session.current_view == FlowView.POD_SELECTION
        assert session.current_guest.order_id == "order-1"
        assert controller.poller.is_running
        assert controller.poller.snapshot == []

        await asyncio.sleep(0.1)

        assert [s.id for s in controller.selectable_seats()] == ["s1", "s2"]
        await controller.reset()
        await seat_client.close()


class TestPolling:
    @pytest.mark.asyncio
    async def test_reset_stops_polling(self, controller):
        controller.start_session(1)
        await order_rice(controller, "Pia")
        assert controller.poller.is_running

        await controller.reset()

        assert not controller.poller.is_running
        assert controller.session is None
