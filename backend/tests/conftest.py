"""
Pytest configuration and fixtures for kiosk flow tests.

The four external collaborators (menu catalog, seat registry, order API,
payment gateway) are replaced by in-memory fakes that record every call
and can be told to fail.
"""

import itertools
from datetime import datetime, timezone

import pytest

from kiosk_flow.services.flow_controller import FlowController
from shared.config.constants import ChargeStatus, PodType, SeatStatus, SelectionMode
from shared.config.settings import Settings
from shared.utils.exceptions import ConcurrencyError, ExternalServiceError, PaymentDeclinedError
from shared.utils.schemas import (
    ChargeResult,
    CreateOrderResponse,
    MenuItem,
    MenuSection,
    MenuStep,
    Seat,
    SliderConfig,
)


FIXED_NOW = datetime(2026, 3, 14, 12, 0, tzinfo=timezone.utc)


# =============================================================================
# Fakes
# =============================================================================


class FakeMenuCatalog:
    def __init__(self, steps):
        self.steps = steps
        self.locales = []

    async def fetch_menu(self, locale="en"):
        self.locales.append(locale)
        return self.steps


class FakeSeatRegistry:
    """Seat registry with a real conditional reserve."""

    def __init__(self, seats=None):
        self.seats = {s.id: s for s in (seats or [])}
        self.fetches = 0
        self.fail_fetch = False
        self.reservations = []
        self.fail_reserve = 0
        # Seats another party grabs right before our reserve call lands
        self.stolen_on_reserve: set[str] = set()

    def set_seats(self, seats):
        self.seats = {s.id: s for s in seats}

    async def fetch_seats(self, location_id):
        if self.fail_fetch:
            raise ExternalServiceError("seat-registry", status_code=503)
        self.fetches += 1
        return [s.model_copy() for s in self.seats.values()]

    async def reserve_seats(self, location_id, seat_ids, order_id, expires_at):
        if self.fail_reserve:
            self.fail_reserve -= 1
            raise ExternalServiceError("seat-registry", status_code=503)

        for seat_id in self.stolen_on_reserve:
            if seat_id in self.seats:
                self.seats[seat_id] = self.seats[seat_id].model_copy(update={"status": SeatStatus.OCCUPIED})
        self.stolen_on_reserve = set()

        if any(self.seats[s].status != SeatStatus.AVAILABLE for s in seat_ids):
            raise ConcurrencyError(seat_ids, order_id=order_id)

        for seat_id in seat_ids:
            self.seats[seat_id] = self.seats[seat_id].model_copy(update={"status": SeatStatus.RESERVED})
        self.reservations.append(
            {"seat_ids": list(seat_ids), "order_id": order_id, "expires_at": expires_at}
        )


class FakeOrders:
    def __init__(self, pre_tax_total_cents=1500):
        self.pre_tax_total_cents = pre_tax_total_cents
        self.created = []
        self.updates = []
        self.fail_create = 0
        self.fail_update = 0
        self._ids = itertools.count(1)

    async def create_order(self, location_id, guest_name, line_items):
        if self.fail_create:
            self.fail_create -= 1
            raise ExternalServiceError("orders", status_code=502)

        n = next(self._ids)
        self.created.append({"location_id": location_id, "guest_name": guest_name, "items": line_items})
        return CreateOrderResponse(
            order_id=f"order-{n}",
            order_number=f"K-{100 + n}",
            kitchen_order_number=n,
            pre_tax_total_cents=self.pre_tax_total_cents,
        )

    async def update_order(self, order_id, update):
        if self.fail_update:
            self.fail_update -= 1
            raise ExternalServiceError("orders", status_code=500)
        self.updates.append((order_id, update))


class FakePayments:
    def __init__(self):
        self.charges = []
        self.fail_next = 0
        self.decline_next = 0
        self._ids = itertools.count(1)

    async def charge(self, amount_cents, reference, idempotency_key, metadata=None):
        if self.fail_next:
            self.fail_next -= 1
            raise ExternalServiceError("payment-gateway", reason="timeout")
        if self.decline_next:
            self.decline_next -= 1
            raise PaymentDeclinedError(reference, ChargeStatus.DECLINED)

        self.charges.append(
            {"amount_cents": amount_cents, "reference": reference, "idempotency_key": idempotency_key}
        )
        return ChargeResult(
            charge_id=f"ch_{next(self._ids)}",
            status=ChargeStatus.SUCCEEDED,
            amount_cents=amount_cents,
        )


# =============================================================================
# Factories
# =============================================================================


def build_seat(seat_id, number, status=SeatStatus.AVAILABLE, pod_type=PodType.SINGLE, partner=None):
    return Seat(id=seat_id, number=number, status=status, pod_type=pod_type, dual_partner_id=partner)


def build_menu():
    """
    Two steps:
        base     - required single choice (rice 1200, greens 1300)
        extras   - toppings (multiple, max 5) and a spice slider
    """
    base = MenuSection(
        id="base",
        name="Base",
        selection_mode=SelectionMode.SINGLE,
        required=True,
        items=[
            MenuItem(id="rice", name="Rice", base_price_cents=1200),
            MenuItem(id="greens", name="Greens", base_price_cents=1300),
        ],
    )
    toppings = MenuSection(
        id="toppings",
        name="Toppings",
        selection_mode=SelectionMode.MULTIPLE,
        max_quantity=5,
        items=[
            MenuItem(id="egg", name="Egg", base_price_cents=150),
            MenuItem(id="chicken", name="Chicken", base_price_cents=500, included_quantity=1),
            MenuItem(id="beef", name="Beef", base_price_cents=600, additional_price_cents=400),
        ],
    )
    spice = MenuSection(
        id="spice",
        name="Spice",
        selection_mode=SelectionMode.SLIDER,
        item=MenuItem(id="spice-level", name="Spice level"),
        slider_config=SliderConfig(max=4, default=2, labels=["None", "Light", "Medium", "Hot", "Extra"]),
    )
    return [
        MenuStep(id="step-base", title="Choose a base", sections=[base]),
        MenuStep(id="step-extras", title="Extras", sections=[toppings, spice]),
    ]


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def make_seat():
    return build_seat


@pytest.fixture
def menu_steps():
    return build_menu()


@pytest.fixture
def test_settings():
    return Settings(
        _env_file=None,
        location_id="loc-1",
        location_tax_rate=0.1,
        seat_poll_interval_seconds=60.0,
        pod_reservation_minutes=15,
        max_party_size=8,
    )


@pytest.fixture
def single_seats():
    """Four single pods, numbered 1-4."""
    return [build_seat(f"s{n}", n) for n in range(1, 5)]


@pytest.fixture
def mixed_seats():
    """
    Single pods s1, s2 and one dual pod d1 (primary, number 3) + d2
    (partner, number 4). Only d1 stores the link.
    """
    return [
        build_seat("s1", 1),
        build_seat("s2", 2),
        build_seat("d1", 3, pod_type=PodType.DUAL, partner="d2"),
        build_seat("d2", 4, pod_type=PodType.DUAL),
    ]


@pytest.fixture
def seat_registry(single_seats):
    return FakeSeatRegistry(single_seats)


@pytest.fixture
def orders():
    return FakeOrders()


@pytest.fixture
def payments():
    return FakePayments()


@pytest.fixture
def menu_catalog(menu_steps):
    return FakeMenuCatalog(menu_steps)


@pytest.fixture
def controller(menu_catalog, seat_registry, orders, payments, test_settings, menu_steps):
    controller = FlowController(
        menu_catalog,
        seat_registry,
        orders,
        payments,
        settings=test_settings,
        clock=lambda: FIXED_NOW,
    )
    controller.set_menu(menu_steps)
    return controller
