"""
Party session aggregate.

A PartySession is created once per kiosk session and owned by the
FlowController. It holds one GuestOrder slot per guest in the party plus the
position of the state machine (view, active guest, active menu step).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Union

from shared.config.constants import FlowView, Limits, PaymentType
from shared.infrastructure.correlation import new_kiosk_session_id
from shared.utils.exceptions import InvalidPartyError, ValidationError


# =============================================================================
# Pod choice: Unset | AutoRequested | Assigned(seat_id)
# =============================================================================


@dataclass(frozen=True, slots=True)
class PodUnset:
    """Guest has not chosen a pod yet."""

    def __str__(self) -> str:
        return "unset"


@dataclass(frozen=True, slots=True)
class PodAutoRequested:
    """Guest asked the kiosk to pick a pod on confirm."""

    def __str__(self) -> str:
        return "auto-requested"


@dataclass(frozen=True, slots=True)
class PodAssigned:
    """Guest holds a concrete seat."""

    seat_id: str

    def __str__(self) -> str:
        return self.seat_id


PodChoice = Union[PodUnset, PodAutoRequested, PodAssigned]

POD_UNSET = PodUnset()
POD_AUTO_REQUESTED = PodAutoRequested()


# =============================================================================
# Guest order
# =============================================================================


@dataclass(frozen=True, slots=True)
class OrderTotals:
    """Subtotal, tax and total of one guest's order, in cents."""

    subtotal_cents: int
    tax_cents: int
    total_cents: int


@dataclass
class GuestOrder:
    """
    One guest's slot in the party.

    Freely mutated while the guest builds their order; after submission
    only the payment and pod fields change.
    """

    guest_number: int
    guest_name: str = ""
    cart: dict[str, int] = field(default_factory=dict)
    slider_labels: dict[str, str] = field(default_factory=dict)
    selections: dict[str, str] = field(default_factory=dict)

    # Assigned by the backend on submission
    order_id: str | None = None
    order_number: str | None = None
    kitchen_order_number: int | str | None = None
    totals: OrderTotals | None = None

    # Payment
    paid: bool = False
    charge_id: str | None = None

    # Pod
    pod: PodChoice = POD_UNSET
    pod_auto_assigned: bool = False
    seat_reserved: bool = False
    pod_assigned_at: datetime | None = None
    pod_reservation_expiry: datetime | None = None

    @property
    def is_submitted(self) -> bool:
        return self.order_id is not None

    @property
    def selected_pod_id(self) -> str | None:
        """Concrete seat id, or None while unset / auto-requested."""
        if isinstance(self.pod, PodAssigned):
            return self.pod.seat_id
        return None

    def clear_pod(self) -> None:
        self.pod = POD_UNSET
        self.pod_auto_assigned = False


# =============================================================================
# Party session
# =============================================================================


@dataclass
class PartySession:
    """The party currently using the kiosk."""

    party_size: int
    payment_type: PaymentType
    guests: list[GuestOrder]
    session_id: str = field(default_factory=new_kiosk_session_id)
    current_guest_index: int = 0
    current_view: FlowView = FlowView.NAME
    current_step_index: int = 0

    # Single aggregate charge of a SINGLE party
    aggregate_charge_id: str | None = None
    # Set when a guest is sent back to POD_SELECTION after a lost reservation
    reselecting: bool = False
    last_allocation_error: str | None = None

    @classmethod
    def create(
        cls,
        party_size: int,
        payment_type: PaymentType | str | None = None,
        max_party_size: int = Limits.MAX_PARTY_SIZE,
    ) -> PartySession:
        """
        Create an empty session for a party.

        A party of one never has to choose a payment type; it is SINGLE.

        Raises:
            InvalidPartyError: party size outside 1..max_party_size (never above 8).
            ValidationError: payment type missing or unknown for a party > 1.
        """
        max_party_size = min(max_party_size, Limits.MAX_PARTY_SIZE)
        if not isinstance(party_size, int) or not Limits.MIN_PARTY_SIZE <= party_size <= max_party_size:
            raise InvalidPartyError(party_size, max_party_size)

        if payment_type is None:
            if party_size > 1:
                raise ValidationError(
                    "Choose whether the party pays together or separately",
                    party_size=party_size,
                )
            payment_type = PaymentType.SINGLE

        try:
            payment_type = PaymentType(payment_type)
        except ValueError:
            raise ValidationError(f"Unknown payment type '{payment_type}'") from None

        guests = [GuestOrder(guest_number=n) for n in range(1, party_size + 1)]
        return cls(party_size=party_size, payment_type=payment_type, guests=guests)

    @property
    def current_guest(self) -> GuestOrder:
        return self.guests[self.current_guest_index]

    @property
    def is_last_guest(self) -> bool:
        return self.current_guest_index == self.party_size - 1

    @property
    def all_paid(self) -> bool:
        return all(g.paid for g in self.guests)
