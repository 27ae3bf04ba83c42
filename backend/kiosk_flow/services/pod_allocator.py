"""
Pod allocation.

Pure decision logic over a seat snapshot: which seats a guest may pick,
which seat auto-assignment picks, and which seats a guest's reservation
must cover. Nothing here performs I/O.

Dual pods are stored with a one-directional link: only the primary seat
carries `dual_partner_id`. `SeatMap` resolves the link in both directions
so callers never scan the snapshot themselves.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from kiosk_flow.models import GuestOrder, PodAssigned
from shared.config.constants import Limits, PaymentType, PodType, SeatStatus
from shared.config.logging import get_logger
from shared.utils.exceptions import AllocationError, AllocationReason
from shared.utils.schemas import Seat

logger = get_logger(__name__)


class SeatMap:
    """Snapshot of seats with bidirectional dual-pod lookup."""

    def __init__(self, seats: Iterable[Seat]):
        self._seats: dict[str, Seat] = {}
        self._reverse: dict[str, str] = {}

        for seat in seats:
            self._seats[seat.id] = seat
        for seat in self._seats.values():
            if seat.dual_partner_id and seat.dual_partner_id in self._seats:
                self._reverse[seat.dual_partner_id] = seat.id

    def __contains__(self, seat_id: str) -> bool:
        return seat_id in self._seats

    def __len__(self) -> int:
        return len(self._seats)

    def get(self, seat_id: str) -> Seat | None:
        return self._seats.get(seat_id)

    def ordered(self) -> list[Seat]:
        """Seats by seat number, the order guests are assigned in."""
        return sorted(self._seats.values(), key=lambda s: (s.number, s.id))

    def partner_of(self, seat_id: str) -> str | None:
        """Partner seat id, following the forward link or its reverse."""
        seat = self._seats.get(seat_id)
        if seat is None:
            return None
        if seat.dual_partner_id and seat.dual_partner_id in self._seats:
            return seat.dual_partner_id
        return self._reverse.get(seat_id)

    def is_dual(self, seat_id: str) -> bool:
        """
        DUAL seat that stores a partner link or is pointed at by one.

        A link to a seat missing from the snapshot still makes the seat
        dual; `partner_of` returns None for it.
        """
        seat = self._seats.get(seat_id)
        if seat is None or seat.pod_type != PodType.DUAL:
            return False
        return bool(seat.dual_partner_id) or seat_id in self._reverse

    def is_hidden_partner(self, seat_id: str) -> bool:
        """
        True for the pointed-to seat of a dual pair.

        If both seats point at each other the lower-numbered one is the
        primary.
        """
        pointer_id = self._reverse.get(seat_id)
        if pointer_id is None:
            return False
        seat = self._seats[seat_id]
        if not seat.dual_partner_id:
            return True
        pointer = self._seats[pointer_id]
        return (seat.number, seat.id) > (pointer.number, pointer.id)


class PodAllocator:
    """
    Seat eligibility and auto-assignment for one party.

    Usage:
        allocator = PodAllocator(seats, party_size=2, payment_type=PaymentType.SINGLE)
        claimed = allocator.claimed_by_others(session.guests, session.current_guest_index)
        seat = allocator.validate_selection("seat-4", claimed)
    """

    def __init__(self, seats: Iterable[Seat], party_size: int, payment_type: PaymentType):
        self.seat_map = seats if isinstance(seats, SeatMap) else SeatMap(seats)
        self.party_size = party_size
        self.payment_type = payment_type

    @property
    def can_select_dual_pod(self) -> bool:
        return self.party_size >= Limits.MIN_PARTY_FOR_DUAL_POD and self.payment_type == PaymentType.SINGLE

    def claimed_by_others(self, guests: Sequence[GuestOrder], guest_index: int) -> set[str]:
        """Seats held by other guests of the party, dual partners included."""
        claimed: set[str] = set()
        for index, guest in enumerate(guests):
            if index == guest_index or not isinstance(guest.pod, PodAssigned):
                continue
            claimed.add(guest.pod.seat_id)
            partner = self.seat_map.partner_of(guest.pod.seat_id)
            if partner:
                claimed.add(partner)
        return claimed

    def rejection_reason(self, seat_id: str, claimed: set[str]) -> str | None:
        """Why a seat cannot be selected, or None when it can."""
        seat = self.seat_map.get(seat_id)
        if seat is None:
            return AllocationReason.UNKNOWN_SEAT
        if self.seat_map.is_hidden_partner(seat_id):
            return AllocationReason.HIDDEN_PARTNER

        dual = self.seat_map.is_dual(seat_id)
        if dual and not self.can_select_dual_pod:
            return AllocationReason.DUAL_NOT_ALLOWED

        partner_id = self.seat_map.partner_of(seat_id) if dual else None
        if seat_id in claimed or (partner_id and partner_id in claimed):
            return AllocationReason.ALREADY_CLAIMED

        if seat.status != SeatStatus.AVAILABLE:
            return AllocationReason.SEAT_UNAVAILABLE
        # Partner missing from the snapshot: the pod cannot be booked as a pair
        if dual and partner_id is None:
            return AllocationReason.SEAT_UNAVAILABLE
        if partner_id and self.seat_map.get(partner_id).status != SeatStatus.AVAILABLE:
            return AllocationReason.SEAT_UNAVAILABLE
        return None

    def validate_selection(self, seat_id: str, claimed: set[str]) -> Seat:
        """
        Check that a guest may pick a seat.

        Raises:
            AllocationError: with the reason the seat cannot be picked.
        """
        reason = self.rejection_reason(seat_id, claimed)
        if reason is not None:
            raise AllocationError(
                reason,
                seat_id=seat_id,
                party_size=self.party_size,
                payment_type=self.payment_type.value,
            )
        return self.seat_map.get(seat_id)

    def selectable_seats(self, claimed: set[str]) -> list[Seat]:
        return [s for s in self.seat_map.ordered() if self.rejection_reason(s.id, claimed) is None]

    def auto_assign(self, claimed: set[str]) -> Seat | None:
        """
        Pick a seat for a guest who asked the kiosk to choose.

        Prefers a dual pod when the party may take one, otherwise the
        lowest-numbered available single pod. Returns None when nothing is
        available.
        """
        candidates = self.selectable_seats(claimed)

        if self.can_select_dual_pod:
            for seat in candidates:
                if self.seat_map.is_dual(seat.id):
                    return seat

        for seat in candidates:
            if not self.seat_map.is_dual(seat.id):
                return seat

        logger.info(
            "No seat available for auto-assign",
            seats=len(self.seat_map),
            claimed=len(claimed),
        )
        return None

    def seats_to_reserve(self, guest_index: int, guests: Sequence[GuestOrder]) -> list[str]:
        """
        Seats a guest's reservation covers.

        A dual pod is reserved as one unit by the guest holding its primary
        seat. A guest holding the partner of a primary held elsewhere in the
        party reserves nothing of their own.
        """
        seat_id = guests[guest_index].selected_pod_id
        if seat_id is None:
            return []
        if not self.seat_map.is_dual(seat_id):
            return [seat_id]

        partner = self.seat_map.partner_of(seat_id)
        if partner is None:
            return [seat_id]
        if self.seat_map.is_hidden_partner(seat_id):
            primary_held = any(
                g.selected_pod_id == partner for i, g in enumerate(guests) if i != guest_index
            )
            return [] if primary_held else [seat_id]
        return [seat_id, partner]
