"""
Pure transition functions of the kiosk flow.

Each function maps the current position (view, guest, menu step) plus the
facts it depends on to the next position. The FlowController applies the
result to its PartySession; nothing here mutates state or performs I/O.
"""

from collections.abc import Sequence
from typing import NamedTuple

from kiosk_flow.models import GuestOrder, PodAssigned
from shared.config.constants import FlowView, PaymentType


class Position(NamedTuple):
    view: FlowView
    guest_index: int
    step_index: int


def after_name(pos: Position) -> Position:
    return Position(FlowView.MENU, pos.guest_index, 0)


def after_next_step(pos: Position, step_count: int) -> Position:
    """Next menu step, or REVIEW after the last one."""
    if pos.step_index + 1 < step_count:
        return Position(FlowView.MENU, pos.guest_index, pos.step_index + 1)
    return Position(FlowView.REVIEW, pos.guest_index, pos.step_index)


def after_previous_step(pos: Position) -> Position:
    """Previous menu step; no-op on the first step."""
    if pos.step_index > 0:
        return Position(FlowView.MENU, pos.guest_index, pos.step_index - 1)
    return pos


def after_submit(pos: Position, party_size: int, payment_type: PaymentType) -> Position:
    """
    Where a successfully submitted order leads.

    A SINGLE party hands the device on until the last guest has ordered,
    then picks pods for every guest starting again from the first.
    """
    if payment_type == PaymentType.SEPARATE:
        return Position(FlowView.POD_SELECTION, pos.guest_index, pos.step_index)

    if pos.guest_index < party_size - 1:
        return Position(FlowView.PASS, pos.guest_index, pos.step_index)
    return Position(FlowView.POD_SELECTION, 0, 0)


def next_unassigned_guest(guests: Sequence[GuestOrder], after_index: int) -> int | None:
    """First unpaid guest after `after_index` without a concrete seat."""
    for index in range(after_index + 1, len(guests)):
        guest = guests[index]
        if not guest.paid and not isinstance(guest.pod, PodAssigned):
            return index
    return None


def after_pod_confirm(
    pos: Position,
    payment_type: PaymentType,
    guests: Sequence[GuestOrder],
    reselecting: bool = False,
) -> Position:
    """
    Where a confirmed pod leads.

    SEPARATE guests pay right away. SINGLE parties continue with the next
    guest still needing a pod; a guest given the partner seat of a dual
    pod already holds one and is skipped. When nobody is left the party
    pays.

    While re-selecting after a lost reservation, any unpaid guest of the
    party without a seat is revisited, not only those after the current one.
    """
    if payment_type == PaymentType.SEPARATE:
        return Position(FlowView.PAYMENT, pos.guest_index, pos.step_index)

    after_index = -1 if reselecting else pos.guest_index
    next_index = next_unassigned_guest(guests, after_index)
    if next_index is None:
        return Position(FlowView.PAYMENT, pos.guest_index, pos.step_index)
    return Position(FlowView.POD_SELECTION, next_index, pos.step_index)


def after_payment(pos: Position, party_size: int, payment_type: PaymentType) -> Position:
    if payment_type == PaymentType.SEPARATE and pos.guest_index < party_size - 1:
        return Position(FlowView.PASS, pos.guest_index, pos.step_index)
    return Position(FlowView.COMPLETE, pos.guest_index, pos.step_index)


def after_pass(pos: Position) -> Position:
    """The next guest starts at name entry on the first menu step."""
    return Position(FlowView.NAME, pos.guest_index + 1, 0)
