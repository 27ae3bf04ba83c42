"""
Order submitter.

Turns a guest's accumulated selections into the canonical line-item list
and creates the order on the backend. The backend's pre-tax total is
authoritative; tax is added locally from the location's tax rate.
"""

from __future__ import annotations

from typing import Protocol

from kiosk_flow.models import GuestOrder
from kiosk_flow.services.guest_order_builder import MenuIndex
from kiosk_flow.services.pricing import build_totals
from shared.config.constants import SelectionMode
from shared.config.logging import get_logger, mask_guest_name
from shared.utils.exceptions import ExternalServiceError, SubmissionError, ValidationError
from shared.utils.schemas import CreateOrderResponse, LineItem

logger = get_logger(__name__)


class OrderCreator(Protocol):
    async def create_order(
        self, location_id: str, guest_name: str, line_items: list[LineItem]
    ) -> CreateOrderResponse: ...


class OrderSubmitter:
    """Creates one backend order per guest."""

    def __init__(
        self,
        order_client: OrderCreator,
        menu: MenuIndex,
        location_id: str,
        tax_rate: float,
    ):
        self._orders = order_client
        self._menu = menu
        self._location_id = location_id
        self._tax_rate = tax_rate

    def build_line_items(self, guest: GuestOrder) -> list[LineItem]:
        """
        Canonical line items for a guest.

        One line with quantity 1 per single-choice selection, then every
        cart entry that is a slider (with its label) or has quantity > 0.
        """
        items: list[LineItem] = [
            LineItem(item_id=item_id, quantity=1)
            for item_id in guest.selections.values()
            if item_id
        ]

        for item_id, quantity in guest.cart.items():
            if self._is_slider(item_id):
                items.append(
                    LineItem(
                        item_id=item_id,
                        quantity=quantity,
                        selected_value=guest.slider_labels.get(item_id, str(quantity)),
                    )
                )
            elif quantity > 0:
                items.append(LineItem(item_id=item_id, quantity=quantity))

        return items

    async def submit(self, guest: GuestOrder, running_total_cents: int) -> GuestOrder:
        """
        Create the guest's order.

        A guest that already has an order id is returned unchanged, so a
        retry after a later failure never creates a second order.

        Raises:
            ValidationError: nothing to order or no guest name.
            SubmissionError: backend call failed; guest left untouched.
        """
        if guest.is_submitted:
            logger.info("Order already submitted", guest_number=guest.guest_number, order_id=guest.order_id)
            return guest

        if not guest.guest_name:
            raise ValidationError("Guest name is required", guest_number=guest.guest_number)

        line_items = self.build_line_items(guest)
        if not line_items:
            raise ValidationError("Add at least one item before submitting", guest_number=guest.guest_number)

        try:
            response = await self._orders.create_order(self._location_id, guest.guest_name, line_items)
        except ExternalServiceError as exc:
            raise SubmissionError(
                "Could not submit your order. Please try again.",
                guest_number=guest.guest_number,
                status_code=exc.status_code,
            ) from exc

        if response.pre_tax_total_cents != running_total_cents:
            logger.warning(
                "Server subtotal differs from running total",
                guest_number=guest.guest_number,
                order_id=response.order_id,
                server_cents=response.pre_tax_total_cents,
                local_cents=running_total_cents,
            )

        guest.order_id = response.order_id
        guest.order_number = response.order_number
        guest.kitchen_order_number = response.kitchen_order_number
        guest.totals = build_totals(response.pre_tax_total_cents, self._tax_rate)

        logger.info(
            "Order submitted",
            guest_number=guest.guest_number,
            guest=mask_guest_name(guest.guest_name),
            order_id=guest.order_id,
            total_cents=guest.totals.total_cents,
        )
        return guest

    def _is_slider(self, item_id: str) -> bool:
        indexed = self._menu.item(item_id)
        return indexed is not None and indexed.section.selection_mode == SelectionMode.SLIDER
