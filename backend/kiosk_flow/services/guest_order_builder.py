"""
Guest order builder.

Accumulates one guest's cart, slider levels and single-choice selections
across the menu steps, and computes the running price total shown while
the guest builds their order.
"""

from __future__ import annotations

from dataclasses import dataclass

from kiosk_flow.models import GuestOrder
from kiosk_flow.services.pricing import item_price_cents
from shared.config.constants import Limits, SelectionMode
from shared.config.logging import get_logger
from shared.utils.exceptions import MissingSelectionError, ValidationError
from shared.utils.schemas import MenuItem, MenuSection, MenuStep

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class IndexedItem:
    """A menu item together with the section it is offered in."""

    item: MenuItem
    section: MenuSection


class MenuIndex:
    """
    Lookup tables over a fetched menu.

    Menu steps are read-only for the lifetime of a kiosk session, so the
    index is built once and shared by every guest's builder.
    """

    def __init__(self, steps: list[MenuStep]):
        self._steps = list(steps)
        self._items: dict[str, IndexedItem] = {}
        self._sections: dict[str, MenuSection] = {}

        for step in self._steps:
            for section in step.sections:
                self._sections[section.id] = section
                for item in section.all_items():
                    self._items[item.id] = IndexedItem(item=item, section=section)

    @property
    def steps(self) -> list[MenuStep]:
        return self._steps

    @property
    def step_count(self) -> int:
        return len(self._steps)

    def item(self, item_id: str) -> IndexedItem | None:
        return self._items.get(item_id)

    def section(self, section_id: str) -> MenuSection | None:
        return self._sections.get(section_id)

    def slider_sections(self) -> list[MenuSection]:
        return [
            s for s in self._sections.values()
            if s.selection_mode == SelectionMode.SLIDER and s.item is not None
        ]


class GuestOrderBuilder:
    """
    Mutates the active guest's order slot.

    Usage:
        builder = GuestOrderBuilder(menu_index, session.current_guest)
        builder.update_cart("extra-egg", 2)
        builder.update_selection("base", "rice")
        total = builder.compute_running_total()
    """

    def __init__(self, menu: MenuIndex, guest: GuestOrder):
        self._menu = menu
        self._guest = guest

    @property
    def guest(self) -> GuestOrder:
        return self._guest

    def seed_defaults(self) -> None:
        """
        Pre-seed every slider at its configured default position.

        Called once per guest when the session is created.
        """
        for section in self._menu.slider_sections():
            config = section.slider_config or section.item.slider_config
            position = config.default_position if config else 0
            label = config.label_for(position) if config else str(position)
            self._guest.cart[section.item.id] = position
            self._guest.slider_labels[section.item.id] = label

    def update_cart(self, item_id: str, quantity: int, max_quantity: int | None = None) -> int:
        """
        Set the quantity of an item.

        Clamps to `max_quantity` (or the section's configured maximum when
        none is given) and never below 0. Returns the stored quantity.
        """
        if max_quantity is None:
            indexed = self._menu.item(item_id)
            if indexed is not None:
                max_quantity = indexed.section.max_quantity
        if max_quantity is None:
            max_quantity = Limits.MAX_QUANTITY

        clamped = max(Limits.MIN_QUANTITY, min(quantity, max_quantity))
        self._guest.cart[item_id] = clamped
        return clamped

    def update_slider(self, item_id: str, value: int, label: str | None = None) -> str:
        """
        Store a slider position and its display label.

        Sliders are a qualitative choice (e.g. "Light" ... "Extra"), not a
        purchasable quantity. When no label is passed it is resolved from
        the slider's configured labels.
        """
        if label is None:
            label = self._resolve_slider_label(item_id, value)

        self._guest.cart[item_id] = value
        self._guest.slider_labels[item_id] = label
        return label

    def update_selection(self, section_id: str, item_id: str) -> None:
        """Overwrite the single choice for a section."""
        self._guest.selections[section_id] = item_id

    def compute_running_total(self) -> int:
        """
        Running total in cents.

        SINGLE selections contribute their base price, MULTIPLE cart items
        their tiered price, SLIDER items nothing.
        """
        total = 0

        for item_id in self._guest.selections.values():
            indexed = self._menu.item(item_id)
            if indexed is None:
                logger.warning("Selected item not in menu", item_id=item_id)
                continue
            if indexed.section.selection_mode == SelectionMode.SINGLE:
                total += indexed.item.base_price_cents

        for item_id, quantity in self._guest.cart.items():
            indexed = self._menu.item(item_id)
            if indexed is None:
                continue
            if indexed.section.selection_mode == SelectionMode.MULTIPLE:
                total += item_price_cents(indexed.item, quantity)

        return total

    def validate_step(self, step_index: int) -> None:
        """
        Check that every required single-choice section of a step is answered.

        Raises:
            MissingSelectionError: first unanswered required section.
        """
        if not 0 <= step_index < self._menu.step_count:
            raise ValidationError(f"Menu step {step_index} does not exist", step_index=step_index)

        step = self._menu.steps[step_index]
        for section in step.sections:
            if not section.required or section.selection_mode != SelectionMode.SINGLE:
                continue
            if not self._guest.selections.get(section.id):
                raise MissingSelectionError(section.id, section.name, step_id=step.id)

    def validate_all(self) -> None:
        """Validate every step; used before the order is submitted."""
        for step_index in range(self._menu.step_count):
            self.validate_step(step_index)

    def _resolve_slider_label(self, item_id: str, value: int) -> str:
        indexed = self._menu.item(item_id)
        if indexed is None:
            return str(value)
        config = indexed.section.slider_config or indexed.item.slider_config
        if config is None:
            return str(value)
        return config.label_for(value)
