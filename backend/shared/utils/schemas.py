"""
Wire schemas for the kiosk's external collaborators.

The backend speaks camelCase JSON; models here use snake_case attributes
with camelCase aliases and accept either form on input.
"""

from datetime import datetime

from pydantic import AliasChoices, BaseModel, Field
from pydantic.alias_generators import to_camel

from shared.config.constants import (
    FulfillmentType,
    PodType,
    SeatStatus,
    SelectionMode,
)


class WireModel(BaseModel):
    """Base for camelCase wire payloads."""

    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,  # Allow both field name and alias
    }

    def to_wire(self) -> dict:
        """Serialize for the backend: camelCase keys, unset optionals dropped."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# =============================================================================
# Menu Catalog
# =============================================================================


class SliderConfig(WireModel):
    """Configured positions and labels of a slider section."""

    min: int = 0
    max: int = 4
    default: int | None = None
    labels: list[str] = Field(default_factory=list)

    def label_for(self, value: int) -> str:
        """Resolve a slider position to its display label."""
        if 0 <= value < len(self.labels):
            return self.labels[value]
        return str(value)

    @property
    def default_position(self) -> int:
        return self.default if self.default is not None else 0


class MenuItem(WireModel):
    """A selectable menu item with tiered pricing."""

    id: str
    name: str = ""
    base_price_cents: int = 0
    additional_price_cents: int = 0
    included_quantity: int = 0
    selection_mode: SelectionMode | None = None
    slider_config: SliderConfig | None = None
    is_available: bool = True


class MenuSection(WireModel):
    """A section of a menu step."""

    id: str
    name: str = ""
    description: str | None = None
    selection_mode: SelectionMode
    required: bool = False
    items: list[MenuItem] = Field(default_factory=list)
    # SLIDER sections carry a single item plus its slider configuration
    item: MenuItem | None = None
    slider_config: SliderConfig | None = None
    max_quantity: int | None = None

    def all_items(self) -> list[MenuItem]:
        if self.item is not None:
            return [*self.items, self.item]
        return list(self.items)


class MenuStep(WireModel):
    """One screen of the menu builder."""

    id: str
    title: str = ""
    sections: list[MenuSection] = Field(default_factory=list)


class MenuResponse(WireModel):
    """Response of GET /menu/steps."""

    steps: list[MenuStep] = Field(default_factory=list)


# =============================================================================
# Seat Registry
# =============================================================================


class Seat(WireModel):
    """A physical pod as reported by the seat registry."""

    id: str
    number: int
    status: SeatStatus
    pod_type: PodType = PodType.SINGLE
    # Only one seat of a dual pair stores the forward link
    dual_partner_id: str | None = None
    row: int | None = None
    col: int | None = None
    side: str | None = None


class SeatReservationRequest(WireModel):
    """Conditional write: reserve seats only if still AVAILABLE."""

    seat_ids: list[str] = Field(min_length=1)
    order_id: str
    expires_at: datetime
    expected_status: SeatStatus = SeatStatus.AVAILABLE


# =============================================================================
# Orders
# =============================================================================


class LineItem(WireModel):
    """One canonical line of a guest's order."""

    item_id: str = Field(
        serialization_alias="menuItemId",
        validation_alias=AliasChoices("menuItemId", "itemId", "item_id"),
    )
    quantity: int = Field(ge=0)
    selected_value: str | None = None


class CreateOrderRequest(WireModel):
    """Request body of POST /orders for a kiosk guest."""

    location_id: str
    guest_name: str = Field(min_length=1, max_length=50)
    items: list[LineItem] = Field(min_length=1)
    fulfillment_type: str = FulfillmentType.WALK_IN
    is_kiosk_order: bool = True
    estimated_arrival: datetime | None = None


class CreateOrderResponse(WireModel):
    """Authoritative identifiers and pre-tax total assigned by the backend."""

    order_id: str = Field(validation_alias=AliasChoices("orderId", "id", "order_id"))
    order_number: str = ""
    kitchen_order_number: int | str | None = None
    pre_tax_total_cents: int = Field(
        validation_alias=AliasChoices("preTaxTotalCents", "totalCents", "pre_tax_total_cents"),
    )


class OrderUpdate(WireModel):
    """
    Body of PATCH /orders/{id} after payment.

    Arrival at the pod is recorded by the separate check-in flow, so this
    model has no pod-confirmed field.
    """

    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "extra": "forbid",
    }

    payment_status: str
    seat_id: str | None = None
    pod_selection_method: str | None = None
    pod_assigned_at: datetime | None = None
    pod_reservation_expiry: datetime | None = None


# =============================================================================
# Payments
# =============================================================================


class ChargeRequest(WireModel):
    """Opaque charge-and-confirm request to the payment gateway."""

    amount_cents: int = Field(gt=0)
    currency: str = "usd"
    reference: str
    metadata: dict[str, str] = Field(default_factory=dict)


class ChargeResult(WireModel):
    """Result of a charge as reported by the payment gateway."""

    charge_id: str = Field(
        validation_alias=AliasChoices("chargeId", "paymentIntentId", "id", "charge_id"),
    )
    status: str
    amount_cents: int = Field(
        default=0,
        validation_alias=AliasChoices("amountCents", "amountReceived", "amount", "amount_cents"),
    )
