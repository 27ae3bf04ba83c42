"""
Kiosk flow services.
"""

from kiosk_flow.services.flow_controller import FlowController
from kiosk_flow.services.guest_order_builder import GuestOrderBuilder, MenuIndex
from kiosk_flow.services.order_submitter import OrderSubmitter
from kiosk_flow.services.payment_coordinator import PaymentCoordinator
from kiosk_flow.services.pod_allocator import PodAllocator, SeatMap
from kiosk_flow.services.pricing import build_totals, compute_tax_cents, item_price_cents, tiered_price_cents
from kiosk_flow.services.seat_poller import SeatSnapshotPoller

__all__ = [
    "FlowController",
    "GuestOrderBuilder",
    "MenuIndex",
    "OrderSubmitter",
    "PaymentCoordinator",
    "PodAllocator",
    "SeatMap",
    "SeatSnapshotPoller",
    "build_totals",
    "compute_tax_cents",
    "item_price_cents",
    "tiered_price_cents",
]
