"""
Kiosk multi-guest ordering flow.

Structure:
    FlowController (state machine)
        ↓
    Services: GuestOrderBuilder, OrderSubmitter, PodAllocator,
              PaymentCoordinator, SeatSnapshotPoller
        ↓
    Clients: menu catalog, seat registry, orders, payment gateway
"""

__version__ = "1.0.0"
