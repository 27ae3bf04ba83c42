"""
Shared module for configuration and cross-cutting concerns of the kiosk.

STRUCTURE:
- shared.config: Configuration
  - settings.py: Environment config (pydantic-settings)
  - logging.py: Structured logging, PII masking
  - constants.py: PaymentType, FlowView, SeatStatus, PodType, limits

- shared.infrastructure: Runtime plumbing
  - correlation.py: Kiosk session id bound to log records

- shared.utils: Utilities
  - exceptions.py: Kiosk flow exceptions with auto-logging
  - schemas.py: Pydantic wire schemas for menu, seats, orders, payments

IMPORT EXAMPLES:
    from shared.config.settings import settings
    from shared.config.logging import get_logger
    from shared.config.constants import PaymentType, SeatStatus
    from shared.utils.exceptions import AllocationError, SubmissionError
    from shared.utils.schemas import Seat, MenuStep
"""
