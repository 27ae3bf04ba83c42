"""
Tests for settings, structured logging, session correlation and exceptions.
"""

import json
import logging

import pytest

from kiosk_flow.models import PartySession
from shared.config.constants import PaymentType
from shared.config.logging import StructuredFormatter, mask_guest_name
from shared.config.settings import Settings
from shared.infrastructure.correlation import (
    KioskSessionFilter,
    get_kiosk_session_id,
    kiosk_session_scope,
)
from shared.utils.exceptions import (
    AllocationError,
    AllocationReason,
    ExternalServiceError,
    InvalidPartyError,
    SubmissionError,
    ValidationError,
)


class TestSettings:
    def test_defaults(self):
        s = Settings(_env_file=None)

        assert s.pod_reservation_minutes == 15
        assert s.max_party_size == 8
        assert s.seat_poll_interval_seconds == 5.0

    def test_production_checks(self):
        s = Settings(
            _env_file=None,
            environment="production",
            debug=True,
            location_id="",
            location_tax_rate=1.5,
        )

        errors = s.validate_production_settings()

        assert any("LOCATION_ID" in e for e in errors)
        assert any("DEBUG" in e for e in errors)
        assert any("TAX_RATE" in e for e in errors)

    @pytest.mark.parametrize("max_party_size", [0, 9, 20])
    def test_max_party_size_bounds(self, max_party_size):
        s = Settings(_env_file=None, max_party_size=max_party_size)

        assert any("MAX_PARTY_SIZE" in e for e in s.validate_production_settings())

    def test_party_above_eight_rejected_even_if_configured(self):
        with pytest.raises(InvalidPartyError):
            PartySession.create(9, PaymentType.SINGLE, max_party_size=12)

    def test_valid_production(self):
        s = Settings(
            _env_file=None,
            environment="production",
            debug=False,
            location_id="loc-1",
            location_tax_rate=0.0725,
            api_base_url="https://api.example.com",
        )

        assert s.validate_production_settings() == []


class TestMaskGuestName:
    @pytest.mark.parametrize(
        "name,expected",
        [("Alexandra", "Al***"), ("Bo", "B***"), ("", "<no-name>"), (None, "<no-name>")],
    )
    def test_mask(self, name, expected):
        assert mask_guest_name(name) == expected


class TestCorrelation:
    def test_scope_sets_and_resets(self):
        before = get_kiosk_session_id()

        with kiosk_session_scope("sess-1") as session_id:
            assert session_id == "sess-1"
            assert get_kiosk_session_id() == "sess-1"

        assert get_kiosk_session_id() == before

    def test_filter_stamps_record(self):
        record = logging.LogRecord("t", logging.INFO, __file__, 1, "msg", (), None)

        with kiosk_session_scope("sess-2"):
            KioskSessionFilter().filter(record)

        assert record.kiosk_session_id == "sess-2"

    def test_structured_formatter_includes_session_and_data(self):
        record = logging.LogRecord("t", logging.INFO, __file__, 1, "Order submitted", (), None)
        record.extra_data = {"order_id": "o-1"}
        record.kiosk_session_id = "sess-3"

        data = json.loads(StructuredFormatter().format(record))

        assert data["message"] == "Order submitted"
        assert data["kiosk_session_id"] == "sess-3"
        assert data["data"] == {"order_id": "o-1"}


class TestExceptions:
    def test_exceptions_log_on_construction(self, caplog):
        with caplog.at_level(logging.WARNING, logger="shared.utils.exceptions"):
            AllocationError(AllocationReason.NONE_AVAILABLE)

        assert caplog.records[-1].extra_data["reason"] == AllocationReason.NONE_AVAILABLE

    def test_retryable_flags(self):
        assert SubmissionError("x").retryable is True
        assert ExternalServiceError("orders", status_code=502).retryable is True
        assert ValidationError("x").retryable is False

    def test_invalid_party_is_validation_error(self):
        with pytest.raises(ValidationError):
            PartySession.create(0, PaymentType.SINGLE)

    def test_invalid_party_message(self):
        assert "between 1 and 8" in InvalidPartyError(9, 8).detail

    def test_unknown_payment_type(self):
        with pytest.raises(ValidationError):
            PartySession.create(2, "HALVES")
