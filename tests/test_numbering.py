"""Tests for booking and order reference numbers."""

import re
from datetime import datetime

from wellness_api.shared.clock import local_zone
from wellness_api.shared.numbering import (
    BOOKING_PREFIX,
    ORDER_PREFIX,
    format_reference,
    next_reference,
)


class TestFormatReference:
    def test_zero_padded_suffix(self):
        assert format_reference("BK", "240115", 42) == "BK240115042"

    def test_suffix_widens_past_999(self):
        assert format_reference("MH", "240115", 1000) == "MH2401151000"


class TestNextReference:
    def test_increments_within_a_day(self, db_session):
        now = datetime(2024, 1, 15, 9, 0, tzinfo=local_zone())
        first = next_reference(db_session, BOOKING_PREFIX, now)
        second = next_reference(db_session, BOOKING_PREFIX, now)
        db_session.commit()

        assert first == "BK240115001"
        assert second == "BK240115002"

    def test_prefixes_count_independently(self, db_session):
        now = datetime(2024, 1, 15, 9, 0, tzinfo=local_zone())
        next_reference(db_session, BOOKING_PREFIX, now)
        assert next_reference(db_session, ORDER_PREFIX, now) == "MH240115001"

    def test_new_day_restarts_counter(self, db_session):
        next_reference(db_session, ORDER_PREFIX, datetime(2024, 1, 15, 23, 59, tzinfo=local_zone()))
        ref = next_reference(db_session, ORDER_PREFIX, datetime(2024, 1, 16, 0, 1, tzinfo=local_zone()))
        assert ref == "MH240116001"

    def test_format(self, db_session):
        ref = next_reference(db_session, BOOKING_PREFIX)
        assert re.fullmatch(r"BK\d{6}\d{3,}", ref)
