"""Tests for the status transition tables and append-only logs."""

import pytest

from wellness_api.models import Order
from wellness_api.shared.lifecycle import (
    BOOKING_TRANSITIONS,
    ORDER_TRANSITIONS,
    append_notification,
    record_transition,
    transition_time,
    validate_status_transition,
)


class TestBookingTransitions:
    @pytest.mark.parametrize(
        "current, new",
        [
            ("pending", "confirmed"),
            ("pending", "cancelled"),
            ("confirmed", "in_progress"),
            ("confirmed", "cancelled"),
            ("confirmed", "no_show"),
            ("in_progress", "completed"),
        ],
    )
    def test_allowed(self, current, new):
        assert validate_status_transition(BOOKING_TRANSITIONS, current, new) is True

    @pytest.mark.parametrize(
        "current, new",
        [
            ("completed", "pending"),
            ("cancelled", "confirmed"),
            ("pending", "completed"),
            ("in_progress", "cancelled"),
            ("no_show", "confirmed"),
            ("confirmed", "pending"),
        ],
    )
    def test_rejected(self, current, new):
        assert validate_status_transition(BOOKING_TRANSITIONS, current, new) is False


class TestOrderTransitions:
    def test_forward_chain(self):
        chain = ["pending", "confirmed", "preparing", "out_for_delivery", "delivered"]
        for current, new in zip(chain, chain[1:]):
            assert validate_status_transition(ORDER_TRANSITIONS, current, new)

    def test_no_skipping_or_going_back(self):
        assert not validate_status_transition(ORDER_TRANSITIONS, "pending", "preparing")
        assert not validate_status_transition(ORDER_TRANSITIONS, "delivered", "out_for_delivery")
        assert not validate_status_transition(ORDER_TRANSITIONS, "preparing", "cancelled")


class TestLogs:
    def test_record_transition_appends_history(self):
        order = Order(order_status="pending", status_history=[], notifications=[])
        record_transition(order, "order_status", "confirmed")
        record_transition(order, "order_status", "preparing")

        assert order.order_status == "preparing"
        assert [e["status"] for e in order.status_history] == ["confirmed", "preparing"]
        assert transition_time(order, "confirmed") == order.status_history[0]["at"]
        assert transition_time(order, "delivered") is None

    def test_append_notification_keeps_earlier_entries(self):
        order = Order(notifications=[])
        append_notification(order, "order_placed", "placed")
        append_notification(order, "order_confirmed", "confirmed")

        assert [n["type"] for n in order.notifications] == ["order_placed", "order_confirmed"]
        assert order.notifications[0]["isRead"] is False
