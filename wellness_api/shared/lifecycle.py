"""
Status state machines for bookings and orders.

Booking: pending → confirmed → in_progress → completed
         pending | confirmed → cancelled
         confirmed → no_show

Order:   pending → confirmed → preparing → out_for_delivery → delivered
         pending | confirmed → cancelled

Any transition missing from a table is rejected.
"""

from datetime import datetime
from typing import Optional

from .clock import utcnow

BOOKING_STATUSES = ("pending", "confirmed", "in_progress", "completed", "cancelled", "no_show")
ORDER_STATUSES = ("pending", "confirmed", "preparing", "out_for_delivery", "delivered", "cancelled")

BOOKING_TRANSITIONS = {
    "pending": ["confirmed", "cancelled"],
    "confirmed": ["in_progress", "cancelled", "no_show"],
    "in_progress": ["completed"],
    "completed": [],  # Terminal state
    "cancelled": [],  # Terminal state
    "no_show": [],  # Terminal state
}

ORDER_TRANSITIONS = {
    "pending": ["confirmed", "cancelled"],
    "confirmed": ["preparing", "cancelled"],
    "preparing": ["out_for_delivery"],
    "out_for_delivery": ["delivered"],
    "delivered": [],  # Terminal state
    "cancelled": [],  # Terminal state
}

CANCELLABLE_STATUSES = ("pending", "confirmed")


def validate_status_transition(transitions: dict, current_status: str, new_status: str) -> bool:
    """
    Validate if a status transition is allowed

    Args:
        transitions: Transition table (BOOKING_TRANSITIONS or ORDER_TRANSITIONS)
        current_status: Current status
        new_status: Desired new status

    Returns:
        bool: True if transition is valid, False otherwise
    """
    return new_status in transitions.get(current_status, [])


def history_entry(status: str, at: Optional[datetime] = None) -> dict:
    return {"status": status, "at": (at or utcnow()).isoformat()}


def notification_entry(kind: str, message: str, at: Optional[datetime] = None) -> dict:
    return {
        "type": kind,
        "message": message,
        "sentAt": (at or utcnow()).isoformat(),
        "isRead": False,
    }


def record_transition(entity, status_attr: str, new_status: str, at: Optional[datetime] = None):
    """Set the status and append to the entity's transition log.

    JSON columns are reassigned rather than mutated in place so the ORM
    picks up the change.
    """
    at = at or utcnow()
    setattr(entity, status_attr, new_status)
    entity.status_history = [*(entity.status_history or []), history_entry(new_status, at)]


def append_notification(entity, kind: str, message: str, at: Optional[datetime] = None):
    entity.notifications = [*(entity.notifications or []), notification_entry(kind, message, at)]


def transition_time(entity, status: str) -> Optional[str]:
    """Timestamp of the most recent transition into `status`, if any"""
    for entry in reversed(entity.status_history or []):
        if entry.get("status") == status:
            return entry.get("at")
    return None
