"""Human-readable reference numbers for bookings and orders.

Format: <PREFIX><YY><MM><DD><NNN>, e.g. BK240115042. The suffix comes from a
per-prefix, per-day counter incremented inside the caller's transaction, so
a reference is only ever issued together with the row that carries it.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from ..models import ReferenceCounter
from .clock import local_now

logger = logging.getLogger(__name__)

BOOKING_PREFIX = "BK"
ORDER_PREFIX = "MH"

_UPSERT_INSERTS = {"postgresql": pg_insert, "sqlite": sqlite_insert}


def format_reference(prefix: str, day: str, value: int) -> str:
    # Suffix widens past 999 rather than wrapping
    return f"{prefix}{day}{value:03d}"


def _lock_counter(db: Session, prefix: str, day: str) -> ReferenceCounter:
    dialect = db.get_bind().dialect.name
    insert = _UPSERT_INSERTS.get(dialect)

    if insert is not None:
        # Create the row if this is the first reference of the day; a concurrent
        # creator wins silently and we lock its row instead
        db.execute(
            insert(ReferenceCounter)
            .values(prefix=prefix, day=day, last_value=0)
            .on_conflict_do_nothing(index_elements=["prefix", "day"])
        )
        return (
            db.query(ReferenceCounter)
            .filter(ReferenceCounter.prefix == prefix, ReferenceCounter.day == day)
            .with_for_update()
            .one()
        )

    counter = (
        db.query(ReferenceCounter)
        .filter(ReferenceCounter.prefix == prefix, ReferenceCounter.day == day)
        .with_for_update()
        .first()
    )
    if counter is None:
        counter = ReferenceCounter(prefix=prefix, day=day, last_value=0)
        db.add(counter)
    return counter


def next_reference(db: Session, prefix: str, now: Optional[datetime] = None) -> str:
    """Issue the next reference for `prefix`. Does not commit."""
    day = (now or local_now()).strftime("%y%m%d")
    counter = _lock_counter(db, prefix, day)
    counter.last_value = (counter.last_value or 0) + 1
    db.flush()

    reference = format_reference(prefix, day, counter.last_value)
    logger.debug(f"🔢 Issued reference {reference}")
    return reference
