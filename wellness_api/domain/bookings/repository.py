"""Booking repository - Database operations for bookings"""

from datetime import date, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from ...models import ACTIVE_BOOKING_STATUSES, Booking, HealthProfessional
from .availability import intervals_overlap


class BookingRepository:
    """Repository for booking database operations"""

    @staticmethod
    def get_professional(
        db: Session, professional_id: int, for_update: bool = False
    ) -> Optional[HealthProfessional]:
        """Get a professional by ID, optionally locking the row for the rest of the transaction"""
        query = db.query(HealthProfessional).filter(HealthProfessional.id == professional_id)
        if for_update:
            query = query.with_for_update()
        return query.first()

    @staticmethod
    def get_booking(db: Session, booking_id: int) -> Optional[Booking]:
        return db.query(Booking).filter(Booking.id == booking_id).first()

    @staticmethod
    def get_user_booking(db: Session, booking_id: int, user_id: int) -> Optional[Booking]:
        """Get a booking only if it belongs to the user"""
        return (
            db.query(Booking)
            .filter(Booking.id == booking_id, Booking.user_id == user_id)
            .first()
        )

    @staticmethod
    def list_user_bookings(
        db: Session,
        user_id: int,
        status: Optional[str] = None,
        limit: int = 10,
        offset: int = 0,
    ) -> tuple[list[Booking], int]:
        """Get a page of the user's bookings ordered by appointment, plus the total count"""
        query = db.query(Booking).filter(Booking.user_id == user_id)
        if status:
            query = query.filter(Booking.status == status)

        total = query.count()
        bookings = (
            query.order_by(Booking.appointment_date.asc(), Booking.appointment_time.asc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return bookings, total

    @staticmethod
    def list_upcoming(db: Session, user_id: int, today: date, limit: int = 5) -> list[Booking]:
        return (
            db.query(Booking)
            .filter(
                Booking.user_id == user_id,
                Booking.status == "confirmed",
                Booking.appointment_date >= today,
            )
            .order_by(Booking.appointment_date.asc(), Booking.appointment_time.asc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def active_bookings_between(
        db: Session, professional_id: int, first_day: date, last_day: date
    ) -> list[Booking]:
        """Bookings holding a slot for the professional within a date range"""
        return (
            db.query(Booking)
            .filter(
                Booking.professional_id == professional_id,
                Booking.appointment_date >= first_day,
                Booking.appointment_date <= last_day,
                Booking.status.in_(ACTIVE_BOOKING_STATUSES),
            )
            .all()
        )

    @classmethod
    def find_conflicting_booking(
        cls, db: Session, professional_id: int, day: date, clock: str, duration: int
    ) -> Optional[Booking]:
        """
        First active booking whose [time, time + duration) overlaps the request.
        An identical start time always overlaps. Neighbouring days are included
        for appointments that run past midnight.
        """
        one_day = timedelta(days=1)
        candidates = cls.active_bookings_between(db, professional_id, day - one_day, day + one_day)
        for booking in candidates:
            days_apart = (day - booking.appointment_date).days
            if (days_apart == 0 and booking.appointment_time == clock) or intervals_overlap(
                booking.appointment_time, booking.duration or 0, clock, duration, days_apart
            ):
                return booking
        return None

    @staticmethod
    def add_booking(db: Session, booking: Booking) -> Booking:
        """Stage a new booking; the caller commits"""
        db.add(booking)
        db.flush()
        return booking
