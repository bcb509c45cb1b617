"""Booking service - Booking lifecycle and slot reservation"""

import logging
from datetime import date, datetime, timedelta
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ...config import (
    BOOKING_CANCELLATION_WINDOW_HOURS,
    BOOKING_DEFAULT_DURATION,
    DEFAULT_CURRENCY,
)
from ...exceptions import (
    ConflictError,
    InternalError,
    InvalidStateError,
    NotFoundError,
    ValidationFailed,
)
from ...models import STAFF_ROLES, Booking, HealthProfessional, User
from ...shared.clock import appointment_datetime, local_now, utcnow
from ...shared.lifecycle import (
    BOOKING_STATUSES,
    BOOKING_TRANSITIONS,
    CANCELLABLE_STATUSES,
    append_notification,
    record_transition,
    validate_status_transition,
)
from ...shared.numbering import BOOKING_PREFIX, next_reference
from ...shared.validators import validate_ratings
from .availability import is_available, next_available_slot, weekday_name
from .repository import BookingRepository
from .schemas import BookingCreate

logger = logging.getLogger(__name__)


LOCATION_BY_CONSULTATION = {"in_person": "clinic", "online": "online", "home_visit": "home"}

# Notification written when an administrative transition has no explicit message
DEFAULT_STATUS_NOTIFICATIONS = {
    "confirmed": ("booking_confirmed", "Your appointment has been confirmed"),
    "completed": ("completed", "Your appointment has been completed"),
    "no_show": ("no_show", "You missed your appointment"),
}


class BookingService:
    """Service layer for booking business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = BookingRepository()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_booking(self, booking_id: int, user: User) -> Booking:
        """Get a booking owned by the user"""
        booking = self.repo.get_user_booking(self.db, booking_id, user.id)
        if not booking:
            raise NotFoundError("Booking not found")
        return booking

    def list_bookings(
        self, user: User, status: Optional[str] = None, limit: int = 10, page: int = 1
    ) -> tuple[list[Booking], int]:
        if status and status not in BOOKING_STATUSES:
            raise ValidationFailed(f"Unknown booking status: {status}")
        return self.repo.list_user_bookings(
            self.db, user.id, status=status, limit=limit, offset=(page - 1) * limit
        )

    def upcoming_bookings(self, user: User) -> list[Booking]:
        return self.repo.list_upcoming(self.db, user.id, local_now().date())

    def get_active_professional(self, professional_id: int, for_update: bool = False):
        professional = self.repo.get_professional(self.db, professional_id, for_update=for_update)
        if not professional or not professional.is_active:
            raise NotFoundError("Health professional not found or not available")
        return professional

    def check_slot(
        self, professional_id: int, day: date, clock: str, duration: Optional[int] = None
    ) -> dict:
        """Whether a slot is inside the professional's hours and not already taken"""
        professional = self.get_active_professional(professional_id)
        duration = duration or BOOKING_DEFAULT_DURATION

        within_hours = is_available(professional.availability, weekday_name(day), clock)
        free = self.repo.find_conflicting_booking(
            self.db, professional.id, day, clock, duration
        ) is None
        return {
            "date": day,
            "time": clock,
            "day": weekday_name(day),
            "withinHours": within_hours,
            "free": free,
            "available": within_hours and free,
        }

    def next_slot(self, professional_id: int, now: Optional[datetime] = None) -> Optional[dict]:
        professional = self.get_active_professional(professional_id)
        return next_available_slot(professional.availability, now or local_now())

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create_booking(
        self, data: BookingCreate, user: User, now: Optional[datetime] = None
    ) -> Booking:
        """Reserve a slot with a professional.

        The professional row is locked for the rest of the transaction so that
        concurrent requests for the same professional run the conflict check
        one at a time; the partial unique index on active slots backs this up.
        """
        now = now or local_now()
        professional = self.get_active_professional(data.healthProfessionalId, for_update=True)

        starts_at = appointment_datetime(data.appointmentDate, data.appointmentTime)
        if starts_at <= now:
            raise ValidationFailed("Appointment date and time must be in the future")

        day_name = weekday_name(data.appointmentDate)
        if not is_available(professional.availability, day_name, data.appointmentTime):
            logger.warning(
                f"⚠️ Professional {professional.id} unavailable on {day_name} at {data.appointmentTime}"
            )
            raise ConflictError("Health professional is not available at this time")

        duration = data.duration or BOOKING_DEFAULT_DURATION
        if self.repo.find_conflicting_booking(
            self.db, professional.id, data.appointmentDate, data.appointmentTime, duration
        ):
            raise ConflictError("This time slot is already booked")

        booking = self._build_booking(data, user, professional, duration)

        try:
            booking.booking_number = next_reference(self.db, BOOKING_PREFIX, now)
            record_transition(booking, "status", "pending")
            append_notification(
                booking,
                "booking_created",
                f"Your appointment on {data.appointmentDate.isoformat()} at {data.appointmentTime} has been requested",
            )
            self.repo.add_booking(self.db, booking)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            # Lost a race for the same slot: the unique index rejected the second insert
            if self.repo.find_conflicting_booking(
                self.db, professional.id, data.appointmentDate, data.appointmentTime, duration
            ):
                logger.warning(f"⚠️ Slot race lost for professional {professional.id}")
                raise ConflictError("This time slot is already booked") from e
            logger.error(f"❌ Failed to create booking: {e}")
            raise InternalError("Failed to create booking") from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Failed to create booking: {e}")
            raise InternalError("Failed to create booking") from e

        self.db.refresh(booking)
        logger.info(
            f"📅 Booking {booking.booking_number} created for user {user.id} with professional {professional.id}"
        )
        return booking

    @staticmethod
    def _build_booking(
        data: BookingCreate, user: User, professional: HealthProfessional, duration: int
    ) -> Booking:
        service = data.service.model_dump(exclude_none=True) if data.service else None
        if data.service and data.service.price is not None:
            amount = data.service.price
        else:
            amount = professional.consultation_fee

        return Booking(
            user_id=user.id,
            professional_id=professional.id,
            appointment_date=data.appointmentDate,
            appointment_time=data.appointmentTime,
            duration=duration,
            consultation_type=data.consultationType,
            location=LOCATION_BY_CONSULTATION[data.consultationType],
            address=data.address.model_dump(exclude_none=True) if data.address else None,
            is_urgent=data.isUrgent,
            service=service,
            symptoms=data.symptoms or [],
            medical_history=data.medicalHistory,
            current_medications=data.currentMedications or [],
            allergies=data.allergies or [],
            emergency_contact=(
                data.emergencyContact.model_dump(exclude_none=True) if data.emergencyContact else None
            ),
            special_instructions=data.specialInstructions,
            amount=amount,
            currency=professional.currency or DEFAULT_CURRENCY,
            payment_status="pending",
            payment_method=data.paymentMethod,
            status="pending",
            notifications=[],
            status_history=[],
        )

    # ------------------------------------------------------------------
    # Cancellation
    # ------------------------------------------------------------------

    @staticmethod
    def can_be_cancelled(booking: Booking, now: Optional[datetime] = None) -> bool:
        """Pending/confirmed and more than the cancellation window ahead"""
        if booking.status not in CANCELLABLE_STATUSES:
            return False
        now = now or local_now()
        starts_at = appointment_datetime(booking.appointment_date, booking.appointment_time)
        return starts_at - now > timedelta(hours=BOOKING_CANCELLATION_WINDOW_HOURS)

    def cancel_booking(
        self,
        booking_id: int,
        user: User,
        reason: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Booking:
        """Cancel a booking on behalf of its owner"""
        booking = self.get_booking(booking_id, user)
        return self._cancel(booking, reason, "user", now)

    def cancel_as_provider(
        self,
        booking_id: int,
        actor: User,
        reason: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Booking:
        """Cancel from the professional's side, or as the system when staff acts"""
        booking = self.get_managed_booking(booking_id, actor)
        cancelled_by = "system" if actor.role in STAFF_ROLES else "professional"
        return self._cancel(booking, reason, cancelled_by, now)

    def _cancel(
        self, booking: Booking, reason: Optional[str], cancelled_by: str, now: Optional[datetime]
    ) -> Booking:
        if not self.can_be_cancelled(booking, now):
            logger.warning(
                f"⚠️ Refused cancellation of booking {booking.booking_number} (status={booking.status})"
            )
            raise InvalidStateError("Booking cannot be cancelled at this stage")

        reason = reason or "No reason provided"
        record_transition(booking, "status", "cancelled")
        booking.cancellation_reason = reason
        booking.cancellation_date = utcnow()
        booking.cancellation_by = cancelled_by
        if booking.payment_status == "paid":
            booking.payment_status = "refunded"
        append_notification(
            booking, "cancelled", f"Your appointment has been cancelled. Reason: {reason}"
        )

        booking = self._save(booking, "cancel")
        logger.info(f"🚫 Booking {booking.booking_number} cancelled by {cancelled_by}")
        return booking

    # ------------------------------------------------------------------
    # Rating
    # ------------------------------------------------------------------

    def rate_booking(
        self,
        booking_id: int,
        user: User,
        professional_rating: float,
        service_rating: float,
        overall_rating: float,
        comment: Optional[str] = None,
    ) -> Booking:
        booking = self.get_booking(booking_id, user)

        if booking.status != "completed":
            raise InvalidStateError("Booking must be completed before rating")
        validate_ratings(
            professionalRating=professional_rating,
            serviceRating=service_rating,
            overallRating=overall_rating,
        )
        if booking.rated_at is not None:
            raise InvalidStateError("Booking has already been rated")

        booking.rating_professional = professional_rating
        booking.rating_service = service_rating
        booking.rating_overall = overall_rating
        booking.rating_comment = comment
        booking.rated_at = utcnow()
        return self._save(booking, "rate")

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    def get_managed_booking(self, booking_id: int, actor: User) -> Booking:
        """A booking the actor may administer: staff see all, professionals their own"""
        booking = self.repo.get_booking(self.db, booking_id)
        if not booking:
            raise NotFoundError("Booking not found")
        if actor.role in STAFF_ROLES:
            return booking
        professional = booking.professional
        if professional is None or professional.user_id != actor.id:
            raise NotFoundError("Booking not found")
        return booking

    def advance_status(
        self,
        booking_id: int,
        actor: User,
        new_status: str,
        message: Optional[str] = None,
    ) -> Booking:
        """Move a booking forward along the transition table"""
        booking = self.get_managed_booking(booking_id, actor)

        if new_status not in BOOKING_STATUSES:
            raise ValidationFailed(f"Unknown booking status: {new_status}")
        if new_status == "cancelled":
            raise InvalidStateError("Use the cancel operation to cancel a booking")
        if not validate_status_transition(BOOKING_TRANSITIONS, booking.status, new_status):
            raise InvalidStateError(
                f"Cannot change booking status from {booking.status} to {new_status}"
            )

        previous = booking.status
        record_transition(booking, "status", new_status)
        kind, default_message = DEFAULT_STATUS_NOTIFICATIONS.get(new_status, (new_status, None))
        if message or default_message:
            append_notification(booking, kind, message or default_message)

        booking = self._save(booking, "update")
        logger.info(f"✅ Booking {booking.booking_number} transitioned: {previous} → {new_status}")
        return booking

    def record_payment(
        self, booking_id: int, actor: User, success: bool, transaction_id: Optional[str] = None
    ) -> Booking:
        """Apply a payment gateway result"""
        booking = self.get_managed_booking(booking_id, actor)

        if booking.payment_status not in ("pending", "failed"):
            raise InvalidStateError(f"Payment already {booking.payment_status}")
        if booking.status in ("cancelled", "no_show"):
            raise InvalidStateError(f"Cannot take payment for a {booking.status} booking")

        paid_at = utcnow()
        booking.payment_status = "paid" if success else "failed"
        booking.payment_details = {
            "transactionId": transaction_id,
            "paymentDate": paid_at.isoformat() if success else None,
        }
        if success:
            append_notification(
                booking, "payment_received", f"Payment of {booking.currency} {booking.amount:.2f} received"
            )
        return self._save(booking, "record payment for")

    def _save(self, booking: Booking, action: str) -> Booking:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Failed to {action} booking {booking.id}: {e}")
            raise InternalError(f"Failed to {action} booking") from e
        self.db.refresh(booking)
        return booking
