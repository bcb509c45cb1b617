"""Booking router - FastAPI endpoints for booking operations"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_operator, get_current_staff, get_current_user
from ...config import BOOKING_RATE_LIMIT
from ...database import get_db
from ...exceptions import ValidationFailed
from ...models import Booking, User
from ...rate_limiter import create_rate_limiter
from ...shared.payments import PaymentResult
from ...shared.responses import envelope, pagination
from ...shared.validators import validate_clock
from .schemas import (
    BookingCancelRequest,
    BookingCreate,
    BookingDetail,
    BookingListItem,
    BookingRating,
    BookingRatingRequest,
    BookingStatusUpdate,
    BookingSummary,
    ProfessionalRef,
    SlotAvailability,
)
from .service import BookingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bookings", tags=["Bookings"])
admin_router = APIRouter(prefix="/admin/bookings", tags=["Booking Administration"])

rate_limit_bookings = create_rate_limiter(
    limit=BOOKING_RATE_LIMIT, window_seconds=60, key_prefix="bookings:create"
)


def get_booking_service(db: Session = Depends(get_db)) -> BookingService:
    """Dependency injection for BookingService"""
    return BookingService(db)


# ============================================================================
# PROJECTIONS
# ============================================================================


def booking_summary(booking: Booking) -> BookingSummary:
    return BookingSummary(
        id=booking.id,
        bookingNumber=booking.booking_number,
        appointmentDate=booking.appointment_date,
        appointmentTime=booking.appointment_time,
        status=booking.status,
        paymentStatus=booking.payment_status,
        amount=booking.amount,
        currency=booking.currency,
        consultationType=booking.consultation_type,
    )


def booking_rating(booking: Booking) -> Optional[BookingRating]:
    if booking.rated_at is None:
        return None
    return BookingRating(
        professional=booking.rating_professional,
        service=booking.rating_service,
        overall=booking.rating_overall,
        comment=booking.rating_comment,
        date=booking.rated_at,
    )


def _professional_ref(booking: Booking) -> ProfessionalRef:
    professional = booking.professional
    return ProfessionalRef(
        id=professional.id, name=professional.display_name, specialty=professional.specialty
    )


def booking_list_item(booking: Booking) -> BookingListItem:
    return BookingListItem(
        **booking_summary(booking).model_dump(),
        duration=booking.duration,
        healthProfessional=_professional_ref(booking),
    )


def booking_detail(booking: Booking) -> BookingDetail:
    return BookingDetail(
        **booking_list_item(booking).model_dump(),
        service=booking.service,
        location=booking.location,
        address=booking.address,
        symptoms=booking.symptoms or [],
        medicalHistory=booking.medical_history,
        currentMedications=booking.current_medications or [],
        allergies=booking.allergies or [],
        emergencyContact=booking.emergency_contact,
        specialInstructions=booking.special_instructions,
        isUrgent=booking.is_urgent,
        paymentMethod=booking.payment_method,
        paymentDetails=booking.payment_details,
        cancellationReason=booking.cancellation_reason,
        cancellationDate=booking.cancellation_date,
        cancellationBy=booking.cancellation_by,
        rating=booking_rating(booking),
        notifications=booking.notifications or [],
        statusHistory=booking.status_history or [],
        createdAt=booking.created_at,
        updatedAt=booking.updated_at,
    )


# ============================================================================
# USER OPERATIONS
# ============================================================================


@router.post("", status_code=201)
async def create_booking(
    data: BookingCreate,
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
    _: None = Depends(rate_limit_bookings),
):
    """Create a new booking"""
    booking = service.create_booking(data, current_user)
    return envelope({"booking": booking_summary(booking)}, "Booking created successfully")


@router.get("")
async def list_bookings(
    status: Optional[str] = Query(None, description="Filter by booking status"),
    limit: int = Query(10, ge=1, le=50),
    page: int = Query(1, ge=1),
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    """Get the current user's bookings"""
    bookings, total = service.list_bookings(current_user, status, limit, page)
    return envelope(
        {
            "bookings": [booking_list_item(b) for b in bookings],
            "pagination": pagination(page, limit, total),
        }
    )


@router.get("/upcoming")
async def upcoming_bookings(
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    """Get the next confirmed appointments"""
    bookings = service.upcoming_bookings(current_user)
    return envelope({"bookings": [booking_list_item(b) for b in bookings]})


@router.get("/professionals/{professional_id}/availability")
async def check_availability(
    professional_id: int,
    date: date = Query(..., description="Appointment date (YYYY-MM-DD)"),
    time: str = Query(..., description="Appointment time (HH:MM)"),
    duration: Optional[int] = Query(None, ge=1),
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    """Check whether a professional can take an appointment at a given slot"""
    try:
        clock = validate_clock(time)
    except ValueError as e:
        raise ValidationFailed(str(e)) from e
    slot = service.check_slot(professional_id, date, clock, duration)
    return envelope({"slot": SlotAvailability(**slot)})


@router.get("/professionals/{professional_id}/next-slot")
async def next_available_slot(
    professional_id: int,
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    """Get the first open slot in the professional's weekly schedule"""
    return envelope({"slot": service.next_slot(professional_id)})


@router.get("/{booking_id}")
async def get_booking(
    booking_id: int,
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    """Get a single booking"""
    booking = service.get_booking(booking_id, current_user)
    return envelope({"booking": booking_detail(booking)})


@router.put("/{booking_id}/cancel")
async def cancel_booking(
    booking_id: int,
    data: Optional[BookingCancelRequest] = None,
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    """Cancel a booking"""
    reason = data.reason if data else None
    booking = service.cancel_booking(booking_id, current_user, reason)
    return envelope({"booking": booking_summary(booking)}, "Booking cancelled successfully")


@router.post("/{booking_id}/rate")
async def rate_booking(
    booking_id: int,
    data: BookingRatingRequest,
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    """Rate a completed booking"""
    booking = service.rate_booking(
        booking_id,
        current_user,
        data.professionalRating,
        data.serviceRating,
        data.overallRating,
        data.comment,
    )
    return envelope({"rating": booking_rating(booking)}, "Rating submitted successfully")


# ============================================================================
# ADMINISTRATION (staff, or the professional the booking is with)
# ============================================================================


@admin_router.patch("/{booking_id}/status")
async def advance_booking_status(
    booking_id: int,
    data: BookingStatusUpdate,
    operator: User = Depends(get_current_operator),
    service: BookingService = Depends(get_booking_service),
):
    """Move a booking to its next status"""
    booking = service.advance_status(booking_id, operator, data.status, data.message)
    return envelope({"booking": booking_summary(booking)}, "Booking status updated")


@admin_router.put("/{booking_id}/cancel")
async def cancel_booking_as_provider(
    booking_id: int,
    data: Optional[BookingCancelRequest] = None,
    operator: User = Depends(get_current_operator),
    service: BookingService = Depends(get_booking_service),
):
    """Cancel a booking from the provider side"""
    reason = data.reason if data else None
    booking = service.cancel_as_provider(booking_id, operator, reason)
    return envelope({"booking": booking_summary(booking)}, "Booking cancelled successfully")


@admin_router.post("/{booking_id}/payment")
async def record_booking_payment(
    booking_id: int,
    data: PaymentResult,
    staff: User = Depends(get_current_staff),
    service: BookingService = Depends(get_booking_service),
):
    """Record the payment gateway result for a booking"""
    booking = service.record_payment(booking_id, staff, data.success, data.transactionId)
    return envelope({"booking": booking_summary(booking)}, "Payment recorded")
