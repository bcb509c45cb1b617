"""Booking domain schemas - Pydantic models for validation"""

from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from ...config import BOOKING_MAX_DURATION, BOOKING_MIN_DURATION
from ...shared.validators import validate_clock, validate_phone

ConsultationType = Literal["in_person", "online", "home_visit"]
BookingPaymentMethod = Literal["mobile_money", "cash", "bank_transfer", "insurance"]


class Coordinates(BaseModel):
    latitude: float
    longitude: float


class VisitAddress(BaseModel):
    """Where a home visit takes place"""

    street: Optional[str] = None
    city: Optional[str] = None
    county: Optional[str] = None
    coordinates: Optional[Coordinates] = None


class EmergencyContact(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    relationship: Optional[str] = None

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        if v:
            return validate_phone(v)
        return v


class ServiceSelection(BaseModel):
    """A priced service picked from the professional's offering"""

    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    duration: Optional[int] = None


class BookingCreate(BaseModel):
    """Schema for creating a new booking"""

    healthProfessionalId: int
    appointmentDate: date
    appointmentTime: str
    duration: Optional[int] = None
    consultationType: ConsultationType
    service: Optional[ServiceSelection] = None
    paymentMethod: BookingPaymentMethod = "mobile_money"
    isUrgent: bool = False
    address: Optional[VisitAddress] = None
    emergencyContact: Optional[EmergencyContact] = None
    # Clinical context, stored as given
    symptoms: Optional[list[str]] = None
    medicalHistory: Optional[str] = None
    currentMedications: Optional[list[str]] = None
    allergies: Optional[list[str]] = None
    specialInstructions: Optional[str] = None

    @field_validator("appointmentTime")
    @classmethod
    def validate_time(cls, v):
        return validate_clock(v)

    @field_validator("duration")
    @classmethod
    def validate_duration(cls, v):
        if v is not None and not BOOKING_MIN_DURATION <= v <= BOOKING_MAX_DURATION:
            raise ValueError(
                f"Duration must be between {BOOKING_MIN_DURATION} and {BOOKING_MAX_DURATION} minutes"
            )
        return v


class BookingCancelRequest(BaseModel):
    reason: Optional[str] = None


class BookingRatingRequest(BaseModel):
    """Ratings are range-checked by the service so every caller gets the same rule"""

    professionalRating: float
    serviceRating: float
    overallRating: float
    comment: Optional[str] = None


class BookingStatusUpdate(BaseModel):
    status: str
    message: Optional[str] = None


class BookingSummary(BaseModel):
    """Schema for booking summary response"""

    id: int
    bookingNumber: str
    appointmentDate: date
    appointmentTime: str
    status: str
    paymentStatus: str
    amount: float
    currency: str
    consultationType: str

    class Config:
        from_attributes = True


class BookingRating(BaseModel):
    professional: float
    service: float
    overall: float
    comment: Optional[str] = None
    date: Optional[datetime] = None


class ProfessionalRef(BaseModel):
    id: int
    name: str
    specialty: Optional[str] = None


class BookingListItem(BookingSummary):
    duration: int
    healthProfessional: ProfessionalRef


class BookingDetail(BookingListItem):
    """Schema for the full booking view"""

    service: Optional[dict] = None
    location: str
    address: Optional[dict] = None
    symptoms: list[str] = []
    medicalHistory: Optional[str] = None
    currentMedications: list[str] = []
    allergies: list[str] = []
    emergencyContact: Optional[dict] = None
    specialInstructions: Optional[str] = None
    isUrgent: bool
    paymentMethod: str
    paymentDetails: Optional[dict] = None
    cancellationReason: Optional[str] = None
    cancellationDate: Optional[datetime] = None
    cancellationBy: Optional[str] = None
    rating: Optional[BookingRating] = None
    notifications: list[dict] = []
    statusHistory: list[dict] = []
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None


class SlotAvailability(BaseModel):
    date: date
    time: str
    day: str
    withinHours: bool
    free: bool
    available: bool
