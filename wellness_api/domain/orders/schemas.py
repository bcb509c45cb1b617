"""Order domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from ...shared.validators import require_text, validate_email, validate_phone

OrderPaymentMethod = Literal["mobile_money", "cash_on_delivery", "bank_transfer", "card"]


class Coordinates(BaseModel):
    latitude: float
    longitude: float


class OrderItemRequest(BaseModel):
    mealId: int
    quantity: int = Field(..., ge=1)
    specialInstructions: Optional[str] = None


class DeliveryAddress(BaseModel):
    street: str
    city: str
    county: str
    postalCode: Optional[str] = None
    coordinates: Optional[Coordinates] = None
    instructions: Optional[str] = None

    @field_validator("street", "city", "county")
    @classmethod
    def validate_required(cls, v, info):
        return require_text(v, info.field_name)


class ContactInfo(BaseModel):
    name: str
    phone: str
    email: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        return require_text(v, "name")

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        return validate_phone(require_text(v, "phone"))

    @field_validator("email")
    @classmethod
    def validate_email(cls, v):
        if v:
            return validate_email(v)
        return v


class OrderCreate(BaseModel):
    """Schema for creating a new order"""

    # Emptiness and duplicates are checked by the service
    items: list[OrderItemRequest]
    deliveryAddress: DeliveryAddress
    contactInfo: ContactInfo
    paymentMethod: OrderPaymentMethod
    specialInstructions: Optional[str] = None
    allergies: Optional[list[str]] = None
    dietaryRestrictions: Optional[list[str]] = None
    isUrgent: bool = False


class OrderCancelRequest(BaseModel):
    reason: Optional[str] = None


class OrderRatingRequest(BaseModel):
    foodRating: float
    deliveryRating: float
    overallRating: float
    comment: Optional[str] = None


class DeliveryPerson(BaseModel):
    name: str
    phone: Optional[str] = None
    id: Optional[str] = None


class OrderStatusUpdate(BaseModel):
    status: str
    message: Optional[str] = None
    deliveryPerson: Optional[DeliveryPerson] = None


class OrderLine(BaseModel):
    mealId: int
    name: Optional[str] = None
    quantity: int
    unitPrice: float
    lineTotal: float
    specialInstructions: Optional[str] = None


class OrderSummary(BaseModel):
    """Schema for order summary response"""

    id: int
    orderNumber: str
    subtotal: float
    deliveryFee: float
    tax: float
    total: float
    currency: str
    orderStatus: str
    paymentStatus: str
    deliveryAddress: dict
    createdAt: Optional[datetime] = None
    estimatedDelivery: Optional[datetime] = None


class OrderRating(BaseModel):
    food: float
    delivery: float
    overall: float
    comment: Optional[str] = None
    ratedAt: Optional[datetime] = None


class OrderDetail(OrderSummary):
    """Schema for the full order view"""

    items: list[OrderLine]
    contactInfo: dict
    paymentMethod: str
    paymentDetails: Optional[dict] = None
    actualDelivery: Optional[datetime] = None
    deliveryPerson: Optional[dict] = None
    specialInstructions: Optional[str] = None
    allergies: list[str] = []
    dietaryRestrictions: list[str] = []
    isUrgent: bool = False
    cancellationReason: Optional[str] = None
    refundAmount: Optional[float] = None
    rating: Optional[OrderRating] = None
    notifications: list[dict] = []
    statusHistory: list[dict] = []
    updatedAt: Optional[datetime] = None


class TrackedOrder(BaseModel):
    orderNumber: str
    status: str
    estimatedDelivery: Optional[datetime] = None
    actualDelivery: Optional[datetime] = None
    deliveryPerson: Optional[dict] = None
    items: list[OrderLine]


class TimelineMilestone(BaseModel):
    status: str
    title: str
    description: str
    time: Optional[datetime] = None
    completed: bool
