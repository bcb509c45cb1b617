from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import relationship

from .config import DEFAULT_CURRENCY
from .database import Base
from .shared.clock import utcnow

# Statuses that hold a slot; the partial unique index below mirrors this list
ACTIVE_BOOKING_STATUSES = ("pending", "confirmed")
STAFF_ROLES = ("staff", "admin")
_ACTIVE_SLOT_PREDICATE = text("status IN ('pending', 'confirmed')")


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    external_id = Column(String(255), unique=True, index=True, nullable=False)  # JWT "sub"
    email = Column(String(255), nullable=True)
    full_name = Column(String(255), nullable=True)
    role = Column(String(20), default="user", nullable=False)  # user, professional, staff, admin
    created_at = Column(DateTime, default=utcnow)

    bookings = relationship("Booking", back_populates="user")
    orders = relationship("Order", back_populates="user")


class HealthProfessional(Base):
    __tablename__ = "health_professionals"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    display_name = Column(String(255), nullable=False)
    specialty = Column(String(100), nullable=True)
    consultation_fee = Column(Float, nullable=False)
    currency = Column(String(10), default=DEFAULT_CURRENCY)
    is_active = Column(Boolean, default=True, nullable=False)
    # Weekly open hours: [{"day": "monday", "startTime": "08:00", "endTime": "17:00", "isAvailable": true}]
    availability = Column(JSON, default=list, nullable=False)
    created_at = Column(DateTime, default=utcnow)

    user = relationship("User")
    bookings = relationship("Booking", back_populates="professional")


class Meal(Base):
    __tablename__ = "meals"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    price = Column(Float, nullable=False)
    currency = Column(String(10), default=DEFAULT_CURRENCY)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class ReferenceCounter(Base):
    """Last issued suffix per reference prefix and calendar day"""

    __tablename__ = "reference_counters"

    id = Column(Integer, primary_key=True)
    prefix = Column(String(4), nullable=False)
    day = Column(String(6), nullable=False)  # YYMMDD
    last_value = Column(Integer, default=0, nullable=False)

    __table_args__ = (UniqueConstraint("prefix", "day", name="uq_reference_counter_prefix_day"),)


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    booking_number = Column(String(20), unique=True, nullable=False, index=True)

    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    professional_id = Column(
        Integer, ForeignKey("health_professionals.id"), nullable=False, index=True
    )

    # Scheduling
    appointment_date = Column(Date, nullable=False)
    appointment_time = Column(String(5), nullable=False)  # HH:MM format
    duration = Column(Integer, default=30, nullable=False)  # minutes

    consultation_type = Column(String(20), default="in_person", nullable=False)
    location = Column(String(20), default="clinic", nullable=False)  # clinic, home, online
    address = Column(JSON, nullable=True)  # home visits: {street, city, county, coordinates}
    is_urgent = Column(Boolean, default=False, nullable=False)
    service = Column(JSON, nullable=True)  # {name, description, price, duration}

    # Clinical context - stored as given, never interpreted
    symptoms = Column(JSON, default=list)
    medical_history = Column(Text, nullable=True)
    current_medications = Column(JSON, default=list)
    allergies = Column(JSON, default=list)
    emergency_contact = Column(JSON, nullable=True)  # {name, phone, relationship}
    special_instructions = Column(Text, nullable=True)

    # Commercial
    amount = Column(Float, nullable=False)
    currency = Column(String(10), default=DEFAULT_CURRENCY)
    payment_status = Column(String(20), default="pending", nullable=False)
    payment_method = Column(String(20), default="mobile_money", nullable=False)
    payment_details = Column(JSON, nullable=True)  # {transactionId, paymentDate}

    # Lifecycle: pending → confirmed → in_progress → completed, plus cancelled / no_show
    status = Column(String(20), default="pending", nullable=False, index=True)

    cancellation_reason = Column(Text, nullable=True)
    cancellation_date = Column(DateTime, nullable=True)
    cancellation_by = Column(String(20), nullable=True)  # user, professional, system

    rating_professional = Column(Float, nullable=True)
    rating_service = Column(Float, nullable=True)
    rating_overall = Column(Float, nullable=True)
    rating_comment = Column(Text, nullable=True)
    rated_at = Column(DateTime, nullable=True)

    # Append-only logs: [{type, message, sentAt, isRead}] and [{status, at}]
    notifications = Column(JSON, default=list, nullable=False)
    status_history = Column(JSON, default=list, nullable=False)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="bookings")
    professional = relationship("HealthProfessional", back_populates="bookings")

    __table_args__ = (
        # One active booking per professional slot; surfaced to callers as a conflict
        Index(
            "uq_booking_active_slot",
            "professional_id",
            "appointment_date",
            "appointment_time",
            unique=True,
            postgresql_where=_ACTIVE_SLOT_PREDICATE,
            sqlite_where=_ACTIVE_SLOT_PREDICATE,
        ),
        Index("ix_bookings_user_date", "user_id", "appointment_date"),
    )


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    order_number = Column(String(20), unique=True, nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # Pricing inputs fixed at creation; subtotal, tax and total are derived from the items
    delivery_fee = Column(Float, default=0, nullable=False)
    tax_rate = Column(Float, nullable=False)
    currency = Column(String(10), default=DEFAULT_CURRENCY)

    delivery_address = Column(JSON, nullable=False)  # {street, city, county, postalCode, coordinates, instructions}
    contact_info = Column(JSON, nullable=False)  # {name, phone, email}

    payment_method = Column(String(20), nullable=False)
    payment_status = Column(String(20), default="pending", nullable=False)
    payment_details = Column(JSON, nullable=True)

    # Lifecycle: pending → confirmed → preparing → out_for_delivery → delivered, plus cancelled
    order_status = Column(String(20), default="pending", nullable=False, index=True)

    estimated_delivery = Column(DateTime, nullable=True)
    actual_delivery = Column(DateTime, nullable=True)
    delivery_person = Column(JSON, nullable=True)  # {name, phone, id}

    special_instructions = Column(Text, nullable=True)
    allergies = Column(JSON, default=list)
    dietary_restrictions = Column(JSON, default=list)
    is_urgent = Column(Boolean, default=False, nullable=False)

    cancellation_reason = Column(Text, nullable=True)
    refund_amount = Column(Float, nullable=True)

    rating_food = Column(Float, nullable=True)
    rating_delivery = Column(Float, nullable=True)
    rating_overall = Column(Float, nullable=True)
    rating_comment = Column(Text, nullable=True)
    rated_at = Column(DateTime, nullable=True)

    notifications = Column(JSON, default=list, nullable=False)
    status_history = Column(JSON, default=list, nullable=False)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="orders")
    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.position",
    )


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    meal_id = Column(Integer, ForeignKey("meals.id"), nullable=False)
    position = Column(Integer, default=0, nullable=False)

    # Snapshot at order time; later catalog changes never touch these
    meal_name = Column(String(100), nullable=True)
    unit_price = Column(Float, nullable=False)
    quantity = Column(Integer, nullable=False)
    special_instructions = Column(Text, nullable=True)

    order = relationship("Order", back_populates="items")
    meal = relationship("Meal")

    @property
    def line_total(self) -> float:
        return round(self.unit_price * self.quantity, 2)
