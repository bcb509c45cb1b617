"""Order service - Meal order lifecycle, pricing and tracking"""

import logging
from collections import Counter
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...config import DEFAULT_CURRENCY, ORDER_DELIVERY_MINUTES, ORDER_TAX_RATE
from ...exceptions import InternalError, InvalidStateError, NotFoundError, ValidationFailed
from ...models import Order, OrderItem, User
from ...shared.clock import local_now, utcnow
from ...shared.lifecycle import (
    CANCELLABLE_STATUSES,
    ORDER_STATUSES,
    ORDER_TRANSITIONS,
    append_notification,
    record_transition,
    transition_time,
    validate_status_transition,
)
from ...shared.numbering import ORDER_PREFIX, next_reference
from ...shared.validators import validate_ratings
from .pricing import OrderTotals, compute_totals
from .repository import OrderRepository
from .schemas import DeliveryPerson, OrderCreate

logger = logging.getLogger(__name__)

# (milestone, status that reaches it, title, description)
TRACKING_MILESTONES = [
    ("order_placed", "pending", "Order Placed", "Your order has been placed successfully"),
    ("order_confirmed", "confirmed", "Order Confirmed", "Your order has been confirmed"),
    ("preparing", "preparing", "Preparing", "Your order is being prepared"),
    ("out_for_delivery", "out_for_delivery", "Out for Delivery", "Your order is on its way"),
    ("delivered", "delivered", "Delivered", "Your order has been delivered"),
]
_PROGRESS = [status for _, status, _, _ in TRACKING_MILESTONES]

DEFAULT_STATUS_NOTIFICATIONS = {
    "confirmed": ("order_confirmed", "Your order has been confirmed"),
    "preparing": ("preparing", "Your order is being prepared"),
    "out_for_delivery": ("out_for_delivery", "Your order is on its way"),
    "delivered": ("delivered", "Your order has been delivered"),
}


def order_totals(order: Order) -> OrderTotals:
    """Totals recomputed from the persisted lines and the recorded fee and rate"""
    return compute_totals(
        [(item.unit_price, item.quantity) for item in order.items],
        delivery_fee=order.delivery_fee,
        tax_rate=order.tax_rate,
    )


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


class OrderService:
    """Service layer for order business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = OrderRepository()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_order(self, order_id: int, user: User) -> Order:
        """Get an order owned by the user"""
        order = self.repo.get_user_order(self.db, order_id, user.id)
        if not order:
            raise NotFoundError("Order not found")
        return order

    def list_orders(
        self, user: User, status: Optional[str] = None, limit: int = 10, page: int = 1
    ) -> tuple[list[Order], int]:
        if status and status not in ORDER_STATUSES:
            raise ValidationFailed(f"Unknown order status: {status}")
        return self.repo.list_user_orders(
            self.db, user.id, status=status, limit=limit, offset=(page - 1) * limit
        )

    def track_order(self, order_number: str, user: User) -> tuple[Order, list[dict]]:
        """The order and its delivery milestones, built from the transition log"""
        order = self.repo.get_user_order_by_number(self.db, order_number, user.id)
        if not order:
            raise NotFoundError("Order not found")
        return order, self.build_timeline(order)

    @staticmethod
    def build_timeline(order: Order) -> list[dict]:
        """
        Five fixed milestones. A milestone is completed once the order has
        reached it; a cancelled order only shows what it actually reached
        before cancellation.
        """
        reached = {entry.get("status") for entry in order.status_history or []}
        reached.add("pending")
        current_rank = (
            _PROGRESS.index(order.order_status) if order.order_status in _PROGRESS else -1
        )

        timeline = []
        for rank, (milestone, status, title, description) in enumerate(TRACKING_MILESTONES):
            if order.order_status == "cancelled":
                completed = status in reached
            else:
                completed = current_rank >= rank

            time = None
            if completed:
                if milestone == "order_placed":
                    time = order.created_at
                elif milestone == "delivered":
                    time = order.actual_delivery
                else:
                    time = _parse_timestamp(transition_time(order, status))

            timeline.append(
                {
                    "status": milestone,
                    "title": title,
                    "description": description,
                    "time": time,
                    "completed": completed,
                }
            )
        return timeline

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create_order(self, data: OrderCreate, user: User, now: Optional[datetime] = None) -> Order:
        """Create an order from meal IDs, pricing every line from the current catalog"""
        if not data.items:
            raise ValidationFailed(
                "Order must contain at least one item",
                errors=[{"field": "items", "message": "At least one item is required"}],
            )

        meal_ids = [item.mealId for item in data.items]
        duplicates = sorted(meal_id for meal_id, count in Counter(meal_ids).items() if count > 1)
        if duplicates:
            raise ValidationFailed(
                "Each meal may appear only once per order",
                errors=[
                    {"field": "items", "message": f"Meal {meal_id} appears more than once"}
                    for meal_id in duplicates
                ],
            )

        meals = self.repo.get_active_meals(self.db, meal_ids)
        missing = [meal_id for meal_id in meal_ids if meal_id not in meals]
        if missing:
            logger.warning(f"⚠️ Order rejected for user {user.id}: unavailable meals {missing}")
            raise ValidationFailed(
                "Some meals are not available",
                errors=[
                    {"field": "items", "message": f"Meal {meal_id} not found or not available"}
                    for meal_id in missing
                ],
            )

        items = [
            OrderItem(
                meal_id=item.mealId,
                position=position,
                meal_name=meals[item.mealId].name,
                unit_price=meals[item.mealId].price,
                quantity=item.quantity,
                special_instructions=item.specialInstructions,
            )
            for position, item in enumerate(data.items)
        ]
        totals = compute_totals([(line.unit_price, line.quantity) for line in items])

        created_at = utcnow()
        order = Order(
            user_id=user.id,
            items=items,
            delivery_fee=totals.delivery_fee,
            tax_rate=ORDER_TAX_RATE,
            currency=DEFAULT_CURRENCY,
            delivery_address=data.deliveryAddress.model_dump(exclude_none=True),
            contact_info=data.contactInfo.model_dump(exclude_none=True),
            payment_method=data.paymentMethod,
            payment_status="pending",
            order_status="pending",
            estimated_delivery=created_at + timedelta(minutes=ORDER_DELIVERY_MINUTES),
            special_instructions=data.specialInstructions,
            allergies=data.allergies or [],
            dietary_restrictions=data.dietaryRestrictions or [],
            is_urgent=data.isUrgent,
            notifications=[],
            status_history=[],
            created_at=created_at,
        )

        try:
            order.order_number = next_reference(self.db, ORDER_PREFIX, now or local_now())
            record_transition(order, "order_status", "pending", created_at)
            append_notification(
                order, "order_placed", "Your order has been placed successfully", created_at
            )
            self.repo.add_order(self.db, order)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Failed to create order: {e}")
            raise InternalError("Failed to create order") from e

        self.db.refresh(order)
        logger.info(
            f"🍽️ Order {order.order_number} created for user {user.id}: "
            f"{len(items)} items, total {order.currency} {totals.total:.2f}"
        )
        return order

    # ------------------------------------------------------------------
    # Cancellation and rating
    # ------------------------------------------------------------------

    def cancel_order(self, order_id: int, user: User, reason: Optional[str] = None) -> Order:
        order = self.get_order(order_id, user)

        if order.order_status not in CANCELLABLE_STATUSES:
            logger.warning(
                f"⚠️ Refused cancellation of order {order.order_number} (status={order.order_status})"
            )
            raise InvalidStateError("Order cannot be cancelled at this stage")

        reason = reason or "No reason provided"
        record_transition(order, "order_status", "cancelled")
        order.cancellation_reason = reason
        if order.payment_status == "paid":
            order.payment_status = "refunded"
            order.refund_amount = order_totals(order).total
        append_notification(order, "cancelled", f"Your order has been cancelled. Reason: {reason}")

        order = self._save(order, "cancel")
        logger.info(f"🚫 Order {order.order_number} cancelled by user {user.id}")
        return order

    def rate_order(
        self,
        order_id: int,
        user: User,
        food_rating: float,
        delivery_rating: float,
        overall_rating: float,
        comment: Optional[str] = None,
    ) -> Order:
        order = self.get_order(order_id, user)

        if order.order_status != "delivered":
            raise InvalidStateError("Order must be delivered before rating")
        validate_ratings(
            foodRating=food_rating, deliveryRating=delivery_rating, overallRating=overall_rating
        )
        if order.rated_at is not None:
            raise InvalidStateError("Order has already been rated")

        order.rating_food = food_rating
        order.rating_delivery = delivery_rating
        order.rating_overall = overall_rating
        order.rating_comment = comment
        order.rated_at = utcnow()
        return self._save(order, "rate")

    # ------------------------------------------------------------------
    # Administration (staff)
    # ------------------------------------------------------------------

    def get_any_order(self, order_id: int) -> Order:
        order = self.repo.get_order(self.db, order_id)
        if not order:
            raise NotFoundError("Order not found")
        return order

    def advance_status(
        self,
        order_id: int,
        new_status: str,
        message: Optional[str] = None,
        delivery_person: Optional[DeliveryPerson] = None,
    ) -> Order:
        """Move an order forward along the transition table"""
        order = self.get_any_order(order_id)

        if new_status not in ORDER_STATUSES:
            raise ValidationFailed(f"Unknown order status: {new_status}")
        if new_status == "cancelled":
            raise InvalidStateError("Use the cancel operation to cancel an order")
        if not validate_status_transition(ORDER_TRANSITIONS, order.order_status, new_status):
            raise InvalidStateError(
                f"Cannot change order status from {order.order_status} to {new_status}"
            )

        previous = order.order_status
        at = utcnow()
        record_transition(order, "order_status", new_status, at)
        if new_status == "out_for_delivery" and delivery_person:
            order.delivery_person = delivery_person.model_dump(exclude_none=True)
        if new_status == "delivered":
            order.actual_delivery = at

        kind, default_message = DEFAULT_STATUS_NOTIFICATIONS[new_status]
        append_notification(order, kind, message or default_message, at)

        order = self._save(order, "update")
        logger.info(f"✅ Order {order.order_number} transitioned: {previous} → {new_status}")
        return order

    def record_payment(
        self, order_id: int, success: bool, transaction_id: Optional[str] = None
    ) -> Order:
        """Apply a payment gateway result"""
        order = self.get_any_order(order_id)

        if order.payment_status not in ("pending", "failed"):
            raise InvalidStateError(f"Payment already {order.payment_status}")
        if order.order_status == "cancelled":
            raise InvalidStateError("Cannot take payment for a cancelled order")

        paid_at = utcnow()
        order.payment_status = "paid" if success else "failed"
        order.payment_details = {
            "transactionId": transaction_id,
            "paymentDate": paid_at.isoformat() if success else None,
        }
        if success:
            total = order_totals(order).total
            append_notification(
                order, "payment_received", f"Payment of {order.currency} {total:.2f} received", paid_at
            )
        return self._save(order, "record payment for")

    def _save(self, order: Order, action: str) -> Order:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Failed to {action} order {order.id}: {e}")
            raise InternalError(f"Failed to {action} order") from e
        self.db.refresh(order)
        return order
