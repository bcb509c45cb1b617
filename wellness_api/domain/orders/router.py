"""Order router - FastAPI endpoints for meal orders"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_staff, get_current_user
from ...config import ORDER_RATE_LIMIT
from ...database import get_db
from ...models import Order, OrderItem, User
from ...rate_limiter import create_rate_limiter
from ...shared.payments import PaymentResult
from ...shared.responses import envelope, pagination
from .schemas import (
    OrderCancelRequest,
    OrderCreate,
    OrderDetail,
    OrderLine,
    OrderRating,
    OrderRatingRequest,
    OrderStatusUpdate,
    OrderSummary,
    TimelineMilestone,
    TrackedOrder,
)
from .service import OrderService, order_totals

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/orders", tags=["Orders"])
admin_router = APIRouter(prefix="/admin/orders", tags=["Order Administration"])

rate_limit_orders = create_rate_limiter(
    limit=ORDER_RATE_LIMIT, window_seconds=60, key_prefix="orders:create"
)


def get_order_service(db: Session = Depends(get_db)) -> OrderService:
    """Dependency injection for OrderService"""
    return OrderService(db)


def order_line(item: OrderItem) -> OrderLine:
    return OrderLine(
        mealId=item.meal_id,
        name=item.meal_name,
        quantity=item.quantity,
        unitPrice=item.unit_price,
        lineTotal=item.line_total,
        specialInstructions=item.special_instructions,
    )


def order_summary(order: Order) -> OrderSummary:
    totals = order_totals(order)
    return OrderSummary(
        id=order.id,
        orderNumber=order.order_number,
        subtotal=totals.subtotal,
        deliveryFee=totals.delivery_fee,
        tax=totals.tax,
        total=totals.total,
        currency=order.currency,
        orderStatus=order.order_status,
        paymentStatus=order.payment_status,
        deliveryAddress=order.delivery_address,
        createdAt=order.created_at,
        estimatedDelivery=order.estimated_delivery,
    )


def order_rating(order: Order) -> Optional[OrderRating]:
    if order.rated_at is None:
        return None
    return OrderRating(
        food=order.rating_food,
        delivery=order.rating_delivery,
        overall=order.rating_overall,
        comment=order.rating_comment,
        ratedAt=order.rated_at,
    )


def order_detail(order: Order) -> OrderDetail:
    return OrderDetail(
        **order_summary(order).model_dump(),
        items=[order_line(item) for item in order.items],
        contactInfo=order.contact_info,
        paymentMethod=order.payment_method,
        paymentDetails=order.payment_details,
        actualDelivery=order.actual_delivery,
        deliveryPerson=order.delivery_person,
        specialInstructions=order.special_instructions,
        allergies=order.allergies or [],
        dietaryRestrictions=order.dietary_restrictions or [],
        isUrgent=order.is_urgent,
        cancellationReason=order.cancellation_reason,
        refundAmount=order.refund_amount,
        rating=order_rating(order),
        notifications=order.notifications or [],
        statusHistory=order.status_history or [],
        updatedAt=order.updated_at,
    )


@router.post("", status_code=201)
async def create_order(
    data: OrderCreate,
    current_user: User = Depends(get_current_user),
    service: OrderService = Depends(get_order_service),
    _: None = Depends(rate_limit_orders),
):
    """Place a meal order"""
    order = service.create_order(data, current_user)
    return envelope({"order": order_summary(order)}, "Order created successfully")


@router.get("")
async def list_orders(
    status: Optional[str] = Query(None, description="Filter by order status"),
    limit: int = Query(10, ge=1, le=50),
    page: int = Query(1, ge=1),
    current_user: User = Depends(get_current_user),
    service: OrderService = Depends(get_order_service),
):
    """Get the current user's orders, newest first"""
    orders, total = service.list_orders(current_user, status, limit, page)
    return envelope(
        {
            "orders": [order_summary(o) for o in orders],
            "pagination": pagination(page, limit, total),
        }
    )


@router.get("/tracking/{order_number}")
async def track_order(
    order_number: str,
    current_user: User = Depends(get_current_user),
    service: OrderService = Depends(get_order_service),
):
    """Delivery progress for an order"""
    order, timeline = service.track_order(order_number, current_user)
    tracked = TrackedOrder(
        orderNumber=order.order_number,
        status=order.order_status,
        estimatedDelivery=order.estimated_delivery,
        actualDelivery=order.actual_delivery,
        deliveryPerson=order.delivery_person,
        items=[order_line(item) for item in order.items],
    )
    return envelope(
        {"order": tracked, "timeline": [TimelineMilestone(**m) for m in timeline]}
    )


@router.get("/{order_id}")
async def get_order(
    order_id: int,
    current_user: User = Depends(get_current_user),
    service: OrderService = Depends(get_order_service),
):
    order = service.get_order(order_id, current_user)
    return envelope({"order": order_detail(order)})


@router.put("/{order_id}/cancel")
async def cancel_order(
    order_id: int,
    data: Optional[OrderCancelRequest] = None,
    current_user: User = Depends(get_current_user),
    service: OrderService = Depends(get_order_service),
):
    reason = data.reason if data else None
    order = service.cancel_order(order_id, current_user, reason)
    return envelope({"order": order_summary(order)}, "Order cancelled successfully")


@router.post("/{order_id}/rate")
async def rate_order(
    order_id: int,
    data: OrderRatingRequest,
    current_user: User = Depends(get_current_user),
    service: OrderService = Depends(get_order_service),
):
    """Rate a delivered order"""
    order = service.rate_order(
        order_id,
        current_user,
        data.foodRating,
        data.deliveryRating,
        data.overallRating,
        data.comment,
    )
    return envelope({"rating": order_rating(order)}, "Rating submitted successfully")


# ============================================================================
# ADMINISTRATION (staff only)
# ============================================================================


@admin_router.patch("/{order_id}/status")
async def advance_order_status(
    order_id: int,
    data: OrderStatusUpdate,
    staff: User = Depends(get_current_staff),
    service: OrderService = Depends(get_order_service),
):
    """Move an order to its next status"""
    order = service.advance_status(order_id, data.status, data.message, data.deliveryPerson)
    logger.info(f"👤 Order {order.order_number} updated by staff user {staff.id}")
    return envelope({"order": order_summary(order)}, "Order status updated")


@admin_router.post("/{order_id}/payment")
async def record_order_payment(
    order_id: int,
    data: PaymentResult,
    staff: User = Depends(get_current_staff),
    service: OrderService = Depends(get_order_service),
):
    """Record the payment gateway result for an order"""
    order = service.record_payment(order_id, data.success, data.transactionId)
    return envelope({"order": order_summary(order)}, "Payment recorded")
