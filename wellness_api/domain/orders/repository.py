"""Order repository - Database operations for orders"""

from typing import Optional

from sqlalchemy.orm import Session, selectinload

from ...models import Meal, Order


class OrderRepository:
    """Repository for order database operations"""

    @staticmethod
    def get_active_meals(db: Session, meal_ids: list[int]) -> dict[int, Meal]:
        """Active meals among the requested IDs, keyed by ID"""
        if not meal_ids:
            return {}
        meals = db.query(Meal).filter(Meal.id.in_(meal_ids), Meal.is_active.is_(True)).all()
        return {meal.id: meal for meal in meals}

    @staticmethod
    def get_order(db: Session, order_id: int) -> Optional[Order]:
        return (
            db.query(Order)
            .options(selectinload(Order.items))
            .filter(Order.id == order_id)
            .first()
        )

    @staticmethod
    def get_user_order(db: Session, order_id: int, user_id: int) -> Optional[Order]:
        """Get an order only if it belongs to the user"""
        return (
            db.query(Order)
            .options(selectinload(Order.items))
            .filter(Order.id == order_id, Order.user_id == user_id)
            .first()
        )

    @staticmethod
    def get_user_order_by_number(db: Session, order_number: str, user_id: int) -> Optional[Order]:
        return (
            db.query(Order)
            .options(selectinload(Order.items))
            .filter(Order.order_number == order_number, Order.user_id == user_id)
            .first()
        )

    @staticmethod
    def list_user_orders(
        db: Session,
        user_id: int,
        status: Optional[str] = None,
        limit: int = 10,
        offset: int = 0,
    ) -> tuple[list[Order], int]:
        """Get a page of the user's orders, newest first, plus the total count"""
        query = db.query(Order).filter(Order.user_id == user_id)
        if status:
            query = query.filter(Order.order_status == status)

        total = query.count()
        orders = (
            query.options(selectinload(Order.items))
            .order_by(Order.created_at.desc(), Order.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return orders, total

    @staticmethod
    def add_order(db: Session, order: Order) -> Order:
        """Stage a new order with its items; the caller commits"""
        db.add(order)
        db.flush()
        return order
