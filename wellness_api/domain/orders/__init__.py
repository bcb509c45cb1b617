"""Orders domain - Meal orders, pricing and delivery tracking"""

from .router import admin_router, router

__all__ = ["router", "admin_router"]
