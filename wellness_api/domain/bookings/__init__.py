"""Bookings domain - Appointments with health professionals"""

from .router import admin_router, router

__all__ = ["router", "admin_router"]
