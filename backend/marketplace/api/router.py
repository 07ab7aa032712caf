"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter

from marketplace.api.routes import bookings, services, slots

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(services.router)
api_router.include_router(slots.router)
api_router.include_router(bookings.router)
