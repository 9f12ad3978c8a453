"""API endpoints for EventZon."""

from fastapi import APIRouter, status
from ..schemas.common import ErrorResponse
from .events import router as events_router
from .cart import router as cart_router
from .bookings import router as bookings_router
from .tickets import router as tickets_router
from .admin import router as admin_router
from .geo import router as geo_router

# Error shapes shared by every endpoint, for the OpenAPI schema
ERROR_RESPONSES = {
    status.HTTP_401_UNAUTHORIZED: {"model": ErrorResponse, "description": "Missing or invalid token"},
    status.HTTP_403_FORBIDDEN: {"model": ErrorResponse, "description": "Admin role required"},
    status.HTTP_404_NOT_FOUND: {"model": ErrorResponse, "description": "Resource not found"},
    status.HTTP_409_CONFLICT: {"model": ErrorResponse, "description": "Inventory or state conflict"},
}

# Create main API router
api_router = APIRouter(prefix="/api/v1", responses=ERROR_RESPONSES)

# Include all routers
api_router.include_router(events_router)
api_router.include_router(cart_router)
api_router.include_router(bookings_router)
api_router.include_router(tickets_router)
api_router.include_router(admin_router)
api_router.include_router(geo_router)

__all__ = ["api_router"]
