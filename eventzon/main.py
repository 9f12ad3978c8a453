"""FastAPI application setup and configuration."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .api import api_router
from .database import init_database, close_database
from .middleware import (
    ErrorHandlerMiddleware,
    LoggingMiddleware,
    eventzon_error_handler
)
from .utils.exceptions import EventZonError
from .utils.logging_config import setup_logging

# Set up logging
setup_logging()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown events."""
    # Startup
    logger.info("Starting EventZon")
    await init_database()
    yield
    # Shutdown
    logger.info("Shutting down EventZon")
    await close_database()

app = FastAPI(
    title="EventZon API",
    description="""
    ## EventZon

    Event ticketing for Cameroon: browse events, fill a cart, book tickets
    and receive a printable ticket with a QR code by e-mail.

    ### Authentication

    Protected endpoints expect a JWT issued by the identity provider:
    `Authorization: Bearer <access_token>`. Admin endpoints (check-in,
    analytics, booking listings) require the admin role.

    ### Error Handling

    The API returns structured error responses:

    ```json
    {
      "error": {
        "error_code": "ERROR_CODE",
        "message": "Human readable error message",
        "details": {},
        "suggestions": []
      },
      "error_id": "...",
      "timestamp": "..."
    }
    ```

    ### Concurrency Safety

    Ticket inventory is decremented with a locked, conditional update, so
    concurrent bookings can never sell more tickets than an event holds.
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=[
        {
            "name": "events",
            "description": "Event listing and creation"
        },
        {
            "name": "cart",
            "description": "Pending ticket selections and checkout"
        },
        {
            "name": "bookings",
            "description": "Ticket booking, cancellation and ticket downloads"
        },
        {
            "name": "tickets",
            "description": "Public ticket verification"
        },
        {
            "name": "admin",
            "description": "Check-in, analytics and booking listings"
        },
        {
            "name": "reference",
            "description": "Cameroon regions and cities"
        },
        {
            "name": "health",
            "description": "System health endpoints"
        }
    ],
    lifespan=lifespan,
)

# Domain errors raised inside route handlers
app.add_exception_handler(EventZonError, eventzon_error_handler)

# Middleware runs in reverse order of registration; logging wraps everything
app.add_middleware(
    ErrorHandlerMiddleware,
    debug=settings.debug
)

app.add_middleware(
    LoggingMiddleware,
    log_requests=True,
    log_responses=True
)

if settings.debug:
    # Development: Allow all origins for easier development
    cors_origins = ["*"]
    cors_allow_credentials = False  # Cannot use credentials with wildcard origins
else:
    cors_origins = settings.cors_origins
    cors_allow_credentials = settings.cors_allow_credentials

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
    expose_headers=settings.cors_expose_headers
)

# Include API routes
app.include_router(api_router)


@app.get("/", tags=["health"])
async def root():
    """
    Root endpoint for API information.
    """
    return {
        "message": "EventZon API",
        "version": "1.0.0",
        "docs_url": "/docs",
        "redoc_url": "/redoc",
        "status": "operational"
    }


@app.get("/health", tags=["health"])
async def health_check():
    """
    Basic health check endpoint for uptime monitoring.
    """
    return {"status": "healthy", "service": "eventzon"}
