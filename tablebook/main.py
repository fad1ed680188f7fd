"""
Table Booking API Server.

FastAPI application through which guests request tables and staff approve or
decline those requests. An expiration sweeper runs alongside the server and
declines requests left unanswered past the pending timeout.

Version: 1.0.0
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from typing import Callable, Optional

from fastapi import FastAPI
from sqlalchemy.engine import Engine

from tablebook.auth import StaffAuthorizer, TokenStaffAuthorizer
from tablebook.config import Settings, settings as default_settings
from tablebook.database import create_tables, engine as default_engine, make_session_factory
from tablebook.init_db import init_sample_data
from tablebook.layout import TableDirectory
from tablebook.lifecycle import BookingLifecycle
from tablebook.routers import availability, bookings
from tablebook.store import BookingStore
from tablebook.sweeper import ExpirationSweeper
from tablebook.timeutils import utcnow

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    bind: Optional[Engine] = None,
    clock: Callable[[], datetime] = utcnow,
    authorizer: Optional[StaffAuthorizer] = None,
) -> FastAPI:
    """
    Build the application and wire its components together.

    Args:
        settings: Application settings, defaults to the environment
        bind: Database engine, defaults to the one from ``DATABASE_URL``
        clock: Source of the current UTC instant
        authorizer: Staff authorization, defaults to the ``STAFF_TOKENS`` mapping

    Returns:
        FastAPI: The configured application
    """
    settings = settings or default_settings
    bind = bind if bind is not None else default_engine
    session_factory = make_session_factory(bind)

    store = BookingStore(session_factory)
    lifecycle = BookingLifecycle(
        store,
        TableDirectory(session_factory),
        clock=clock,
        pending_timeout=timedelta(seconds=settings.pending_timeout_seconds),
        service_window=timedelta(minutes=settings.service_window_minutes),
        lookahead=timedelta(minutes=settings.lookahead_minutes),
    )
    sweeper = ExpirationSweeper(
        lifecycle,
        interval=settings.sweep_interval_seconds,
        auto_complete=settings.auto_complete,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Create tables, load sample data if enabled and run the sweeper for
        as long as the application is up.
        """
        create_tables(bind)
        if settings.seed_sample_data:
            init_sample_data(session_factory)
        if settings.enable_sweeper:
            sweeper.start()
        logger.info("Table booking service ready")
        yield
        await sweeper.stop()

    app = FastAPI(
        title="Table Booking API",
        description=(
            "Guests request restaurant tables; staff confirm or decline the "
            "requests before they expire."
        ),
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.lifecycle = lifecycle
    app.state.sweeper = sweeper
    app.state.authorizer = authorizer or TokenStaffAuthorizer(settings.staff_tokens)

    # Include API routers
    app.include_router(bookings.router)
    app.include_router(availability.router)

    @app.get("/api", summary="API Information", tags=["Root"])
    async def root() -> dict:
        """
        Get API information and available endpoints.

        Returns:
            dict: API metadata including version and endpoint URLs.
        """
        return {
            "message": "Table Booking API",
            "version": "1.0.0",
            "endpoints": {
                "create_booking": "/api/restaurants/{restaurant_id}/bookings",
                "list_bookings": "/api/restaurants/{restaurant_id}/bookings",
                "pending_requests": "/api/restaurants/{restaurant_id}/bookings/pending",
                "decide": "/api/restaurants/{restaurant_id}/bookings/{booking_id}/decision",
                "availability": "/api/restaurants/{restaurant_id}/availability",
                "cleanup_expired": "/api/bookings/cleanup-expired",
                "docs": "/docs",
                "redoc": "/redoc"
            }
        }

    return app


logging.basicConfig(
    level=default_settings.log_level,
    format='%(asctime)s - %(levelname)s - %(message)s'
)

app = create_app()
