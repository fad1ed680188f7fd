"""
Helpers shared by the API routers.
"""

from fastapi import HTTPException, Request

from tablebook.errors import (
    BookingError, InvalidTransition, NotFound, TransientStoreError, ValidationError
)
from tablebook.lifecycle import BookingLifecycle


def get_lifecycle(request: Request) -> BookingLifecycle:
    """Dependency returning the application's lifecycle controller."""
    return request.app.state.lifecycle


def http_error(error: BookingError) -> HTTPException:
    """
    Map a booking-domain error to the HTTP error shown to the caller.

    An illegal transition is answered with 409 and the booking as it
    currently is, so staff see what happened instead of a failure.
    """
    if isinstance(error, ValidationError):
        return HTTPException(status_code=400, detail=str(error))
    if isinstance(error, NotFound):
        return HTTPException(status_code=404, detail=str(error))
    if isinstance(error, InvalidTransition):
        return HTTPException(
            status_code=409,
            detail={
                "message": str(error),
                "booking": error.booking.model_dump(mode="json") if error.booking else None,
            },
        )
    if isinstance(error, TransientStoreError):
        return HTTPException(status_code=503, detail="Booking store temporarily unavailable")
    return HTTPException(status_code=500, detail="Server error")
