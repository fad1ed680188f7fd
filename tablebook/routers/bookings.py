"""
Booking Router for the Table Booking API.

Guests create booking requests here; staff list them and confirm, decline,
seat or complete them. All status changes go through the lifecycle
controller.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Request

from tablebook.auth import require_staff
from tablebook.errors import BookingError
from tablebook.lifecycle import BookingLifecycle
from tablebook.routers.common import get_lifecycle, http_error
from tablebook.schemas import (
    BookingCreate, BookingRecord, BookingStatus, CleanupResponse, DecisionRequest,
    PendingBooking
)

router = APIRouter(prefix="/api", tags=["bookings"])


@router.post(
    "/restaurants/{restaurant_id}/bookings",
    response_model=BookingRecord,
    summary="Request a Table",
)
def create_booking(
    restaurant_id: int,
    body: BookingCreate,
    lifecycle: BookingLifecycle = Depends(get_lifecycle),
) -> BookingRecord:
    """
    Create a new booking request for a table.

    The request starts as PENDING and is declined automatically if staff do
    not answer within the pending timeout. A ``date_time`` without offset is
    read as the restaurant's local time.

    Raises:
        HTTPException: 400 if the request is invalid (e.g. party too large)
        HTTPException: 404 if the restaurant is not found
    """
    try:
        return lifecycle.create_booking(restaurant_id, body)
    except BookingError as e:
        raise http_error(e)


@router.get(
    "/restaurants/{restaurant_id}/bookings",
    response_model=List[BookingRecord],
    dependencies=[Depends(require_staff)],
)
def list_bookings(
    restaurant_id: int,
    status: Optional[BookingStatus] = None,
    lifecycle: BookingLifecycle = Depends(get_lifecycle),
) -> List[BookingRecord]:
    """List a restaurant's bookings in the order they were made."""
    try:
        return lifecycle.list_bookings(restaurant_id, status)
    except BookingError as e:
        raise http_error(e)


@router.get(
    "/restaurants/{restaurant_id}/bookings/pending",
    response_model=List[PendingBooking],
    dependencies=[Depends(require_staff)],
)
def list_pending_requests(
    restaurant_id: int,
    lifecycle: BookingLifecycle = Depends(get_lifecycle),
) -> List[PendingBooking]:
    """
    Open booking requests, oldest first, with the seconds left to answer them.
    """
    try:
        pending = lifecycle.list_bookings(restaurant_id, BookingStatus.PENDING)
    except BookingError as e:
        raise http_error(e)

    now = lifecycle.clock()
    return [
        PendingBooking(booking=b, seconds_left=lifecycle.seconds_left(b, now))
        for b in sorted(pending, key=lambda b: b.created_at)
    ]


@router.get(
    "/restaurants/{restaurant_id}/bookings/{booking_id}",
    response_model=BookingRecord,
    dependencies=[Depends(require_staff)],
)
def get_booking(
    restaurant_id: int,
    booking_id: int,
    lifecycle: BookingLifecycle = Depends(get_lifecycle),
) -> BookingRecord:
    """Get a single booking."""
    try:
        return lifecycle.get_booking(booking_id, restaurant_id)
    except BookingError as e:
        raise http_error(e)


@router.post(
    "/restaurants/{restaurant_id}/bookings/{booking_id}/decision",
    response_model=BookingRecord,
    dependencies=[Depends(require_staff)],
)
def decide(
    restaurant_id: int,
    booking_id: int,
    body: DecisionRequest,
    lifecycle: BookingLifecycle = Depends(get_lifecycle),
) -> BookingRecord:
    """
    Confirm or decline a pending booking request.

    Declining requires a reason. Deciding on a booking that is no longer
    pending is answered with 409 and the booking's current state.
    """
    try:
        return lifecycle.decide(booking_id, body.decision, body.reason, restaurant_id)
    except BookingError as e:
        raise http_error(e)


@router.post(
    "/restaurants/{restaurant_id}/bookings/{booking_id}/occupy",
    response_model=BookingRecord,
    dependencies=[Depends(require_staff)],
)
def occupy(
    restaurant_id: int,
    booking_id: int,
    lifecycle: BookingLifecycle = Depends(get_lifecycle),
) -> BookingRecord:
    """Mark a confirmed booking's guests as seated."""
    try:
        return lifecycle.mark_occupied(booking_id, restaurant_id)
    except BookingError as e:
        raise http_error(e)


@router.post(
    "/restaurants/{restaurant_id}/bookings/{booking_id}/complete",
    response_model=BookingRecord,
    dependencies=[Depends(require_staff)],
)
def complete(
    restaurant_id: int,
    booking_id: int,
    lifecycle: BookingLifecycle = Depends(get_lifecycle),
) -> BookingRecord:
    """Close a confirmed or seated booking whose service window is over."""
    try:
        return lifecycle.complete(booking_id, restaurant_id)
    except BookingError as e:
        raise http_error(e)


@router.post("/bookings/cleanup-expired", response_model=CleanupResponse)
def cleanup_expired(request: Request) -> CleanupResponse:
    """
    Run one expiration sweep right away.

    Returns:
        The number of requests declined and the declined bookings
    """
    try:
        result = request.app.state.sweeper.sweep_once()
    except BookingError as e:
        raise http_error(e)
    return CleanupResponse(updated=len(result.expired), bookings=result.expired)
