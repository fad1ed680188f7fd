"""
Availability Router for the Table Booking API.

Reports, for every table of a restaurant, whether it is free, waiting on an
unanswered request, or booked at a given instant.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query

from tablebook.errors import BookingError
from tablebook.lifecycle import BookingLifecycle
from tablebook.routers.common import get_lifecycle, http_error
from tablebook.schemas import AvailabilityResponse

router = APIRouter(prefix="/api/restaurants", tags=["availability"])


@router.get(
    "/{restaurant_id}/availability",
    response_model=AvailabilityResponse,
    summary="Table Availability",
    response_description="Status of each table: AVAILABLE, PENDING or BOOKED",
)
def table_availability(
    restaurant_id: int,
    at: Optional[datetime] = Query(
        None, description="Instant to resolve; defaults to now. No offset means restaurant-local time"
    ),
    lifecycle: BookingLifecycle = Depends(get_lifecycle),
) -> AvailabilityResponse:
    """
    Resolve the status of every table of a restaurant.

    Args:
        restaurant_id: The restaurant
        at: Optional reference instant
        lifecycle: Lifecycle controller dependency

    Returns:
        AvailabilityResponse mapping table id to status

    Raises:
        HTTPException: 404 if restaurant not found
    """
    try:
        now = lifecycle.local_instant(restaurant_id, at)
        tables = lifecycle.resolve_availability(restaurant_id, now)
    except BookingError as e:
        raise http_error(e)

    return AvailabilityResponse(restaurant_id=restaurant_id, at=now, tables=tables)
