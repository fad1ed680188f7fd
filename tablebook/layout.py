"""
Table lookups against the floor-plan layout.

The layout editor stores each restaurant's floor plan as a list of loosely
shaped elements. Booking needs only the tables out of it, reduced to an id,
a seat count and a label.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

from tablebook.errors import TransientStoreError
from tablebook.models import Restaurant
from tablebook.schemas import TableReference

logger = logging.getLogger(__name__)

TABLE_ELEMENT = "table"


def table_from_element(element: Dict[str, Any]) -> Optional[TableReference]:
    """
    Convert one layout element into a table reference.

    Args:
        element: A layout element such as
            ``{"id": "t1", "type": "table", "seats": 4, "label": "T1", "x": 10, ...}``

    Returns:
        TableReference for table elements, None for walls, bars, plants or
        table entries too broken to book against.
    """
    if not isinstance(element, dict) or element.get("type") != TABLE_ELEMENT:
        return None

    table_id = element.get("id")
    seats = element.get("seats")
    if table_id in (None, "") or not isinstance(seats, int) or isinstance(seats, bool) or seats <= 0:
        logger.warning(f"Skipping malformed table element in layout: {element!r}")
        return None

    return TableReference(
        id=str(table_id),
        seat_capacity=seats,
        label=str(element.get("label") or table_id),
    )


def tables_from_layout(layout: Optional[Iterable[Dict[str, Any]]]) -> List[TableReference]:
    """Extract all bookable tables from a layout, keeping layout order."""
    tables = []
    for element in layout or []:
        table = table_from_element(element)
        if table is not None:
            tables.append(table)
    return tables


class TableDirectory:
    """Read-only view of the tables of each restaurant."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def list_tables(self, restaurant_id: int) -> List[TableReference]:
        """
        Tables of one restaurant.

        Returns an empty list for unknown restaurants; existence is checked
        by the booking store.
        """
        try:
            with self.session_factory() as db:
                restaurant = db.get(Restaurant, restaurant_id)
                layout = list(restaurant.layout or []) if restaurant else []
        except OperationalError as e:
            raise TransientStoreError(f"Layout lookup failed: {e}") from e
        return tables_from_layout(layout)

    def resolve_table(self, restaurant_id: int, table_id: str) -> Optional[TableReference]:
        """Look up a single table by its layout id."""
        for table in self.list_tables(restaurant_id):
            if table.id == table_id:
                return table
        return None
