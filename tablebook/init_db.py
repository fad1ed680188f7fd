"""
Database Initialization Module.

Creates the schema and, for local development, a sample restaurant with a
small floor plan so the booking endpoints have tables to work against.
"""

import logging

from sqlalchemy.orm import sessionmaker

from tablebook.config import settings
from tablebook.database import SessionLocal, create_tables, engine
from tablebook.models import Restaurant

logger = logging.getLogger(__name__)

SAMPLE_LAYOUT = [
    {"id": "t1", "type": "table", "x": 120, "y": 100, "seats": 2, "shape": "circle", "label": "1"},
    {"id": "t2", "type": "table", "x": 240, "y": 100, "seats": 4, "shape": "square", "label": "2"},
    {"id": "t3", "type": "table", "x": 360, "y": 100, "seats": 4, "shape": "square", "label": "3"},
    {"id": "t4", "type": "table", "x": 240, "y": 260, "seats": 6, "shape": "square", "label": "4"},
    {"id": "bar1", "type": "bar", "x": 40, "y": 380, "width": 300, "height": 40},
    {"id": "w1", "type": "wall", "x": 0, "y": 0, "width": 500, "height": 10},
    {"id": "p1", "type": "plant", "x": 460, "y": 420, "width": 30, "height": 30},
]


def init_sample_data(session_factory: sessionmaker = SessionLocal) -> None:
    """
    Initialize database with sample data for local use.

    Creates one restaurant, "TheHungryUnicorn", with four tables and some
    decoration. Skips initialization if any restaurant already exists.
    """
    with session_factory() as db:
        try:
            if db.query(Restaurant).first():
                logger.info("Sample data already exists, skipping initialization")
                return

            db.add(Restaurant(
                name="TheHungryUnicorn",
                timezone=settings.default_timezone,
                layout=SAMPLE_LAYOUT,
            ))
            db.commit()
            logger.info("Database initialized with sample data")
        except Exception:
            db.rollback()
            raise


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
    logger.info("Creating database tables...")
    create_tables(engine)
    logger.info("Initializing sample data...")
    init_sample_data()
    logger.info("Database setup complete!")
