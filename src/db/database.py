from sqlalchemy import create_engine, Column, String, Float, DateTime, or_
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.exc import SQLAlchemyError
from datetime import datetime, timezone
from typing import List, Dict, Optional
import os
import logging

from src.models.place import LocationRecord, ADDRESS_FIELDS

# Get logger
logger = logging.getLogger(__name__)

DATABASE_URL = os.getenv("DB_URL", "sqlite:///./places.db")
Base = declarative_base()


class StoreError(Exception):
    """Raised when the record store cannot be read."""


# Define the Place table structure
class PlaceDB(Base):
    __tablename__ = "places"
    id = Column(String, primary_key=True, index=True)
    name = Column(String, nullable=True)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    street = Column(String, nullable=True)
    house_number = Column(String, nullable=True)
    city = Column(String, nullable=True)
    county = Column(String, nullable=True)
    state = Column(String, nullable=True)
    country = Column(String, nullable=True)
    postcode = Column(String, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))


# Places missing street or city information
NEEDS_ADDRESS = or_(
    PlaceDB.street == None,
    PlaceDB.street == "",
    PlaceDB.city == None,
    PlaceDB.city == ""
)

engine = create_engine(DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def create_tables(bind=None):
    try:
        Base.metadata.create_all(bind=bind or engine)
        logger.info("Database tables created (if they didn't exist previously).")
    except Exception as e:
        logger.error(f"Error creating database tables: {e}")
        raise


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


class PlaceStore:
    """Record store for places, keyed by id. Every update is committed on its own."""

    def __init__(self, session):
        self.session = session

    def select(self, ids) -> List[LocationRecord]:
        if not ids:
            return []
        try:
            places = self.session.query(PlaceDB).filter(PlaceDB.id.in_(list(ids))).all()
        except SQLAlchemyError as e:
            logger.error(f"Error fetching places: {e}")
            raise StoreError("Failed to fetch places") from e
        return [LocationRecord.model_validate(place) for place in places]

    def update(self, place_id, fields: Dict[str, Optional[str]]) -> bool:
        """Write only the address fields given; columns not named are left as stored."""
        values = {name: fields[name] for name in ADDRESS_FIELDS if name in fields}
        if not values:
            logger.warning(f"No address fields to write for place {place_id}")
            return False
        try:
            updated = self.session.query(PlaceDB).filter(PlaceDB.id == place_id).update(
                values, synchronize_session=False
            )
            self.session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Error updating place {place_id}: {e}")
            self.session.rollback()
            return False

        if not updated:
            logger.warning(f"Place {place_id} not found during update")
            return False
        return True

    def find_candidates(self, limit=10, offset=0) -> List[PlaceDB]:
        try:
            return (
                self.session.query(PlaceDB)
                .filter(NEEDS_ADDRESS)
                .order_by(PlaceDB.created_at.desc())
                .offset(offset)
                .limit(limit)
                .all()
            )
        except SQLAlchemyError as e:
            logger.error(f"Error fetching places needing geocoding: {e}")
            raise StoreError("Failed to fetch places") from e

    def count_candidates(self) -> int:
        try:
            return self.session.query(PlaceDB).filter(NEEDS_ADDRESS).count()
        except SQLAlchemyError as e:
            logger.error(f"Error counting places needing geocoding: {e}")
            raise StoreError("Failed to count places") from e
