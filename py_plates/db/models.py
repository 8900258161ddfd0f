"""Database models for simulation record storage."""

from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, String
from sqlalchemy.orm import declarative_base

Base = declarative_base()

# Record fields promoted to indexed columns so ``find`` can filter in SQL
INDEXED_FIELDS = ("planet_id", "plate_id", "cell_id", "sector")


class RecordRow(Base):
    """One entity record (planet, plate, platelet or simulation) as JSON."""

    __tablename__ = "records"

    collection = Column(String(32), primary_key=True)
    id = Column(String(255), primary_key=True)

    planet_id = Column(String(64), index=True)
    plate_id = Column(String(64), index=True)
    cell_id = Column(String(32), index=True)
    sector = Column(String(32), index=True)

    payload = Column(JSON, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
