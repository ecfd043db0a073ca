"""Recurring slot model definitions."""

import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, Index, Integer, String, Time
from slotplanner.database import Base


class RecurringSlot(Base):
    """Weekly availability template for one day of the week."""
    __tablename__ = "slots"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    day_of_week = Column(Integer, nullable=False)  # 0 = Sunday
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    # Position within the day's capacity; the unique index closes the count-then-insert race.
    capacity_index = Column(Integer)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    __table_args__ = (
        Index("idx_slots_day_of_week", "day_of_week"),
        Index("uq_slots_day_capacity", "day_of_week", "capacity_index", unique=True),
    )
