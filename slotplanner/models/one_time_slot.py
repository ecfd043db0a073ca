"""One-time slot model definitions."""

import uuid
from datetime import datetime

from sqlalchemy import Column, Date, DateTime, Index, String, Time
from slotplanner.database import Base


class OneTimeSlot(Base):
    """Non-recurring slot on a single calendar date."""
    __tablename__ = "one_time_slots"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    slot_date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    __table_args__ = (
        Index("idx_one_time_slots_date", "slot_date"),
    )
