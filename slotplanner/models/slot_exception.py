"""Slot exception model definitions."""

import uuid
from datetime import datetime

from sqlalchemy import Column, Date, DateTime, Enum, ForeignKey, Index, String, Time
from slotplanner.database import Base

EXCEPTION_MODIFIED = "modified"
EXCEPTION_DELETED = "deleted"


class SlotException(Base):
    """Per-date override of a recurring slot occurrence."""
    __tablename__ = "slot_exceptions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    slot_id = Column(String(36), ForeignKey("slots.id", ondelete="CASCADE"), nullable=False)
    exception_date = Column(Date, nullable=False)
    start_time = Column(Time)  # null when deleted
    end_time = Column(Time)  # null when deleted
    type = Column(Enum(EXCEPTION_MODIFIED, EXCEPTION_DELETED, name="slot_exception_type"), nullable=False)
    created_at = Column(DateTime, default=datetime.now)

    __table_args__ = (
        Index("idx_slot_exceptions_date", "exception_date"),
        Index("uq_slot_exceptions_slot_date", "slot_id", "exception_date", unique=True),
    )
