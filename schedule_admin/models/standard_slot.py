from datetime import datetime

from sqlalchemy import BigInteger, Boolean, Column, DateTime, Integer, String

from schedule_admin.models.base import Base


class ScheduleDay(Base):
    """Per-weekday on/off switch of the weekly schedule."""

    __tablename__ = "schedule_days"

    weekday = Column(String(16), primary_key=True)
    enabled = Column(Boolean, nullable=False, default=True)


class StandardSlot(Base):
    """
    One recurring weekly range (e.g. Monday 09:00-12:00, capacity 2).

    The half-hour footprint is stored alongside the times as two unsigned
    32-bit words (see services/bitmap_service.py).
    """

    __tablename__ = "standard_slots"

    id = Column(Integer, primary_key=True, index=True)

    # "monday" ... "sunday"
    weekday = Column(String(16), nullable=False, index=True)

    # Order of the range within its day, ranges have no other identity
    position = Column(Integer, nullable=False, default=0)

    # "HH:mm"
    start_time = Column(String(5), nullable=False)
    end_time = Column(String(5), nullable=False)

    total_slots = Column(Integer, nullable=False, default=0)

    team_id = Column(String(64), nullable=True, index=True)
    engineer_id = Column(String(64), nullable=True, index=True)

    slots_bitmap_low = Column(BigInteger, nullable=False, default=0)
    slots_bitmap_high = Column(BigInteger, nullable=False, default=0)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
