from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String

from schedule_admin.models.base import Base


class BookingRecord(Base):
    """An existing appointment; only its time span and ownership matter here."""

    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)

    start_time = Column(DateTime, nullable=False, index=True)
    end_time = Column(DateTime, nullable=False, index=True)

    team_id = Column(String(64), nullable=True, index=True)
    engineer_id = Column(String(64), nullable=True, index=True)
    product_type_id = Column(String(64), nullable=True)

    customer_name = Column(String(255), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
