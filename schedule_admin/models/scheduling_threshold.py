from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String

from schedule_admin.models.base import Base


class SchedulingThresholdRecord(Base):
    __tablename__ = "scheduling_thresholds"

    product_type_id = Column(String(64), primary_key=True)

    minimum_days_notice = Column(Integer, nullable=False, default=2)
    max_displayed_slots = Column(Integer, nullable=False, default=0)

    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
