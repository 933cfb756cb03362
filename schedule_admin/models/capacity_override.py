from datetime import datetime

from sqlalchemy import JSON, Column, Date, DateTime, Integer, String

from schedule_admin.models.base import Base


class CapacityOverrideRecord(Base):
    """
    Extra ranges for one calendar date.

    `ranges` holds a list of {"start_time", "end_time", "capacity",
    "team_id", "engineer_id"} dicts, added on top of the weekly schedule.
    """

    __tablename__ = "capacity_overrides"

    id = Column(Integer, primary_key=True, index=True)

    date = Column(Date, nullable=False, index=True)
    team_id = Column(String(64), nullable=True, index=True)

    ranges = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
