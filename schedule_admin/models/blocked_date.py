from datetime import datetime

from sqlalchemy import Boolean, Column, Date, DateTime, Integer, String

from schedule_admin.models.base import Base


class BlockedDateRecord(Base):
    __tablename__ = "blocked_dates"

    id = Column(Integer, primary_key=True, index=True)

    date = Column(Date, nullable=False, index=True)
    reason = Column(String(255), nullable=False, default="")

    # NULL together with apply_to_all_teams=True blocks every team
    team_id = Column(String(64), nullable=True, index=True)
    apply_to_all_teams = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
