# schedule_admin/routers/bookings.py
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, field_validator, model_validator
from sqlalchemy.orm import Session

from schedule_admin.db.session import get_db
from schedule_admin.schemas.availability import Booking, to_naive_utc
from schedule_admin.services import schedule_store

router = APIRouter(prefix="/bookings", tags=["bookings"])


class BookingCreate(BaseModel):
    start_time: datetime
    end_time: datetime
    team_id: Optional[str] = None
    engineer_id: Optional[str] = None
    product_type_id: Optional[str] = None
    customer_name: Optional[str] = None

    # Stored as naive UTC
    @field_validator("start_time", "end_time")
    def normalize_timezone(cls, v: datetime) -> datetime:
        return to_naive_utc(v)

    @model_validator(mode="after")
    def check_end_after_start(self) -> "BookingCreate":
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


@router.post("")
def create_booking(
        payload: BookingCreate,
        db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Record an existing appointment so it is subtracted from slot availability."""
    booking = Booking(**payload.model_dump(exclude={"customer_name"}))
    try:
        record = schedule_store.record_booking(db, booking, customer_name=payload.customer_name)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {
        "id": record.id,
        "start_time": record.start_time.isoformat(),
        "end_time": record.end_time.isoformat(),
        "team_id": record.team_id,
        "engineer_id": record.engineer_id,
        "product_type_id": record.product_type_id,
        "customer_name": record.customer_name,
    }


@router.get("")
def get_bookings(
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        db: Session = Depends(get_db),
) -> Dict[str, Any]:
    return {
        "bookings": [
            b.model_dump(mode="json") for b in schedule_store.list_bookings(db, start, end)
        ]
    }
