# schedule_admin/routers/thresholds.py
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from schedule_admin.db.session import get_db
from schedule_admin.schemas.availability import SchedulingThreshold
from schedule_admin.services import schedule_store

router = APIRouter(prefix="/thresholds", tags=["thresholds"])


class ThresholdUpdate(BaseModel):
    minimum_days_notice: int = Field(ge=0)
    max_displayed_slots: int = Field(default=0, ge=0)


@router.get("")
def list_thresholds(db: Session = Depends(get_db)) -> Dict[str, Any]:
    return {
        "thresholds": [t.model_dump() for t in schedule_store.list_thresholds(db)]
    }


@router.get("/{product_type_id}")
def get_threshold(
        product_type_id: str,
        db: Session = Depends(get_db),
) -> Dict[str, Any]:
    threshold = schedule_store.get_threshold(db, product_type_id)
    if threshold is None:
        raise HTTPException(status_code=404, detail="Scheduling threshold not found")
    return threshold.model_dump()


@router.put("/{product_type_id}")
def put_threshold(
        product_type_id: str,
        payload: ThresholdUpdate,
        db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """
    Set how many days of notice a product type needs. Product types without
    a threshold fall back to the configured default (2 days).
    """
    record = schedule_store.set_threshold(
        db,
        SchedulingThreshold(product_type_id=product_type_id, **payload.model_dump()),
    )
    return {
        "product_type_id": record.product_type_id,
        "minimum_days_notice": record.minimum_days_notice,
        "max_displayed_slots": record.max_displayed_slots,
    }
