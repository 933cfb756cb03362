# schedule_admin/routers/availability.py
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from schedule_admin.config import get_settings
from schedule_admin.db.session import get_db
from schedule_admin.schemas.availability import (
    AvailabilityScope,
    AvailabilityWindow,
    BlockedDate,
    CapacityOverride,
    SlotFilter,
    TimeRange,
    WeekSchedule,
)
from schedule_admin.services import schedule_store
from schedule_admin.services.availability_service import resolve_for_snapshot
from schedule_admin.services.capacity_service import total_capacity_by_day
from schedule_admin.services.slot_grid_service import build_grid, business_times, grid_dates
from schedule_admin.services.time_service import format_time, parse_time

router = APIRouter()


class BlockedDateCreate(BaseModel):
    date: date
    reason: str = ""
    team_id: Optional[str] = None
    apply_to_all_teams: bool = False


class CapacityOverrideCreate(BaseModel):
    date: date
    ranges: List[TimeRange] = Field(min_length=1)
    team_id: Optional[str] = None


def _schedule_payload(db: Session) -> Dict[str, Any]:
    schedule = schedule_store.load_week_schedule(db)
    return {
        "schedule": schedule.model_dump(),
        "ranges": [
            {
                "id": row.id,
                "weekday": row.weekday,
                "position": row.position,
                "start_time": row.start_time,
                "end_time": row.end_time,
                "capacity": row.total_slots,
                "team_id": row.team_id,
                "engineer_id": row.engineer_id,
                "slots_bitmap": list(schedule_store.slot_bitmap(row)),
            }
            for row in schedule_store.list_standard_slots(db)
        ],
    }


@router.get("/schedule")
def get_schedule(db: Session = Depends(get_db)) -> Dict[str, Any]:
    """Weekly schedule plus the stored rows (with their slot bitmaps)."""
    return _schedule_payload(db)


@router.put("/schedule")
def replace_schedule(
        payload: WeekSchedule,
        db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """
    Replace the whole weekly schedule.

    Invalid times or ranges are rejected with 400 before anything is
    written (handled by the CapacityEngineError handler in main.py).
    """
    schedule_store.save_week_schedule(db, payload)
    return _schedule_payload(db)


@router.get("/capacity")
def get_total_capacity(
        team_id: Optional[str] = None,
        engineer_id: Optional[str] = None,
        db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """
    "Total Capacity" view: overlapping ranges of each weekday merged into
    segments carrying the summed capacity.
    """
    schedule = schedule_store.load_week_schedule(db)
    warnings: List[str] = []
    by_day = total_capacity_by_day(schedule, team_id, engineer_id, warnings)
    return {
        "team_id": team_id,
        "engineer_id": engineer_id,
        "days": {
            weekday: [segment.as_dict() for segment in segments]
            for weekday, segments in by_day.items()
        },
        "warnings": warnings,
    }


@router.get("/blocked-dates")
def get_blocked_dates(db: Session = Depends(get_db)) -> Dict[str, Any]:
    return {
        "blocked_dates": [
            b.model_dump(mode="json") for b in schedule_store.list_blocked_dates(db)
        ]
    }


@router.post("/blocked-dates")
def create_blocked_date(
        payload: BlockedDateCreate,
        db: Session = Depends(get_db),
) -> Dict[str, Any]:
    try:
        record = schedule_store.add_blocked_date(db, BlockedDate(**payload.model_dump()))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {
        "id": record.id,
        "date": record.date.isoformat(),
        "reason": record.reason,
        "team_id": record.team_id,
        "apply_to_all_teams": record.apply_to_all_teams,
    }


@router.delete("/blocked-dates/{blocked_date}")
def delete_blocked_date(
        blocked_date: date,
        team_id: Optional[str] = None,
        db: Session = Depends(get_db),
) -> Dict[str, Any]:
    removed = schedule_store.remove_blocked_date(db, blocked_date, team_id=team_id)
    if not removed:
        raise HTTPException(status_code=404, detail="Blocked date not found")
    return {"date": blocked_date.isoformat(), "removed": removed}


@router.get("/overrides")
def get_overrides(db: Session = Depends(get_db)) -> Dict[str, Any]:
    return {
        "overrides": [
            o.model_dump(mode="json") for o in schedule_store.list_capacity_overrides(db)
        ]
    }


@router.post("/overrides")
def create_override(
        payload: CapacityOverrideCreate,
        db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """
    Add ranges for a single date. They are summed with that weekday's
    regular schedule, they do not replace it.
    """
    record = schedule_store.add_capacity_override(
        db, CapacityOverride(**payload.model_dump())
    )
    return {
        "id": record.id,
        "date": record.date.isoformat(),
        "team_id": record.team_id,
        "ranges": record.ranges,
    }


@router.delete("/overrides/{override_date}/{index}")
def delete_override(
        override_date: date,
        index: int,
        db: Session = Depends(get_db),
) -> Dict[str, Any]:
    if not schedule_store.remove_capacity_override(db, override_date, index):
        raise HTTPException(status_code=404, detail="Capacity override not found")
    return {"date": override_date.isoformat(), "index": index, "removed": True}


@router.get("/slots")
def get_slots(
        start_date: date,
        days: Optional[int] = Query(default=None, ge=1, le=31),
        product_type_id: Optional[str] = None,
        team_id: Optional[str] = None,
        engineer_id: Optional[str] = None,
        allow_unavailable: bool = False,
        filter_date: Optional[date] = None,
        filter_date_position: Literal["exact", "before", "after"] = "after",
        filter_time: Optional[str] = None,
        filter_time_position: Literal["exact", "before", "after"] = "after",
        # Optional 'now' for determinism in tests / simulations
        now: Optional[datetime] = None,
        db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """
    Resolve bookable half-hour slots for a window of days, plus the dense
    date x time grid the booking UI renders.

    allow_unavailable=true is acceleration mode: real availability is still
    reported, but every slot becomes selectable.

    `suggested_slots` are the selectable slots that pass the date and time
    filters ("exact", "before" or "after", inclusive), capped by the
    product type's max_displayed_slots (default 20).
    """
    settings = get_settings()
    window = AvailabilityWindow(
        start_date=start_date,
        days=days or settings.DEFAULT_WINDOW_DAYS,
    )
    scope = AvailabilityScope(
        team_id=team_id,
        engineer_id=engineer_id,
        product_type_id=product_type_id,
    )

    date_filter = (
        SlotFilter(value=filter_date.isoformat(), position=filter_date_position)
        if filter_date is not None
        else None
    )
    # A malformed time such as "9:00" raises InvalidTimeFormat (400)
    time_filter = (
        SlotFilter(value=format_time(parse_time(filter_time)), position=filter_time_position)
        if filter_time is not None
        else None
    )

    window_start = datetime.combine(window.start_date, datetime.min.time())
    window_end = window_start + timedelta(days=window.days)
    snapshot = schedule_store.load_snapshot(db, window_start, window_end)

    result = resolve_for_snapshot(
        snapshot,
        window,
        scope,
        now=now or datetime.now(),
        allow_unavailable=allow_unavailable,
        date_filter=date_filter,
        time_filter=time_filter,
        business_day_start=settings.BUSINESS_DAY_START,
        business_day_end=settings.BUSINESS_DAY_END,
        default_minimum_days_notice=settings.DEFAULT_MINIMUM_DAYS_NOTICE,
        default_max_displayed_slots=settings.DEFAULT_MAX_DISPLAYED_SLOTS,
    )

    grid = build_grid(
        result.slots,
        grid_dates(window.start_date, window.days),
        business_times(settings.BUSINESS_DAY_START, settings.BUSINESS_DAY_END),
        allow_unavailable=allow_unavailable,
    )

    return {
        "start_date": window.start_date.isoformat(),
        "days": window.days,
        "allow_unavailable": allow_unavailable,
        "minimum_bookable_date": result.minimum_bookable_date.isoformat(),
        "min_notice_slot_count": result.min_notice_slot_count,
        "warnings": result.warnings,
        "slots": [s.model_dump(mode="json") for s in result.slots],
        "suggested_slots": [s.model_dump(mode="json") for s in result.suggested_slots],
        "grid": grid.rows(),
    }
