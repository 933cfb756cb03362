# schedule_admin/services/schedule_store.py
from datetime import date, datetime
from typing import Dict, List, Optional

from pydantic import ValidationError
from sqlalchemy.orm import Session

from schedule_admin.exceptions import InvalidTimeFormat, MalformedScheduleEntry
from schedule_admin.logging_config import get_logger
from schedule_admin.models import (
    BlockedDateRecord,
    BookingRecord,
    CapacityOverrideRecord,
    ScheduleDay,
    SchedulingThresholdRecord,
    StandardSlot,
)
from schedule_admin.schemas.availability import (
    WEEKDAY_NAMES,
    BlockedDate,
    Booking,
    CapacityOverride,
    DaySchedule,
    ScheduleSnapshot,
    SchedulingThreshold,
    TimeRange,
    WeekSchedule,
    to_naive_utc,
)
from schedule_admin.services.bitmap_service import Bitmap, encode, validate_bitmap
from schedule_admin.services.capacity_service import record_warning
from schedule_admin.services.time_service import is_valid_time_range, validate_time_range

logger = get_logger(__name__)


def _validate_ranges(ranges: List[TimeRange]) -> None:
    # New administrator input is checked strictly; the first bad range aborts the save.
    for time_range in ranges:
        validate_time_range(time_range.start_time, time_range.end_time)


def slot_bitmap(row: StandardSlot) -> Bitmap:
    return row.slots_bitmap_low, row.slots_bitmap_high


def save_week_schedule(db: Session, schedule: WeekSchedule) -> List[StandardSlot]:
    """
    Replace the stored weekly schedule.

    Behavior:
    - Validates every range first (InvalidTimeFormat / InvalidTimeRange);
      nothing is written if any range is invalid.
    - Deletes all existing StandardSlot rows and inserts one row per range,
      with its 2-word slot bitmap.
    - Stores the enabled flag of every weekday.
    """
    for day_schedule in schedule.days().values():
        _validate_ranges(day_schedule.ranges)

    db.query(StandardSlot).delete()
    db.query(ScheduleDay).delete()

    created: List[StandardSlot] = []
    for weekday, day_schedule in schedule.days().items():
        db.add(ScheduleDay(weekday=weekday, enabled=day_schedule.enabled))

        for position, time_range in enumerate(day_schedule.ranges):
            low, high = encode(time_range.start_time, time_range.end_time)
            row = StandardSlot(
                weekday=weekday,
                position=position,
                start_time=time_range.start_time,
                end_time=time_range.end_time,
                total_slots=time_range.capacity,
                team_id=time_range.team_id,
                engineer_id=time_range.engineer_id,
                slots_bitmap_low=low,
                slots_bitmap_high=high,
            )
            db.add(row)
            created.append(row)

    db.commit()
    for row in created:
        db.refresh(row)

    logger.info("Saved weekly schedule with %d ranges", len(created))
    return created


def check_stored_bitmap(row: StandardSlot, warnings: List[str]) -> None:
    """
    Compare a row's stored bitmap with the encoding of its times.

    Rows whose times do not parse are left to the resolver, which reports
    them itself.
    """
    try:
        if not is_valid_time_range(row.start_time, row.end_time):
            return
    except InvalidTimeFormat:
        return

    stored = slot_bitmap(row)
    entry = f"{row.start_time}-{row.end_time}"
    source = f"{row.weekday} schedule"
    if not validate_bitmap(stored):
        record_warning(
            warnings,
            MalformedScheduleEntry(source, entry, f"stored slot bitmap {stored!r} is invalid"),
        )
    elif stored != encode(row.start_time, row.end_time):
        record_warning(
            warnings,
            MalformedScheduleEntry(
                source, entry, f"stored slot bitmap {stored!r} does not match its times"
            ),
        )


def load_week_schedule(db: Session, warnings: Optional[List[str]] = None) -> WeekSchedule:
    """
    Read the weekly schedule back.

    Times are passed through as stored; a malformed one is reported later
    by the resolver instead of failing here. Rows whose stored bitmap
    disagrees with their times are reported through `warnings` and still
    loaded from their times.
    """
    if warnings is None:
        warnings = []

    enabled: Dict[str, bool] = {
        row.weekday: row.enabled for row in db.query(ScheduleDay).all()
    }

    ranges: Dict[str, List[TimeRange]] = {name: [] for name in WEEKDAY_NAMES}
    rows = (
        db.query(StandardSlot)
        .order_by(StandardSlot.weekday, StandardSlot.position, StandardSlot.id)
        .all()
    )
    for row in rows:
        if row.weekday not in ranges:
            logger.warning("Ignoring standard slot %s with unknown weekday %r", row.id, row.weekday)
            continue
        check_stored_bitmap(row, warnings)
        ranges[row.weekday].append(
            TimeRange(
                start_time=row.start_time,
                end_time=row.end_time,
                capacity=max(0, row.total_slots or 0),
                team_id=row.team_id,
                engineer_id=row.engineer_id,
            )
        )

    return WeekSchedule(
        **{
            name: DaySchedule(enabled=enabled.get(name, True), ranges=ranges[name])
            for name in WEEKDAY_NAMES
        }
    )


def list_standard_slots(db: Session) -> List[StandardSlot]:
    return (
        db.query(StandardSlot)
        .order_by(StandardSlot.weekday, StandardSlot.position, StandardSlot.id)
        .all()
    )


def add_blocked_date(db: Session, blocked: BlockedDate) -> BlockedDateRecord:
    if blocked.team_id is None and not blocked.apply_to_all_teams:
        raise ValueError("A blocked date needs a team_id or apply_to_all_teams=True")

    record = BlockedDateRecord(
        date=blocked.date,
        reason=blocked.reason,
        team_id=blocked.team_id,
        apply_to_all_teams=blocked.apply_to_all_teams,
    )
    db.add(record)
    db.commit()
    db.refresh(record)

    logger.info(
        "Blocked %s for %s (%s)",
        blocked.date.isoformat(),
        "all teams" if blocked.apply_to_all_teams else f"team {blocked.team_id}",
        blocked.reason,
    )
    return record


def remove_blocked_date(
    db: Session,
    target_date: date,
    team_id: Optional[str] = None,
) -> int:
    """Remove blocks on a date (only that team's when team_id is given). Returns rows removed."""
    query = db.query(BlockedDateRecord).filter(BlockedDateRecord.date == target_date)
    if team_id is not None:
        query = query.filter(BlockedDateRecord.team_id == team_id)
    removed = query.delete()
    db.commit()
    return removed


def list_blocked_dates(db: Session) -> List[BlockedDate]:
    rows = db.query(BlockedDateRecord).order_by(BlockedDateRecord.date, BlockedDateRecord.id).all()
    return [
        BlockedDate(
            date=row.date,
            reason=row.reason or "",
            team_id=row.team_id,
            apply_to_all_teams=bool(row.apply_to_all_teams),
        )
        for row in rows
    ]


def add_capacity_override(db: Session, override: CapacityOverride) -> CapacityOverrideRecord:
    _validate_ranges(override.ranges)

    record = CapacityOverrideRecord(
        date=override.date,
        team_id=override.team_id,
        ranges=[r.model_dump() for r in override.ranges],
    )
    db.add(record)
    db.commit()
    db.refresh(record)

    logger.info(
        "Added capacity override for %s with %d ranges",
        override.date.isoformat(),
        len(override.ranges),
    )
    return record


def remove_capacity_override(db: Session, target_date: date, index: int) -> bool:
    """Remove the index-th override (in creation order) stored for a date."""
    rows = (
        db.query(CapacityOverrideRecord)
        .filter(CapacityOverrideRecord.date == target_date)
        .order_by(CapacityOverrideRecord.id)
        .all()
    )
    if index < 0 or index >= len(rows):
        return False

    db.delete(rows[index])
    db.commit()
    return True


def list_capacity_overrides(db: Session) -> List[CapacityOverride]:
    overrides: List[CapacityOverride] = []
    rows = (
        db.query(CapacityOverrideRecord)
        .order_by(CapacityOverrideRecord.date, CapacityOverrideRecord.id)
        .all()
    )
    for row in rows:
        ranges: List[TimeRange] = []
        for raw in row.ranges or []:
            try:
                ranges.append(TimeRange.model_validate(raw))
            except ValidationError:
                logger.warning("Skipping unreadable range %r in override %s", raw, row.id)
        overrides.append(CapacityOverride(date=row.date, team_id=row.team_id, ranges=ranges))
    return overrides


def set_threshold(db: Session, threshold: SchedulingThreshold) -> SchedulingThresholdRecord:
    record = db.get(SchedulingThresholdRecord, threshold.product_type_id)
    if record is None:
        record = SchedulingThresholdRecord(product_type_id=threshold.product_type_id)
        db.add(record)

    record.minimum_days_notice = threshold.minimum_days_notice
    record.max_displayed_slots = threshold.max_displayed_slots
    db.commit()
    db.refresh(record)
    return record


def _threshold_from_record(record: SchedulingThresholdRecord) -> SchedulingThreshold:
    return SchedulingThreshold(
        product_type_id=record.product_type_id,
        minimum_days_notice=record.minimum_days_notice,
        max_displayed_slots=record.max_displayed_slots,
    )


def get_threshold(db: Session, product_type_id: str) -> Optional[SchedulingThreshold]:
    record = db.get(SchedulingThresholdRecord, product_type_id)
    return _threshold_from_record(record) if record is not None else None


def list_thresholds(db: Session) -> List[SchedulingThreshold]:
    return [_threshold_from_record(r) for r in db.query(SchedulingThresholdRecord).all()]


def record_booking(db: Session, booking: Booking, customer_name: Optional[str] = None) -> BookingRecord:
    if booking.end_time <= booking.start_time:
        raise ValueError("end_time must be after start_time")

    record = BookingRecord(
        start_time=booking.start_time,
        end_time=booking.end_time,
        team_id=booking.team_id,
        engineer_id=booking.engineer_id,
        product_type_id=booking.product_type_id,
        customer_name=customer_name,
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


def list_bookings(
    db: Session,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> List[Booking]:
    """Bookings overlapping [start, end); all bookings when no bounds are given."""
    query = db.query(BookingRecord)
    # Stored bookings are naive UTC
    start = to_naive_utc(start) if start is not None else None
    end = to_naive_utc(end) if end is not None else None
    if end is not None:
        query = query.filter(BookingRecord.start_time < end)
    if start is not None:
        query = query.filter(BookingRecord.end_time > start)

    return [
        Booking(
            start_time=row.start_time,
            end_time=row.end_time,
            team_id=row.team_id,
            engineer_id=row.engineer_id,
            product_type_id=row.product_type_id,
        )
        for row in query.order_by(BookingRecord.start_time).all()
    ]


def load_snapshot(
    db: Session,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> ScheduleSnapshot:
    """Immutable copy of everything the resolver reads, bookings limited to [start, end)."""
    warnings: List[str] = []
    return ScheduleSnapshot(
        schedule=load_week_schedule(db, warnings),
        overrides=list_capacity_overrides(db),
        blocked_dates=list_blocked_dates(db),
        thresholds=list_thresholds(db),
        bookings=list_bookings(db, start, end),
        warnings=warnings,
    )
