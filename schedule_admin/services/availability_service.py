# schedule_admin/services/availability_service.py
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Iterable, List, Optional, Sequence, Set, Tuple

from schedule_admin.exceptions import MissingThreshold
from schedule_admin.schemas.availability import (
    AvailabilityScope,
    AvailabilityWindow,
    BlockedDate,
    Booking,
    CapacityOverride,
    ScheduleSnapshot,
    SchedulingThreshold,
    SlotFilter,
    TimeRange,
    TimeSlot,
    WeekSchedule,
)
from schedule_admin.services.capacity_service import (
    CapacitySegment,
    capacity_at,
    filter_ranges_for_scope,
    merge_pieces,
    record_warning,
    stored_range_bounds,
)
from schedule_admin.services.time_service import (
    MINUTES_PER_DAY,
    SLOT_MINUTES,
    crosses_midnight,
    parse_time,
)

DEFAULT_MINIMUM_DAYS_NOTICE = 2
DEFAULT_MAX_DISPLAYED_SLOTS = 20
DEFAULT_BUSINESS_DAY_START = "08:00"
DEFAULT_BUSINESS_DAY_END = "17:00"


@dataclass
class AvailabilityResult:
    slots: List[TimeSlot]
    min_notice_slot_count: int
    minimum_bookable_date: date
    warnings: List[str] = field(default_factory=list)
    # Selectable slots after the suggestion filters and display cap
    suggested_slots: List[TimeSlot] = field(default_factory=list)


def select_threshold(
    thresholds: Iterable[SchedulingThreshold],
    product_type_id: Optional[str],
) -> Optional[SchedulingThreshold]:
    if product_type_id is None:
        return None
    for threshold in thresholds:
        if threshold.product_type_id == product_type_id:
            return threshold
    return None


def minimum_bookable_date(
    now: datetime,
    threshold: Optional[SchedulingThreshold],
    default_days: int = DEFAULT_MINIMUM_DAYS_NOTICE,
) -> date:
    """
    Earliest date that may be offered: today + minimum days notice.

    Works at date granularity, so any slot on that date qualifies
    regardless of the time of day `now` has reached.
    """
    days = threshold.minimum_days_notice if threshold is not None else default_days
    return now.date() + timedelta(days=days)


def count_bookings(
    bookings: Iterable[Booking],
    start: datetime,
    end: datetime,
    scope: AvailabilityScope,
) -> int:
    """Bookings overlapping [start, end) that belong to the requested scope."""
    count = 0
    for booking in bookings:
        if not (booking.start_time < end and booking.end_time > start):
            continue
        if scope.team_id is not None and booking.team_id not in (None, scope.team_id):
            continue
        if scope.engineer_id is not None and booking.engineer_id not in (
            None,
            scope.engineer_id,
        ):
            continue
        count += 1
    return count


def _ranges_for_date(
    target_date: date,
    scope: AvailabilityScope,
    schedule: WeekSchedule,
    overrides: Sequence[CapacityOverride],
) -> List[Tuple[str, TimeRange]]:
    """Base weekday ranges plus that date's override ranges, tagged with their source."""
    tagged: List[Tuple[str, TimeRange]] = []

    day_schedule = schedule.for_date(target_date)
    weekday = target_date.strftime("%A").lower()
    if day_schedule.enabled:
        for time_range in filter_ranges_for_scope(
            day_schedule.ranges, scope.team_id, scope.engineer_id
        ):
            tagged.append((f"{weekday} schedule", time_range))

    for override in overrides:
        if override.date != target_date:
            continue
        if (
            scope.team_id is not None
            and override.team_id is not None
            and override.team_id != scope.team_id
        ):
            continue
        ranges = [
            r if r.team_id is not None or override.team_id is None
            else r.model_copy(update={"team_id": override.team_id})
            for r in override.ranges
        ]
        for time_range in filter_ranges_for_scope(ranges, scope.team_id, scope.engineer_id):
            tagged.append((f"override {target_date.isoformat()}", time_range))

    return tagged


def _blocked_teams(
    target_date: date,
    blocked_dates: Sequence[BlockedDate],
) -> Tuple[bool, Set[str]]:
    """(blocked for every team, team ids blocked individually) for one date."""
    all_teams = False
    teams: Set[str] = set()
    for blocked in blocked_dates:
        if blocked.date != target_date:
            continue
        if blocked.apply_to_all_teams:
            all_teams = True
        elif blocked.team_id is not None:
            teams.add(blocked.team_id)
    return all_teams, teams


def _blocked_for_scope(
    target_date: date,
    scope: AvailabilityScope,
    blocked_dates: Sequence[BlockedDate],
) -> Tuple[bool, Set[str]]:
    """(whole date blocked for this scope, team ids blocked individually)."""
    blocked_all, blocked_teams = _blocked_teams(target_date, blocked_dates)
    blocked = blocked_all or (scope.team_id is not None and scope.team_id in blocked_teams)
    return blocked, blocked_teams


def _owned_ranges(
    target_date: date,
    scope: AvailabilityScope,
    schedule: WeekSchedule,
    overrides: Sequence[CapacityOverride],
    blocked_dates: Sequence[BlockedDate],
) -> List[Tuple[str, TimeRange]]:
    """Ranges that start on `target_date` and survive that date's blocks."""
    blocked, blocked_teams = _blocked_for_scope(target_date, scope, blocked_dates)
    if blocked:
        return []
    return [
        (source, time_range)
        for source, time_range in _ranges_for_date(target_date, scope, schedule, overrides)
        if time_range.team_id is None or time_range.team_id not in blocked_teams
    ]


def day_segments(
    target_date: date,
    scope: AvailabilityScope,
    schedule: WeekSchedule,
    overrides: Sequence[CapacityOverride],
    blocked_dates: Sequence[BlockedDate],
    warnings: List[str],
) -> List[CapacitySegment]:
    """
    Merged capacity segments for one date and scope.

    A date blocked for every team, or for the requested team, has no
    segments at all. Without a requested team, ranges owned by an
    individually blocked team are dropped and the rest still count.

    A midnight-crossing range counts until 24:00 on the date it starts and
    from 00:00 to its end on the following date. The part after midnight
    needs both dates to be open.
    """
    blocked, blocked_teams = _blocked_for_scope(target_date, scope, blocked_dates)
    if blocked:
        return []

    pieces: List[Tuple[int, int, int]] = []
    for source, time_range in _owned_ranges(
        target_date, scope, schedule, overrides, blocked_dates
    ):
        bounds = stored_range_bounds(time_range, source, warnings)
        if bounds is None:
            continue
        start, end = bounds
        if crosses_midnight(start, end):
            end = MINUTES_PER_DAY
        pieces.append((start, end, time_range.capacity))

    # Malformed ranges of the previous date are reported when that date is resolved
    previous_date = target_date - timedelta(days=1)
    for source, time_range in _owned_ranges(
        previous_date, scope, schedule, overrides, blocked_dates
    ):
        if time_range.team_id is not None and time_range.team_id in blocked_teams:
            continue
        bounds = stored_range_bounds(time_range, source, None)
        if bounds is None:
            continue
        start, end = bounds
        if crosses_midnight(start, end) and end > 0:
            pieces.append((0, end, time_range.capacity))

    return merge_pieces(pieces)


def business_slot_minutes(start_time: str, end_time: str) -> List[int]:
    start = parse_time(start_time)
    end = parse_time(end_time, allow_end_of_day=True)
    start -= start % SLOT_MINUTES
    return list(range(start, end, SLOT_MINUTES))


def display_cap(
    threshold: Optional[SchedulingThreshold],
    default_max_displayed_slots: int = DEFAULT_MAX_DISPLAYED_SLOTS,
) -> int:
    """The threshold's max_displayed_slots, or the default when it is unset (0)."""
    if threshold is not None and threshold.max_displayed_slots > 0:
        return threshold.max_displayed_slots
    return default_max_displayed_slots


def suggest_slots(
    slots: Iterable[TimeSlot],
    date_filter: Optional[SlotFilter] = None,
    time_filter: Optional[SlotFilter] = None,
    max_displayed_slots: int = DEFAULT_MAX_DISPLAYED_SLOTS,
) -> List[TimeSlot]:
    """
    Slots to offer the person booking.

    Keeps selectable slots only, applies the date filter ("YYYY-MM-DD") and
    the start-time filter ("HH:mm") and caps the chronologically first
    `max_displayed_slots` of them (0 = no cap).
    """
    suggested: List[TimeSlot] = []
    for slot in sorted(slots, key=lambda s: s.start_time):
        if not slot.selectable:
            continue
        if date_filter is not None and not date_filter.matches(
            slot.start_time.date().isoformat()
        ):
            continue
        if time_filter is not None and not time_filter.matches(
            slot.start_time.strftime("%H:%M")
        ):
            continue
        suggested.append(slot)

    if max_displayed_slots > 0:
        suggested = suggested[:max_displayed_slots]
    return suggested


def resolve_availability(
    window: AvailabilityWindow,
    scope: AvailabilityScope,
    bookings: Sequence[Booking],
    schedule: WeekSchedule,
    overrides: Sequence[CapacityOverride],
    blocked_dates: Sequence[BlockedDate],
    threshold: Optional[SchedulingThreshold],
    now: datetime,
    allow_unavailable: bool = False,
    *,
    date_filter: Optional[SlotFilter] = None,
    time_filter: Optional[SlotFilter] = None,
    business_day_start: str = DEFAULT_BUSINESS_DAY_START,
    business_day_end: str = DEFAULT_BUSINESS_DAY_END,
    default_minimum_days_notice: int = DEFAULT_MINIMUM_DAYS_NOTICE,
    default_max_displayed_slots: int = DEFAULT_MAX_DISPLAYED_SLOTS,
) -> AvailabilityResult:
    """
    Resolve per-slot capacity and availability for a multi-day window.

    Algorithm:
        1. minimum bookable date = now.date() + minimum_days_notice
           (missing threshold -> default, recorded as a warning)
        2. for each date in the window and each business-hours half-hour:
           a. blocked for the team -> capacity 0
           b. else merge base weekday ranges + that date's overrides (plus
              the after-midnight part of the previous date's ranges) and
              read the covering segment's capacity (0 if none)
           c. available = max(0, capacity - overlapping bookings)
        3. slots dated before the minimum bookable date are dropped and
           counted in min_notice_slot_count
        4. malformed stored ranges are skipped and reported in warnings
        5. suggested_slots = selectable slots passing the date/time
           filters, capped at the threshold's max_displayed_slots

    Pure: no I/O and no state kept between calls. `slots` holds every
    resolved slot, zero-capacity ones included, with selectable=False
    unless allow_unavailable is set.
    """
    warnings: List[str] = []

    if threshold is None:
        record_warning(warnings, MissingThreshold(scope.product_type_id, default_minimum_days_notice))
    min_date = minimum_bookable_date(now, threshold, default_minimum_days_notice)

    slot_minutes = business_slot_minutes(business_day_start, business_day_end)
    slot_length = timedelta(minutes=SLOT_MINUTES)

    slots: List[TimeSlot] = []
    min_notice_slot_count = 0

    for offset in range(window.days):
        target_date = window.start_date + timedelta(days=offset)

        if target_date < min_date:
            min_notice_slot_count += len(slot_minutes)
            continue

        segments = day_segments(
            target_date, scope, schedule, overrides, blocked_dates, warnings
        )

        for minute in slot_minutes:
            slot_start = datetime.combine(target_date, time(minute // 60, minute % 60))
            slot_end = slot_start + slot_length

            capacity = capacity_at(segments, minute)
            booked = count_bookings(bookings, slot_start, slot_end, scope)
            available = max(0, capacity - booked)

            slots.append(
                TimeSlot(
                    start_time=slot_start,
                    end_time=slot_end,
                    capacity=capacity,
                    available=available,
                    selectable=allow_unavailable or available > 0,
                )
            )

    slots.sort(key=lambda s: s.start_time)

    return AvailabilityResult(
        slots=slots,
        min_notice_slot_count=min_notice_slot_count,
        minimum_bookable_date=min_date,
        warnings=warnings,
        suggested_slots=suggest_slots(
            slots,
            date_filter=date_filter,
            time_filter=time_filter,
            max_displayed_slots=display_cap(threshold, default_max_displayed_slots),
        ),
    )


def resolve_for_snapshot(
    snapshot: ScheduleSnapshot,
    window: AvailabilityWindow,
    scope: AvailabilityScope,
    now: datetime,
    allow_unavailable: bool = False,
    **options,
) -> AvailabilityResult:
    """
    Convenience wrapper: pick the scope's threshold from the snapshot and
    resolve. Warnings raised while the snapshot was loaded come first.
    """
    result = resolve_availability(
        window=window,
        scope=scope,
        bookings=snapshot.bookings,
        schedule=snapshot.schedule,
        overrides=snapshot.overrides,
        blocked_dates=snapshot.blocked_dates,
        threshold=select_threshold(snapshot.thresholds, scope.product_type_id),
        now=now,
        allow_unavailable=allow_unavailable,
        **options,
    )
    result.warnings = list(snapshot.warnings) + result.warnings
    return result
