# tests/test_availability_service.py
from datetime import date, datetime, timedelta, timezone

from schedule_admin.schemas.availability import (
    AvailabilityScope,
    AvailabilityWindow,
    BlockedDate,
    Booking,
    CapacityOverride,
    DaySchedule,
    ScheduleSnapshot,
    SchedulingThreshold,
    SlotFilter,
    TimeRange,
    WeekSchedule,
)
from schedule_admin.services.availability_service import (
    count_bookings,
    minimum_bookable_date,
    resolve_availability,
    resolve_for_snapshot,
    select_threshold,
)

# 2025-01-06 is a Monday
MONDAY = date(2025, 1, 6)
NOW = datetime(2025, 1, 1, 10, 0)
THRESHOLD = SchedulingThreshold(product_type_id="install", minimum_days_notice=2)


def _schedule(*ranges, enabled=True):
    return WeekSchedule(monday=DaySchedule(enabled=enabled, ranges=list(ranges)))


def _resolve(schedule, **kwargs):
    params = dict(
        window=AvailabilityWindow(start_date=MONDAY, days=1),
        scope=AvailabilityScope(product_type_id="install"),
        bookings=[],
        schedule=schedule,
        overrides=[],
        blocked_dates=[],
        threshold=THRESHOLD,
        now=NOW,
    )
    params.update(kwargs)
    return resolve_availability(**params)


def _slot_at(result, hour, minute=0):
    for slot in result.slots:
        if slot.start_time == datetime(MONDAY.year, MONDAY.month, MONDAY.day, hour, minute):
            return slot
    raise AssertionError(f"no slot at {hour:02d}:{minute:02d}")


def test_business_day_has_eighteen_half_hour_slots():
    result = _resolve(_schedule(TimeRange(start_time="09:00", end_time="12:00", capacity=2)))

    assert len(result.slots) == 18
    assert result.slots[0].start_time == datetime(2025, 1, 6, 8, 0)
    assert result.slots[-1].start_time == datetime(2025, 1, 6, 16, 30)
    assert result.slots[-1].end_time == datetime(2025, 1, 6, 17, 0)
    assert result.warnings == []

    assert _slot_at(result, 9).capacity == 2
    assert _slot_at(result, 11, 30).capacity == 2
    assert _slot_at(result, 12).capacity == 0
    assert _slot_at(result, 8).capacity == 0


def test_slots_sorted_by_start_time():
    result = _resolve(
        _schedule(TimeRange(start_time="09:00", end_time="10:00", capacity=1)),
        window=AvailabilityWindow(start_date=MONDAY, days=3),
    )
    starts = [s.start_time for s in result.slots]
    assert starts == sorted(starts)


def test_booking_reduces_available_but_not_capacity():
    booking = Booking(
        start_time=datetime(2025, 1, 6, 9, 0),
        end_time=datetime(2025, 1, 6, 9, 30),
    )
    result = _resolve(
        _schedule(TimeRange(start_time="09:00", end_time="10:00", capacity=2)),
        bookings=[booking],
    )

    nine = _slot_at(result, 9)
    assert nine.capacity == 2
    assert nine.available == 1
    assert nine.selectable is True

    assert _slot_at(result, 9, 30).available == 2


def test_available_never_negative():
    bookings = [
        Booking(start_time=datetime(2025, 1, 6, 9, 0), end_time=datetime(2025, 1, 6, 10, 0))
        for _ in range(3)
    ]
    result = _resolve(
        _schedule(TimeRange(start_time="09:00", end_time="10:00", capacity=1)),
        bookings=bookings,
    )
    nine = _slot_at(result, 9)
    assert nine.available == 0
    assert nine.selectable is False


def test_blocked_date_for_all_teams_zeroes_every_slot():
    blocked = BlockedDate(date=MONDAY, reason="Holiday", apply_to_all_teams=True)
    result = _resolve(
        _schedule(TimeRange(start_time="08:00", end_time="17:00", capacity=5)),
        blocked_dates=[blocked],
    )

    assert len(result.slots) == 18
    assert all(s.capacity == 0 and s.available == 0 for s in result.slots)
    assert not any(s.selectable for s in result.slots)


def test_blocked_date_for_one_team():
    schedule = _schedule(
        TimeRange(start_time="09:00", end_time="10:00", capacity=2, team_id="team-a"),
        TimeRange(start_time="09:00", end_time="10:00", capacity=1, team_id="team-b"),
    )
    blocked = [BlockedDate(date=MONDAY, team_id="team-a")]

    team_a = _resolve(
        schedule,
        blocked_dates=blocked,
        scope=AvailabilityScope(team_id="team-a", product_type_id="install"),
    )
    assert _slot_at(team_a, 9).capacity == 0

    team_b = _resolve(
        schedule,
        blocked_dates=blocked,
        scope=AvailabilityScope(team_id="team-b", product_type_id="install"),
    )
    assert _slot_at(team_b, 9).capacity == 1

    everyone = _resolve(schedule, blocked_dates=blocked)
    assert _slot_at(everyone, 9).capacity == 1


def test_blocked_date_on_other_day_has_no_effect():
    blocked = BlockedDate(date=date(2025, 1, 7), apply_to_all_teams=True)
    result = _resolve(
        _schedule(TimeRange(start_time="09:00", end_time="10:00", capacity=2)),
        blocked_dates=[blocked],
    )
    assert _slot_at(result, 9).capacity == 2


def test_override_adds_to_weekday_schedule():
    override = CapacityOverride(
        date=MONDAY,
        ranges=[TimeRange(start_time="09:30", end_time="11:00", capacity=3)],
    )
    result = _resolve(
        _schedule(TimeRange(start_time="09:00", end_time="10:00", capacity=2)),
        overrides=[override],
    )

    assert _slot_at(result, 9).capacity == 2
    assert _slot_at(result, 9, 30).capacity == 5
    assert _slot_at(result, 10).capacity == 3


def test_override_applies_on_disabled_day():
    override = CapacityOverride(
        date=MONDAY,
        ranges=[TimeRange(start_time="14:00", end_time="15:00", capacity=1)],
    )
    result = _resolve(
        _schedule(TimeRange(start_time="09:00", end_time="10:00", capacity=2), enabled=False),
        overrides=[override],
    )
    assert _slot_at(result, 9).capacity == 0
    assert _slot_at(result, 14).capacity == 1


def test_acceleration_mode_makes_zero_slots_selectable():
    result = _resolve(
        _schedule(TimeRange(start_time="09:00", end_time="10:00", capacity=1)),
        allow_unavailable=True,
    )

    eight = _slot_at(result, 8)
    assert eight.capacity == 0
    assert eight.available == 0
    assert eight.selectable is True


def test_minimum_notice_excludes_and_counts_early_slots():
    result = _resolve(
        _schedule(TimeRange(start_time="09:00", end_time="10:00", capacity=1)),
        window=AvailabilityWindow(start_date=date(2025, 1, 1), days=5),
    )

    # 2025-01-01 and 2025-01-02 fall before 2025-01-03
    assert result.minimum_bookable_date == date(2025, 1, 3)
    assert result.min_notice_slot_count == 36
    assert len(result.slots) == 54
    assert all(s.start_time.date() >= date(2025, 1, 3) for s in result.slots)


def test_minimum_notice_uses_date_granularity():
    late_evening = datetime(2025, 1, 1, 23, 59)
    assert minimum_bookable_date(late_evening, THRESHOLD) == date(2025, 1, 3)
    assert minimum_bookable_date(NOW, None, default_days=4) == date(2025, 1, 5)
    assert minimum_bookable_date(
        NOW, SchedulingThreshold(product_type_id="x", minimum_days_notice=0)
    ) == date(2025, 1, 1)


def test_missing_threshold_falls_back_with_warning():
    result = _resolve(
        _schedule(TimeRange(start_time="09:00", end_time="10:00", capacity=1)),
        threshold=None,
        window=AvailabilityWindow(start_date=date(2025, 1, 1), days=5),
        default_minimum_days_notice=2,
    )

    assert result.minimum_bookable_date == date(2025, 1, 3)
    assert result.min_notice_slot_count == 36
    assert len(result.warnings) == 1
    assert "install" in result.warnings[0]


def test_malformed_stored_range_is_skipped_with_warning():
    result = _resolve(
        _schedule(
            TimeRange(start_time="9am", end_time="10:00", capacity=4),
            TimeRange(start_time="12:00", end_time="11:00", capacity=4),
            TimeRange(start_time="09:00", end_time="10:00", capacity=1),
        )
    )

    assert _slot_at(result, 9).capacity == 1
    assert len(result.warnings) == 2
    assert "9am-10:00" in result.warnings[0]
    assert "12:00-11:00" in result.warnings[1]


def test_display_cap_skips_unbookable_slots():
    threshold = SchedulingThreshold(
        product_type_id="install", minimum_days_notice=2, max_displayed_slots=4
    )
    result = _resolve(
        _schedule(TimeRange(start_time="12:00", end_time="14:00", capacity=2)),
        threshold=threshold,
    )

    # Every resolved slot is kept for the grid
    assert len(result.slots) == 18
    assert [s.start_time.strftime("%H:%M") for s in result.suggested_slots] == [
        "12:00",
        "12:30",
        "13:00",
        "13:30",
    ]
    assert all(s.available == 2 for s in result.suggested_slots)


def test_display_cap_defaults_to_twenty():
    business_day = DaySchedule(ranges=[TimeRange(start_time="08:00", end_time="17:00", capacity=1)])
    result = _resolve(
        WeekSchedule(monday=business_day, tuesday=business_day),
        window=AvailabilityWindow(start_date=MONDAY, days=2),
    )
    assert len(result.slots) == 36
    assert len(result.suggested_slots) == 20

    uncapped = _resolve(
        _schedule(TimeRange(start_time="08:00", end_time="17:00", capacity=1)),
        default_max_displayed_slots=0,
    )
    assert len(uncapped.suggested_slots) == 18


def test_suggestions_include_unavailable_slots_in_acceleration_mode():
    result = _resolve(
        _schedule(TimeRange(start_time="12:00", end_time="13:00", capacity=2)),
        allow_unavailable=True,
    )
    assert len(result.suggested_slots) == 18
    assert result.suggested_slots[0].available == 0


def test_suggestion_date_filter():
    schedule = WeekSchedule(
        **{
            day: DaySchedule(ranges=[TimeRange(start_time="09:00", end_time="10:00", capacity=1)])
            for day in ("monday", "tuesday", "wednesday")
        }
    )
    window = AvailabilityWindow(start_date=MONDAY, days=3)

    def suggested_dates(position):
        result = _resolve(
            schedule,
            window=window,
            date_filter=SlotFilter(value="2025-01-07", position=position),
        )
        return sorted({s.start_time.date().isoformat() for s in result.suggested_slots})

    assert suggested_dates("exact") == ["2025-01-07"]
    assert suggested_dates("before") == ["2025-01-06", "2025-01-07"]
    assert suggested_dates("after") == ["2025-01-07", "2025-01-08"]


def test_suggestion_time_filter():
    schedule = _schedule(TimeRange(start_time="09:00", end_time="11:00", capacity=1))

    def suggested_times(position):
        result = _resolve(schedule, time_filter=SlotFilter(value="10:00", position=position))
        return [s.start_time.strftime("%H:%M") for s in result.suggested_slots]

    assert suggested_times("exact") == ["10:00"]
    assert suggested_times("before") == ["09:00", "09:30", "10:00"]
    assert suggested_times("after") == ["10:00", "10:30"]


def test_midnight_crossing_range_continues_on_next_date():
    result = _resolve(
        _schedule(TimeRange(start_time="23:30", end_time="00:30", capacity=2)),
        window=AvailabilityWindow(start_date=MONDAY, days=2),
        business_day_start="00:00",
        business_day_end="24:00",
    )
    capacity = {s.start_time: s.capacity for s in result.slots}

    assert len(result.slots) == 96
    assert capacity[datetime(2025, 1, 6, 0, 0)] == 0
    assert capacity[datetime(2025, 1, 6, 23, 0)] == 0
    assert capacity[datetime(2025, 1, 6, 23, 30)] == 2
    assert capacity[datetime(2025, 1, 7, 0, 0)] == 2
    assert capacity[datetime(2025, 1, 7, 0, 30)] == 0
    assert capacity[datetime(2025, 1, 7, 23, 30)] == 0


def test_midnight_crossing_override_and_blocked_dates():
    override = CapacityOverride(
        date=date(2025, 1, 5),
        ranges=[TimeRange(start_time="23:00", end_time="00:30", capacity=1)],
    )
    full_day = dict(business_day_start="00:00", business_day_end="01:00")

    # A Sunday override reaches into Monday morning
    result = _resolve(WeekSchedule(), overrides=[override], **full_day)
    assert [s.capacity for s in result.slots] == [1, 0]

    # Blocking the date the range starts on removes its after-midnight part
    blocked_sunday = [BlockedDate(date=date(2025, 1, 5), apply_to_all_teams=True)]
    result = _resolve(WeekSchedule(), overrides=[override], blocked_dates=blocked_sunday, **full_day)
    assert [s.capacity for s in result.slots] == [0, 0]

    blocked_monday = [BlockedDate(date=MONDAY, apply_to_all_teams=True)]
    result = _resolve(WeekSchedule(), overrides=[override], blocked_dates=blocked_monday, **full_day)
    assert [s.capacity for s in result.slots] == [0, 0]


def test_timezone_aware_bookings_are_compared_in_utc():
    # 10:00 at UTC+1 is 09:00 UTC
    booking = Booking(
        start_time=datetime(2025, 1, 6, 10, 0, tzinfo=timezone(timedelta(hours=1))),
        end_time=datetime(2025, 1, 6, 10, 30, tzinfo=timezone(timedelta(hours=1))),
    )
    assert booking.start_time == datetime(2025, 1, 6, 9, 0)
    assert booking.start_time.tzinfo is None

    result = _resolve(
        _schedule(TimeRange(start_time="09:00", end_time="11:00", capacity=2)),
        bookings=[
            booking,
            Booking(
                start_time=datetime(2025, 1, 6, 10, 0, tzinfo=timezone.utc),
                end_time=datetime(2025, 1, 6, 10, 30, tzinfo=timezone.utc),
            ),
        ],
    )
    assert _slot_at(result, 9).available == 1
    assert _slot_at(result, 10).available == 1


def test_custom_business_hours():
    result = _resolve(
        _schedule(TimeRange(start_time="09:00", end_time="10:00", capacity=1)),
        business_day_start="09:00",
        business_day_end="10:00",
    )
    assert [s.capacity for s in result.slots] == [1, 1]


def test_resolution_is_repeatable():
    schedule = _schedule(TimeRange(start_time="09:00", end_time="12:00", capacity=2))
    first = _resolve(schedule)
    second = _resolve(schedule)
    assert first == second


def test_count_bookings_respects_scope():
    bookings = [
        Booking(
            start_time=datetime(2025, 1, 6, 9, 0),
            end_time=datetime(2025, 1, 6, 10, 0),
            team_id="team-a",
        ),
        Booking(
            start_time=datetime(2025, 1, 6, 9, 0),
            end_time=datetime(2025, 1, 6, 9, 30),
            team_id="team-b",
        ),
        Booking(start_time=datetime(2025, 1, 6, 9, 15), end_time=datetime(2025, 1, 6, 9, 45)),
    ]
    start = datetime(2025, 1, 6, 9, 30)
    end = datetime(2025, 1, 6, 10, 0)

    assert count_bookings(bookings, start, end, AvailabilityScope()) == 2
    assert count_bookings(bookings, start, end, AvailabilityScope(team_id="team-a")) == 2
    assert count_bookings(bookings, start, end, AvailabilityScope(team_id="team-b")) == 1


def test_select_threshold():
    thresholds = [THRESHOLD, SchedulingThreshold(product_type_id="repair", minimum_days_notice=1)]
    assert select_threshold(thresholds, "repair").minimum_days_notice == 1
    assert select_threshold(thresholds, "unknown") is None
    assert select_threshold(thresholds, None) is None


def test_resolve_for_snapshot_picks_threshold():
    snapshot = ScheduleSnapshot(
        schedule=_schedule(TimeRange(start_time="09:00", end_time="10:00", capacity=1)),
        thresholds=[SchedulingThreshold(product_type_id="repair", minimum_days_notice=0)],
    )
    result = resolve_for_snapshot(
        snapshot,
        AvailabilityWindow(start_date=date(2025, 1, 1), days=1),
        AvailabilityScope(product_type_id="repair"),
        now=NOW,
    )
    assert result.minimum_bookable_date == date(2025, 1, 1)
    assert result.min_notice_slot_count == 0
    assert len(result.slots) == 18
    assert result.warnings == []
