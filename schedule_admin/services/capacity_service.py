# schedule_admin/services/capacity_service.py
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from schedule_admin.exceptions import InvalidTimeFormat, MalformedScheduleEntry
from schedule_admin.logging_config import get_logger
from schedule_admin.schemas.availability import TimeRange, WeekSchedule
from schedule_admin.services.time_service import (
    MINUTES_PER_DAY,
    crosses_midnight,
    format_time,
    is_valid_time_range,
    parse_time,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class CapacitySegment:
    start_minutes: int
    end_minutes: int
    capacity: int

    @property
    def start_time(self) -> str:
        return format_time(self.start_minutes)

    @property
    def end_time(self) -> str:
        return format_time(self.end_minutes)

    def covers(self, minute: int) -> bool:
        return self.start_minutes <= minute < self.end_minutes

    def as_dict(self) -> Dict[str, object]:
        return {
            "start_time": self.start_time,
            "end_time": self.end_time,
            "capacity": self.capacity,
        }


def range_pieces(start_minutes: int, end_minutes: int) -> List[Tuple[int, int]]:
    """
    Split a range into same-day [start, end) pieces.

    A midnight-crossing range contributes the tail of the day and the head
    of the day, the same footprint its bitmap has.
    """
    if crosses_midnight(start_minutes, end_minutes):
        pieces = [(start_minutes, MINUTES_PER_DAY)]
        if end_minutes > 0:
            pieces.append((0, end_minutes))
        return pieces
    return [(start_minutes, end_minutes)]


def merge_capacity_segments(ranges: Iterable[TimeRange]) -> List[CapacitySegment]:
    """
    Reduce possibly-overlapping ranges to ordered, non-overlapping segments.

    Algorithm:
        1. Collect every distinct start/end boundary, sorted ascending.
        2. For each consecutive pair (t_i, t_i+1), sum the capacity of every
           range with start <= t_i and end >= t_i+1.
        3. Emit {t_i, t_i+1, capacity} when capacity > 0.

    Adjacent segments with equal capacity are NOT coalesced; each
    boundary-delimited interval stays its own segment.

    The caller filters `ranges` to one day and one scope beforehand. Times
    must already be valid "HH:mm" strings (InvalidTimeFormat otherwise).
    """
    pieces: List[Tuple[int, int, int]] = []
    for time_range in ranges:
        start = parse_time(time_range.start_time)
        end = parse_time(time_range.end_time)
        for piece_start, piece_end in range_pieces(start, end):
            pieces.append((piece_start, piece_end, time_range.capacity))

    return merge_pieces(pieces)


def merge_pieces(pieces: List[Tuple[int, int, int]]) -> List[CapacitySegment]:
    """Core of merge_capacity_segments, on (start, end, capacity) minute triples."""
    if not pieces:
        return []

    timepoints = sorted({p[0] for p in pieces} | {p[1] for p in pieces})

    segments: List[CapacitySegment] = []
    for segment_start, segment_end in zip(timepoints, timepoints[1:]):
        capacity = sum(
            capacity
            for start, end, capacity in pieces
            if start <= segment_start and end >= segment_end
        )
        if capacity > 0:
            segments.append(CapacitySegment(segment_start, segment_end, capacity))

    return segments


def capacity_at(segments: Iterable[CapacitySegment], minute: int) -> int:
    """Capacity of the segment covering `minute`, 0 when none does."""
    for segment in segments:
        if segment.covers(minute):
            return segment.capacity
    return 0


def filter_ranges_for_scope(
    ranges: Iterable[TimeRange],
    team_id: Optional[str] = None,
    engineer_id: Optional[str] = None,
) -> List[TimeRange]:
    """
    Keep ranges that apply to the requested team/engineer.

    A range without a team_id (or engineer_id) is shared and always kept;
    no requested team/engineer means "all of them".
    """
    selected: List[TimeRange] = []
    for time_range in ranges:
        if team_id is not None and time_range.team_id not in (None, team_id):
            continue
        if engineer_id is not None and time_range.engineer_id not in (None, engineer_id):
            continue
        selected.append(time_range)
    return selected


def record_warning(warnings: List[str], error: Exception) -> None:
    message = getattr(error, "message", str(error))
    logger.warning(message)
    warnings.append(message)


def stored_range_bounds(
    time_range: TimeRange,
    source: str,
    warnings: Optional[List[str]],
) -> Optional[Tuple[int, int]]:
    """
    Lenient counterpart of the parsing in merge_capacity_segments, for data
    that is already stored.

    Returns (start, end) minutes. A range that cannot be parsed, or is not a
    valid same-day or midnight-crossing range, yields None and, when a
    `warnings` list is given, a MalformedScheduleEntry warning.
    """
    entry = f"{time_range.start_time}-{time_range.end_time}"
    try:
        valid = is_valid_time_range(time_range.start_time, time_range.end_time)
    except InvalidTimeFormat as exc:
        if warnings is not None:
            record_warning(warnings, MalformedScheduleEntry(source, entry, exc.message))
        return None

    if not valid:
        if warnings is not None:
            record_warning(warnings, MalformedScheduleEntry(source, entry, "end is not after start"))
        return None

    return parse_time(time_range.start_time), parse_time(time_range.end_time)


def stored_range_pieces(
    time_range: TimeRange,
    source: str,
    warnings: List[str],
) -> List[Tuple[int, int, int]]:
    """Same-day footprint pieces of a stored range; empty for a malformed one."""
    bounds = stored_range_bounds(time_range, source, warnings)
    if bounds is None:
        return []
    return [
        (piece_start, piece_end, time_range.capacity)
        for piece_start, piece_end in range_pieces(*bounds)
    ]


def total_capacity_by_day(
    schedule: WeekSchedule,
    team_id: Optional[str] = None,
    engineer_id: Optional[str] = None,
    warnings: Optional[List[str]] = None,
) -> Dict[str, List[CapacitySegment]]:
    """
    "Total Capacity" view: merged segments for every weekday.

    Disabled days yield an empty list. Reads stored data, so malformed
    ranges are skipped and reported through `warnings`.
    """
    if warnings is None:
        warnings = []

    result: Dict[str, List[CapacitySegment]] = {}
    for weekday, day_schedule in schedule.days().items():
        if not day_schedule.enabled:
            result[weekday] = []
            continue
        pieces: List[Tuple[int, int, int]] = []
        for time_range in filter_ranges_for_scope(day_schedule.ranges, team_id, engineer_id):
            pieces.extend(stored_range_pieces(time_range, f"{weekday} schedule", warnings))
        result[weekday] = merge_pieces(pieces)
    return result
