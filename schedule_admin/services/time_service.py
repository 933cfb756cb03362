# schedule_admin/services/time_service.py
import re
from typing import List, Tuple

from schedule_admin.exceptions import InvalidTimeFormat, InvalidTimeRange

MINUTES_PER_DAY = 24 * 60
SLOT_MINUTES = 30
SLOTS_PER_DAY = MINUTES_PER_DAY // SLOT_MINUTES  # 48

# A range may cross midnight only if it starts at/after 23:00
# and ends at/before 00:30 (at most one slot past midnight).
OVERNIGHT_EARLIEST_START = 23 * 60
OVERNIGHT_LATEST_END = 30

_TIME_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


def parse_time(value: str, allow_end_of_day: bool = False) -> int:
    """
    Parse a zero-padded "HH:mm" string into minutes since midnight.

    Raises InvalidTimeFormat for anything else ("9:00", "09:60",
    non-strings). "24:00" is only accepted with allow_end_of_day=True.
    """
    if not isinstance(value, str):
        raise InvalidTimeFormat(value)
    if allow_end_of_day and value.strip() == "24:00":
        return MINUTES_PER_DAY
    match = _TIME_RE.match(value.strip())
    if not match:
        raise InvalidTimeFormat(value)
    hours, minutes = int(match.group(1)), int(match.group(2))
    return hours * 60 + minutes


def format_time(minutes: int) -> str:
    """
    Minutes since midnight -> "HH:mm".

    1440 is rendered as "24:00" (end of day boundary).
    """
    if minutes < 0 or minutes > MINUTES_PER_DAY:
        raise ValueError(f"minutes must be within 0-{MINUTES_PER_DAY}, got {minutes}")
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def format_time_12h(value: str) -> str:
    """'13:30' -> '1:30 PM', '00:00' -> '12:00 AM'."""
    minutes = parse_time(value)
    hours, mins = divmod(minutes, 60)
    period = "PM" if hours >= 12 else "AM"
    hour12 = hours % 12 or 12
    return f"{hour12}:{mins:02d} {period}"


def crosses_midnight(start_minutes: int, end_minutes: int) -> bool:
    return start_minutes > end_minutes


def is_valid_time_range(start_time: str, end_time: str) -> bool:
    """
    True for a same-day range with start < end, or for a midnight-crossing
    range with start >= 23:00 and end <= 00:30.

    Zero-length ranges ("09:00"-"09:00", "00:00"-"00:00") are invalid.
    """
    start = parse_time(start_time)
    end = parse_time(end_time)
    if crosses_midnight(start, end):
        return start >= OVERNIGHT_EARLIEST_START and end <= OVERNIGHT_LATEST_END
    return start < end


def validate_time_range(start_time: str, end_time: str) -> Tuple[int, int]:
    """Strict variant used for new administrator input. Returns (start, end) minutes."""
    if not is_valid_time_range(start_time, end_time):
        raise InvalidTimeRange(start_time, end_time)
    return parse_time(start_time), parse_time(end_time)


def half_hour_times(start_time: str, end_time: str) -> List[str]:
    """
    Every half-hour start time in [start_time, end_time).

    half_hour_times("08:00", "17:00") -> ["08:00", "08:30", ..., "16:30"]
    """
    start = parse_time(start_time)
    end = parse_time(end_time, allow_end_of_day=True)
    # Align to the half-hour grid
    current = start - start % SLOT_MINUTES
    times: List[str] = []
    while current < end:
        times.append(format_time(current))
        current += SLOT_MINUTES
    return times
