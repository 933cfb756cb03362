# schedule_admin/services/bitmap_service.py
"""
Compact bitmap form of a time range's footprint over one day.

The day is split into 48 half-hour slots (slot index = hour * 2 + minute // 30).
A bitmap is a pair of unsigned 32-bit words:

  word0: slots 0-31  (00:00-15:59), bit i = slot i
  word1: slots 32-47 (16:00-23:59), bit i = slot 32 + i

This layout is what the schedule store persists per range, so it must not
change.
"""
from typing import Iterable, List, Sequence, Tuple

from schedule_admin.exceptions import SlotIndexOutOfRange
from schedule_admin.services.time_service import (
    MINUTES_PER_DAY,
    SLOT_MINUTES,
    SLOTS_PER_DAY,
    crosses_midnight,
    format_time,
    parse_time,
)

Bitmap = Tuple[int, int]

BITS_PER_WORD = 32
WORDS_PER_BITMAP = 2
# Largest integer a JSON/JS consumer can hold exactly
MAX_SAFE_INTEGER = 2 ** 53 - 1

EMPTY_BITMAP: Bitmap = (0, 0)


def _slot_index_from_minutes(minutes: int) -> int:
    index = minutes // SLOT_MINUTES
    if index < 0 or index >= SLOTS_PER_DAY:
        raise SlotIndexOutOfRange(index)
    return index


def slot_index(time_value: str) -> int:
    """
    "HH:mm" -> half-hour slot index (0-47).

    slot_index("09:00") == 18, slot_index("09:45") == 19
    """
    return _slot_index_from_minutes(parse_time(time_value))


def slot_index_to_time(index: int) -> str:
    """19 -> "09:30"."""
    if index < 0 or index >= SLOTS_PER_DAY:
        raise SlotIndexOutOfRange(index)
    return format_time(index * SLOT_MINUTES)


def _set_slot(words: List[int], index: int) -> None:
    words[index // BITS_PER_WORD] |= 1 << (index % BITS_PER_WORD)


def encode(start_time: str, end_time: str) -> Bitmap:
    """
    Encode the slots covered by [start_time, end_time) into a 2-word bitmap.

    A range whose start is after its end crosses midnight and covers
    [start_slot, 47] plus [0, end_slot).
    """
    start_minutes = parse_time(start_time)
    end_minutes = parse_time(end_time)
    start_slot = _slot_index_from_minutes(start_minutes)
    end_slot = _slot_index_from_minutes(end_minutes)

    words = [0] * WORDS_PER_BITMAP

    if crosses_midnight(start_minutes, end_minutes):
        for index in range(start_slot, SLOTS_PER_DAY):
            _set_slot(words, index)
        for index in range(0, end_slot):
            _set_slot(words, index)
    else:
        for index in range(start_slot, end_slot):
            _set_slot(words, index)

    return words[0], words[1]


def validate_bitmap(bitmap: object) -> bool:
    """
    A bitmap is valid iff it is exactly two non-negative integers, each
    within the safe-integer range.
    """
    if not isinstance(bitmap, (list, tuple)) or len(bitmap) != WORDS_PER_BITMAP:
        return False
    for value in bitmap:
        # bool is an int subclass; a stored True/False is not a word
        if isinstance(value, bool) or not isinstance(value, int):
            return False
        if value < 0 or value > MAX_SAFE_INTEGER:
            return False
    return True


def decode(bitmap: Sequence[int]) -> List[int]:
    """Return the sorted slot indices set in a bitmap."""
    if not validate_bitmap(bitmap):
        raise ValueError(f"Invalid bitmap: {bitmap!r}")

    active: List[int] = []
    for word_index, word in enumerate(bitmap):
        for bit in range(BITS_PER_WORD):
            index = word_index * BITS_PER_WORD + bit
            if index >= SLOTS_PER_DAY:
                break
            if word & (1 << bit):
                active.append(index)
    return active


def slots_to_time_ranges(slots: Iterable[int]) -> List[Tuple[str, str]]:
    """
    Merge slot indices into contiguous ("HH:mm", "HH:mm") ranges.

    [18, 19, 22] -> [("09:00", "10:00"), ("11:00", "11:30")]
    A run ending at slot 47 closes at "24:00".
    """
    active = set(slots)
    ranges: List[Tuple[str, str]] = []
    run_start = None

    for index in range(SLOTS_PER_DAY + 1):
        is_active = index in active and index < SLOTS_PER_DAY
        if is_active and run_start is None:
            run_start = index
        elif not is_active and run_start is not None:
            ranges.append(
                (format_time(run_start * SLOT_MINUTES), format_time(index * SLOT_MINUTES))
            )
            run_start = None

    return ranges


def combine_bitmaps(bitmaps: Sequence[Sequence[int]], operation: str = "OR") -> Bitmap:
    """Bitwise AND/OR across bitmaps. No bitmaps -> empty bitmap."""
    op = operation.upper()
    if op not in ("AND", "OR"):
        raise ValueError(f"operation must be 'AND' or 'OR', got {operation!r}")
    if not bitmaps:
        return EMPTY_BITMAP

    for bitmap in bitmaps:
        if not validate_bitmap(bitmap):
            raise ValueError(f"Invalid bitmap: {bitmap!r}")

    low, high = bitmaps[0]
    for other_low, other_high in bitmaps[1:]:
        if op == "AND":
            low, high = low & other_low, high & other_high
        else:
            low, high = low | other_low, high | other_high
    return low, high


def range_minutes(start_time: str, end_time: str) -> int:
    """Minutes covered by a range, counting a midnight-crossing range correctly."""
    start = parse_time(start_time)
    end = parse_time(end_time)
    if crosses_midnight(start, end):
        return MINUTES_PER_DAY - start + end
    return end - start
