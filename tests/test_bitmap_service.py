# tests/test_bitmap_service.py
import pytest

from schedule_admin.exceptions import InvalidTimeFormat, SlotIndexOutOfRange
from schedule_admin.services.bitmap_service import (
    MAX_SAFE_INTEGER,
    combine_bitmaps,
    decode,
    encode,
    range_minutes,
    slot_index,
    slot_index_to_time,
    slots_to_time_ranges,
    validate_bitmap,
)


def test_slot_index():
    assert slot_index("00:00") == 0
    assert slot_index("09:00") == 18
    assert slot_index("09:45") == 19
    assert slot_index("23:30") == 47


def test_slot_index_rejects_malformed_time():
    with pytest.raises(InvalidTimeFormat):
        slot_index("9:00")


def test_slot_index_to_time():
    assert slot_index_to_time(19) == "09:30"
    assert slot_index_to_time(0) == "00:00"
    with pytest.raises(SlotIndexOutOfRange):
        slot_index_to_time(48)
    with pytest.raises(SlotIndexOutOfRange):
        slot_index_to_time(-1)


def test_encode_same_day_range_sets_only_covered_bits():
    # 09:00-10:00 covers slots 18 and 19
    assert encode("09:00", "10:00") == (2 ** 18 + 2 ** 19, 0)
    assert encode("09:00", "10:00") == (786432, 0)


def test_encode_range_in_second_word():
    # 16:00-17:00 -> slots 32, 33 -> bits 0, 1 of word1
    assert encode("16:00", "17:00") == (0, 0b11)


def test_encode_range_spanning_both_words():
    low, high = encode("15:00", "17:00")
    # slots 30, 31 in word0 and 32, 33 in word1
    assert low == (1 << 30) | (1 << 31)
    assert high == 0b11


def test_encode_midnight_crossing_range():
    low, high = encode("23:00", "00:30")
    # Slots 46, 47 (word1 bits 14, 15) and slot 0 (word0 bit 0)
    assert high == (1 << 14) | (1 << 15)
    assert low == 1


def test_encode_rejects_malformed_time():
    with pytest.raises(InvalidTimeFormat):
        encode("09:00", "25:00")


def test_encode_empty_range_yields_empty_bitmap():
    assert encode("09:00", "09:00") == (0, 0)


def test_validate_bitmap():
    assert validate_bitmap([0, 0]) is True
    assert validate_bitmap((786432, 0)) is True
    assert validate_bitmap([MAX_SAFE_INTEGER, 0]) is True

    assert validate_bitmap([0]) is False
    assert validate_bitmap([0, 0, 0]) is False
    assert validate_bitmap([-1, 0]) is False
    assert validate_bitmap([MAX_SAFE_INTEGER + 1, 0]) is False
    assert validate_bitmap([1.5, 0]) is False
    assert validate_bitmap([True, 0]) is False
    assert validate_bitmap("00") is False
    assert validate_bitmap(None) is False


def test_decode_returns_active_slots():
    assert decode(encode("09:00", "10:30")) == [18, 19, 20]
    assert decode(encode("23:00", "00:30")) == [0, 46, 47]


def test_decode_rejects_invalid_bitmap():
    with pytest.raises(ValueError):
        decode([1])


def test_slots_to_time_ranges_merges_consecutive_slots():
    assert slots_to_time_ranges([18, 19, 22]) == [("09:00", "10:00"), ("11:00", "11:30")]
    assert slots_to_time_ranges([46, 47]) == [("23:00", "24:00")]
    assert slots_to_time_ranges([]) == []


def test_combine_bitmaps():
    morning = encode("09:00", "11:00")
    late_morning = encode("10:00", "12:00")

    assert decode(combine_bitmaps([morning, late_morning], "AND")) == [20, 21]
    assert decode(combine_bitmaps([morning, late_morning], "or")) == [18, 19, 20, 21, 22, 23]
    assert combine_bitmaps([], "OR") == (0, 0)

    with pytest.raises(ValueError):
        combine_bitmaps([morning], "XOR")


def test_range_minutes():
    assert range_minutes("09:00", "10:30") == 90
    assert range_minutes("23:30", "00:30") == 60
