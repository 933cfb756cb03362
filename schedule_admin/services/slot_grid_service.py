# schedule_admin/services/slot_grid_service.py
from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable, List, Sequence, Tuple

from schedule_admin.schemas.availability import TimeSlot
from schedule_admin.services.time_service import SLOT_MINUTES, half_hour_times, parse_time

DEFAULT_GRID_DAYS = 5


def grid_dates(start: date, days: int = DEFAULT_GRID_DAYS) -> List[str]:
    """`days` consecutive "YYYY-MM-DD" strings starting at `start`."""
    return [(start + timedelta(days=i)).isoformat() for i in range(days)]


def business_times(start_time: str = "08:00", end_time: str = "17:00") -> List[str]:
    """Row labels of the grid; the default business day gives 18 half-hour rows."""
    return half_hour_times(start_time, end_time)


def placeholder_slot(date_str: str, time_str: str, allow_unavailable: bool) -> TimeSlot:
    """Zero-capacity slot for a grid cell nothing was resolved for."""
    minutes = parse_time(time_str)
    start = datetime.combine(date.fromisoformat(date_str), datetime.min.time()) + timedelta(
        minutes=minutes
    )
    return TimeSlot(
        start_time=start,
        end_time=start + timedelta(minutes=SLOT_MINUTES),
        capacity=0,
        available=0,
        selectable=allow_unavailable,
    )


class SlotGrid:
    """
    Dense date x time view over resolved slots.

    Every (date, time) pair of the grid resolves to a slot; cells without a
    resolved slot get a synthesized {capacity: 0, available: 0} placeholder.
    """

    def __init__(
        self,
        slots: Iterable[TimeSlot],
        dates: Sequence[str],
        times: Sequence[str],
        allow_unavailable: bool = False,
    ):
        self.dates = list(dates)
        self.times = list(times)
        self.allow_unavailable = allow_unavailable
        self._slots: Dict[Tuple[str, str], TimeSlot] = {}
        for slot in slots:
            key = (slot.start_time.date().isoformat(), slot.start_time.strftime("%H:%M"))
            self._slots[key] = slot

    def get(self, date_str: str, time_str: str) -> TimeSlot:
        slot = self._slots.get((date_str, time_str))
        if slot is not None:
            return slot
        return placeholder_slot(date_str, time_str, self.allow_unavailable)

    def is_selectable(self, slot: TimeSlot) -> bool:
        """Acceleration mode may pick anything; otherwise only slots with room left."""
        return self.allow_unavailable or slot.available > 0

    @staticmethod
    def status_text(slot: TimeSlot) -> str:
        return f"{slot.available}/{slot.capacity}"

    def rows(self) -> List[Dict[str, Any]]:
        """One row per time, one cell per date, ready for JSON."""
        rows: List[Dict[str, Any]] = []
        for time_str in self.times:
            cells = []
            for date_str in self.dates:
                slot = self.get(date_str, time_str)
                cells.append(
                    {
                        "date": date_str,
                        "start_time": slot.start_time.isoformat(),
                        "end_time": slot.end_time.isoformat(),
                        "capacity": slot.capacity,
                        "available": slot.available,
                        "selectable": self.is_selectable(slot),
                        "status": self.status_text(slot),
                    }
                )
            rows.append({"time": time_str, "cells": cells})
        return rows


def build_grid(
    slots: Iterable[TimeSlot],
    dates: Sequence[str],
    times: Sequence[str],
    allow_unavailable: bool = False,
) -> SlotGrid:
    return SlotGrid(slots, dates, times, allow_unavailable=allow_unavailable)
