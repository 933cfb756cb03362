# schedule_admin/schemas/availability.py
from datetime import date, datetime, timezone
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# datetime.weekday() order: 0=Monday ... 6=Sunday
WEEKDAY_NAMES: List[str] = [
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
]

FilterPosition = Literal["exact", "before", "after"]


def to_naive_utc(value: datetime) -> datetime:
    """Aware datetimes become naive UTC; naive ones are taken as UTC already."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class TimeRange(BaseModel):
    """
    One administrator-entered range, e.g. 09:00-12:00 with capacity 2.

    Times stay as "HH:mm" strings here; they are parsed (strictly on save,
    leniently on resolve) by the services.
    """

    model_config = ConfigDict(frozen=True)

    start_time: str
    end_time: str
    capacity: int = Field(default=0, ge=0)
    team_id: Optional[str] = None
    engineer_id: Optional[str] = None


class DaySchedule(BaseModel):
    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    ranges: List[TimeRange] = Field(default_factory=list)


class WeekSchedule(BaseModel):
    model_config = ConfigDict(frozen=True)

    monday: DaySchedule = Field(default_factory=DaySchedule)
    tuesday: DaySchedule = Field(default_factory=DaySchedule)
    wednesday: DaySchedule = Field(default_factory=DaySchedule)
    thursday: DaySchedule = Field(default_factory=DaySchedule)
    friday: DaySchedule = Field(default_factory=DaySchedule)
    saturday: DaySchedule = Field(default_factory=DaySchedule)
    sunday: DaySchedule = Field(default_factory=DaySchedule)

    def day(self, weekday: str) -> DaySchedule:
        if weekday not in WEEKDAY_NAMES:
            raise ValueError(f"Unknown weekday {weekday!r}")
        return getattr(self, weekday)

    def for_date(self, target_date: date) -> DaySchedule:
        return self.day(WEEKDAY_NAMES[target_date.weekday()])

    def days(self) -> Dict[str, DaySchedule]:
        return {name: self.day(name) for name in WEEKDAY_NAMES}


class BlockedDate(BaseModel):
    model_config = ConfigDict(frozen=True)

    date: date
    reason: str = ""
    team_id: Optional[str] = None
    apply_to_all_teams: bool = False


class CapacityOverride(BaseModel):
    """Extra ranges for a single calendar date, added on top of the weekly schedule."""

    model_config = ConfigDict(frozen=True)

    date: date
    ranges: List[TimeRange] = Field(default_factory=list)
    team_id: Optional[str] = None


class SchedulingThreshold(BaseModel):
    model_config = ConfigDict(frozen=True)

    product_type_id: str
    minimum_days_notice: int = Field(default=2, ge=0)
    # 0 = use the default display cap
    max_displayed_slots: int = Field(default=0, ge=0)


class Booking(BaseModel):
    """An existing appointment occupying capacity."""

    model_config = ConfigDict(frozen=True)

    start_time: datetime
    end_time: datetime
    team_id: Optional[str] = None
    engineer_id: Optional[str] = None
    product_type_id: Optional[str] = None

    @field_validator("start_time", "end_time")
    def normalize_timezone(cls, v: datetime) -> datetime:
        return to_naive_utc(v)


class AvailabilityScope(BaseModel):
    model_config = ConfigDict(frozen=True)

    team_id: Optional[str] = None
    engineer_id: Optional[str] = None
    product_type_id: Optional[str] = None


class AvailabilityWindow(BaseModel):
    model_config = ConfigDict(frozen=True)

    start_date: date
    days: int = Field(default=5, ge=1)


class TimeSlot(BaseModel):
    """
    A resolved half-hour slot.

    `available` is the real remaining capacity; `selectable` is the
    presentation policy (acceleration mode may select slots with
    available == 0). The two are never folded into one number.
    """

    model_config = ConfigDict(frozen=True)

    start_time: datetime
    end_time: datetime
    capacity: int
    available: int
    selectable: bool = False


class ScheduleSnapshot(BaseModel):
    """Everything the resolver needs, loaded once per request."""

    model_config = ConfigDict(frozen=True)

    schedule: WeekSchedule = Field(default_factory=WeekSchedule)
    overrides: List[CapacityOverride] = Field(default_factory=list)
    blocked_dates: List[BlockedDate] = Field(default_factory=list)
    thresholds: List[SchedulingThreshold] = Field(default_factory=list)
    bookings: List[Booking] = Field(default_factory=list)
    # Problems found while loading, e.g. stored bitmaps out of step with their times
    warnings: List[str] = Field(default_factory=list)


class SlotFilter(BaseModel):
    """
    Suggestion filter on a slot's date ("YYYY-MM-DD") or start time ("HH:mm").

    "before" and "after" are inclusive of `value`.
    """

    model_config = ConfigDict(frozen=True)

    value: str
    position: FilterPosition = "after"

    def matches(self, candidate: str) -> bool:
        if self.position == "exact":
            return candidate == self.value
        if self.position == "before":
            return candidate <= self.value
        return candidate >= self.value
