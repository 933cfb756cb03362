from schedule_admin.models.base import Base  # noqa: F401

from schedule_admin.models.standard_slot import ScheduleDay, StandardSlot  # noqa: F401
from schedule_admin.models.blocked_date import BlockedDateRecord  # noqa: F401
from schedule_admin.models.capacity_override import CapacityOverrideRecord  # noqa: F401
from schedule_admin.models.scheduling_threshold import SchedulingThresholdRecord  # noqa: F401
from schedule_admin.models.booking import BookingRecord  # noqa: F401
