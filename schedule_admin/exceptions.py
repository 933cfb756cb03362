"""
Capacity engine exception hierarchy.

Every error carries a machine-readable error code and an HTTP status so the
API layer can serialize it without knowing the concrete type.

Strict errors (InvalidTimeFormat, InvalidTimeRange, SlotIndexOutOfRange) are
raised immediately when an administrator submits new schedule data.
Lenient errors (MalformedScheduleEntry, MissingThreshold) are created by the
resolver while reading stored data and recorded as warnings instead of being
raised.

All of them subclass ValueError so callers that only care about "bad input"
can keep catching ValueError.
"""
from typing import Any, Dict, Optional


class CapacityEngineError(ValueError):
    """
    Base exception for the capacity and availability engine.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code
        status_code: HTTP status code to return
        details: Additional context for debugging
    """

    error_code: str = "CAPACITY_ENGINE_ERROR"
    status_code: int = 400

    def __init__(
        self,
        message: str = "Capacity engine error",
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API response."""
        result = {
            "error": self.error_code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


class InvalidTimeFormat(CapacityEngineError):
    """Raised when a time string is not a well-formed, zero-padded HH:mm."""

    error_code = "INVALID_TIME_FORMAT"

    def __init__(self, value: Any):
        super().__init__(
            f"Invalid time format {value!r}, expected HH:mm",
            details={"value": str(value)},
        )


class InvalidTimeRange(CapacityEngineError):
    """Raised when start/end do not form a valid same-day or midnight-crossing range."""

    error_code = "INVALID_TIME_RANGE"

    def __init__(self, start_time: str, end_time: str):
        super().__init__(
            f"Invalid time range {start_time}-{end_time}: end must be after start, "
            "or the range must start at/after 23:00 and end at/before 00:30",
            details={"start_time": start_time, "end_time": end_time},
        )


class SlotIndexOutOfRange(CapacityEngineError):
    """Raised when a computed half-hour slot index falls outside 0-47."""

    error_code = "SLOT_INDEX_OUT_OF_RANGE"

    def __init__(self, index: int):
        super().__init__(
            f"Slot index {index} outside 0-47",
            details={"index": index},
        )


class MalformedScheduleEntry(CapacityEngineError):
    """A stored range or override could not be parsed during resolution."""

    error_code = "MALFORMED_SCHEDULE_ENTRY"

    def __init__(self, source: str, entry: Any, reason: str):
        super().__init__(
            f"Skipped malformed {source} entry {entry!r}: {reason}",
            details={"source": source, "entry": str(entry), "reason": reason},
        )


class MissingThreshold(CapacityEngineError):
    """No minimum-notice threshold is configured for a product type."""

    error_code = "MISSING_THRESHOLD"

    def __init__(self, product_type_id: Optional[str], fallback_days: int):
        super().__init__(
            f"No scheduling threshold for product type {product_type_id!r}, "
            f"using default of {fallback_days} days notice",
            details={
                "product_type_id": product_type_id,
                "fallback_days": fallback_days,
            },
        )
