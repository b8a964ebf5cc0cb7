import math
from datetime import timedelta
from typing import List, Optional, Union, Iterable


class TaskError(Exception):
    """Exception raised for errors in the Task class."""

    pass


class InvalidDurationError(TaskError):
    """Raised when a task duration is missing, non-numeric or negative."""

    pass


def _id_text(value) -> str:
    # Whole-number floats come from numeric pandas columns with blank cells
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def to_id(value) -> str:
    """Convert a raw identifier (number or string) to a trimmed string id."""
    if value is None:
        raise TaskError("Task ID cannot be None")
    return _id_text(value)


def parse_predecessor_ids(spec: Optional[Union[str, Iterable]]) -> List[str]:
    """
    Parse a predecessor specification into an ordered list of unique ids.

    Accepts a comma-delimited string ("A, B,,C") or an iterable of raw ids.
    Entries are trimmed and empty entries are dropped.
    """
    if spec is None:
        return []
    if isinstance(spec, float) and math.isnan(spec):
        # pandas gives NaN for an empty cell
        return []

    if isinstance(spec, str):
        raw_ids = spec.split(",")
    elif isinstance(spec, (int, float)):
        raw_ids = [spec]
    else:
        raw_ids = list(spec)

    ids = []
    for raw in raw_ids:
        if raw is None:
            continue
        if isinstance(raw, float) and math.isnan(raw):
            continue
        task_id = _id_text(raw)
        if task_id and task_id not in ids:
            ids.append(task_id)
    return ids


def to_duration(value) -> float:
    """
    Validate a raw duration value.

    Raises:
        InvalidDurationError: If the value is missing, non-numeric, not finite
            or negative
    """
    if value is None or isinstance(value, bool):
        raise InvalidDurationError(f"Duration must be a number, got {value!r}")

    try:
        duration = float(value)
    except (TypeError, ValueError):
        raise InvalidDurationError(f"Duration must be a number, got {value!r}")

    if not math.isfinite(duration):
        raise InvalidDurationError(f"Duration must be finite, got {value!r}")
    if duration < 0:
        raise InvalidDurationError(f"Duration cannot be negative, got {value!r}")
    return duration


class Task:
    """
    Represents a task in a Critical Path Method (CPM) schedule.

    A task is created once from a raw input record with all computed fields
    zeroed. The scheduling passes fill in the timing fields in place.
    """

    def __init__(
        self,
        id,
        name: str,
        duration,
        predecessors: Optional[Union[str, Iterable]] = None,
    ):
        """
        Initialize a new Task.

        Args:
            id: Unique identifier for the task, stringified and trimmed
            name: Display name of the task
            duration: Non-negative duration in days
            predecessors: Comma-delimited string or iterable of predecessor ids

        Raises:
            TaskError: If the id is missing
            InvalidDurationError: If the duration is not a non-negative number
        """
        self.id = to_id(id)
        if not self.id:
            raise TaskError("Task ID cannot be empty")

        self.name = "" if name is None else str(name)
        self.duration = to_duration(duration)

        self.predecessor_ids = parse_predecessor_ids(predecessors)
        self.successor_ids = []

        # Schedule attributes
        self.early_start = 0.0
        self.early_finish = 0.0
        self.late_start = 0.0
        self.late_finish = 0.0
        self.slack = 0.0
        self.is_critical = False

        # Calendar attributes
        self.start_date = None
        self.end_date = None

    def reset_schedule(self):
        """Zero all computed fields, keeping the input fields."""
        self.early_start = 0.0
        self.early_finish = 0.0
        self.late_start = 0.0
        self.late_finish = 0.0
        self.slack = 0.0
        self.is_critical = False
        self.start_date = None
        self.end_date = None

    def duration_delta(self) -> timedelta:
        """Duration as a calendar offset (one unit is one day)."""
        return timedelta(days=self.duration)

    def to_dict(self) -> dict:
        """Return the task's input and computed fields as a dictionary."""
        return {
            "id": self.id,
            "name": self.name,
            "duration": self.duration,
            "predecessors": list(self.predecessor_ids),
            "successors": list(self.successor_ids),
            "early_start": self.early_start,
            "early_finish": self.early_finish,
            "late_start": self.late_start,
            "late_finish": self.late_finish,
            "slack": self.slack,
            "is_critical": self.is_critical,
            "start_date": self.start_date,
            "end_date": self.end_date,
        }

    def __repr__(self):
        return (
            f"Task(id={self.id!r}, name={self.name!r}, duration={self.duration}, "
            f"predecessors={self.predecessor_ids!r})"
        )
