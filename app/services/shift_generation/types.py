"""
Internal data types for shift generation.
Kept separate from the SQLAlchemy models; the engine only sees these.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time
from enum import Enum
from typing import Optional


WEEKDAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


class SkipCode(str, Enum):
    HOLIDAY = "HOLIDAY"
    LOCATION_CLOSED = "LOCATION_CLOSED"
    ALREADY_EXISTS = "ALREADY_EXISTS"


@dataclass(frozen=True)
class ShiftTemplate:
    """A recurring shift rule."""
    id: int
    manager_id: int
    location_id: int
    name: str
    start_time: time
    end_time: time
    effective_from: date
    effective_to: Optional[date] = None
    weekdays: frozenset[int] = frozenset()  # 0=Monday .. 6=Sunday
    explicit_dates: Optional[frozenset[date]] = None  # when set, used instead of weekdays
    location_name: str = ""
    code: str = ""
    contract_id: Optional[int] = None
    min_guards: int = 1
    max_guards: Optional[int] = None
    is_active: bool = True
    is_deleted: bool = False
    load_errors: tuple[str, ...] = ()  # stored fields that could not be read

    @property
    def crosses_midnight(self) -> bool:
        return self.end_time <= self.start_time

    @property
    def duration_minutes(self) -> int:
        start = self.start_time.hour * 60 + self.start_time.minute
        end = self.end_time.hour * 60 + self.end_time.minute
        if self.crosses_midnight:
            end += 24 * 60
        return end - start

    @property
    def is_usable(self) -> bool:
        return self.is_active and not self.is_deleted

    def validation_errors(self) -> list[str]:
        errors = list(self.load_errors)
        if self.effective_to is not None and self.effective_from > self.effective_to:
            errors.append(
                f"effective_from {self.effective_from} is after effective_to {self.effective_to}"
            )
        if self.start_time == self.end_time:
            errors.append(f"start and end time are both {self.start_time}")
        if any(d < 0 or d > 6 for d in self.weekdays):
            errors.append(f"weekdays out of range: {sorted(self.weekdays)}")
        return errors


@dataclass(frozen=True)
class GenerationRequest:
    manager_id: int
    template_ids: list[int]
    generate_from: Optional[date] = None
    generate_days: int = 30

    @property
    def distinct_template_ids(self) -> list[int]:
        """Template ids in request order with repeats dropped."""
        return list(dict.fromkeys(self.template_ids))


@dataclass(frozen=True)
class ShiftOccurrence:
    """A candidate (template, date) pair. Never persisted directly."""
    template: ShiftTemplate
    shift_date: date


@dataclass
class ShiftInstance:
    """A concrete shift to persist."""
    shift_template_id: int
    location_id: int
    manager_id: int
    shift_date: date
    start_datetime: datetime
    end_datetime: datetime
    required_guards: int = 1
    max_guards: Optional[int] = None
    location_name: str = ""
    contract_id: Optional[int] = None
    is_night_shift: bool = False
    is_weekend: bool = False
    created_by_manager_id: Optional[int] = None
    id: Optional[int] = None

    @property
    def duration_hours(self) -> float:
        delta = self.end_datetime - self.start_datetime
        return delta.total_seconds() / 3600


@dataclass(frozen=True)
class PublicHoliday:
    holiday_date: date
    name: str
    jurisdiction: Optional[str] = None


@dataclass(frozen=True)
class LocationClosure:
    location_id: int
    start_date: date
    end_date: date
    day_type: str = "CLOSED"
    reason: Optional[str] = None


@dataclass(frozen=True)
class ShiftIssue:
    shift_template_id: int
    issue_type: str
    start_date: date
    end_date: date
    reason: Optional[str] = None
    guard_id: Optional[int] = None


@dataclass(frozen=True)
class Verdict:
    """Outcome of exception resolution for one occurrence."""
    proceed: bool
    code: Optional[str] = None
    message: Optional[str] = None
    warnings: tuple[str, ...] = ()

    @classmethod
    def allow(cls, warnings: tuple[str, ...] = ()) -> "Verdict":
        return cls(proceed=True, warnings=warnings)

    @classmethod
    def skip(cls, code: str, message: str, warnings: tuple[str, ...] = ()) -> "Verdict":
        return cls(proceed=False, code=code, message=message, warnings=warnings)


@dataclass(frozen=True)
class SkipReason:
    shift_date: date
    template_id: int
    location_id: Optional[int]
    location_name: str
    reason: str
    message: str
    schedule_name: str


@dataclass
class GenerationResult:
    """Output of a generation run."""
    generated_from: date
    generated_to: date
    shifts_created_count: int = 0
    shifts_skipped_count: int = 0
    skip_reasons: list[SkipReason] = field(default_factory=list)
    created_shift_ids: list[int] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    templates_processed: int = 0
    duration_ms: int = 0

    @property
    def success(self) -> bool:
        return not self.errors


@dataclass
class ShiftsGeneratedEvent:
    """Payload published after a run."""
    manager_id: int
    generated_by_job: str
    generated_at: datetime
    generated_from: date
    generated_to: date
    status: str  # success | partial | failed
    shifts_created_count: int
    shifts_skipped_count: int
    skip_reasons: list[str] = field(default_factory=list)
    created_shift_ids: list[int] = field(default_factory=list)
    error_message: Optional[str] = None
    contract_id: Optional[int] = None
    schedules_processed: int = 0
    generation_duration_ms: int = 0
