"""
Shift generation service package.

Usage:
    from datetime import date
    from app.services.shift_generation import GenerationRequest, generate_shifts

    # Database-backed run
    result = generate_shifts(db, GenerationRequest(
        manager_id=1, template_ids=[10, 11], generate_from=date(2025, 1, 1), generate_days=30,
    ))

    # Or wire your own collaborators (tests, other stores)
    from app.services.shift_generation import ShiftGenerator, ExceptionResolver

    generator = ShiftGenerator(store, ExceptionResolver(holidays, closures, issues), clock)
    result = generator.generate(request)
"""

from .types import (
    ShiftTemplate,
    GenerationRequest,
    ShiftOccurrence,
    ShiftInstance,
    PublicHoliday,
    LocationClosure,
    ShiftIssue,
    Verdict,
    SkipCode,
    SkipReason,
    GenerationResult,
    ShiftsGeneratedEvent,
)
from .store import (
    TemplateStore,
    HolidayCalendar,
    ClosureCalendar,
    IssueLog,
    ShiftStoreError,
    DuplicateShiftError,
    ExceptionSourceUnavailable,
)
from .expander import expand_occurrences, expand_template, occurrence_window
from .resolver import ExceptionResolver
from .generator import (
    ShiftGenerator,
    ShiftGenerationError,
    GenerationCancelled,
    generate_shifts,
)
from .diagnostics import build_generation_result, build_generated_event, summarize_result
from .planner import GenerationPlan, find_generation_plans, run_auto_generation
from .notifications import EventPublisher, get_event_publisher

__all__ = [
    # Types
    "ShiftTemplate",
    "GenerationRequest",
    "ShiftOccurrence",
    "ShiftInstance",
    "PublicHoliday",
    "LocationClosure",
    "ShiftIssue",
    "Verdict",
    "SkipCode",
    "SkipReason",
    "GenerationResult",
    "ShiftsGeneratedEvent",
    # Collaborators
    "TemplateStore",
    "HolidayCalendar",
    "ClosureCalendar",
    "IssueLog",
    # Errors
    "ShiftStoreError",
    "DuplicateShiftError",
    "ExceptionSourceUnavailable",
    "ShiftGenerationError",
    "GenerationCancelled",
    # Main entry points
    "generate_shifts",
    "run_auto_generation",
    # Lower-level pieces
    "ShiftGenerator",
    "ExceptionResolver",
    "expand_occurrences",
    "expand_template",
    "occurrence_window",
    "build_generation_result",
    "build_generated_event",
    "summarize_result",
    "GenerationPlan",
    "find_generation_plans",
    "EventPublisher",
    "get_event_publisher",
]
