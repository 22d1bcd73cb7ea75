"""
Occurrence expansion.
Turns a template's recurrence pattern into the calendar dates it fires on.
"""

from datetime import date, timedelta
from typing import Iterator, Optional

from .types import ShiftOccurrence, ShiftTemplate


def occurrence_window(
    template: ShiftTemplate,
    range_start: date,
    range_end: date,
) -> Optional[tuple[date, date]]:
    """
    Clip [range_start, range_end) to the template's validity window.

    Returns:
        (start, end_exclusive) or None when the two don't overlap
    """
    start = max(range_start, template.effective_from)
    end = range_end
    if template.effective_to is not None:
        end = min(end, template.effective_to + timedelta(days=1))

    if start >= end:
        return None
    return start, end


def fires_on(template: ShiftTemplate, day: date) -> bool:
    """Whether the template's pattern includes this date (ignores validity)."""
    if template.explicit_dates is not None:
        return day in template.explicit_dates
    return day.weekday() in template.weekdays


def expand_occurrences(
    template: ShiftTemplate,
    range_start: date,
    range_end: date,
) -> Iterator[date]:
    """
    Yield the dates in [range_start, range_end) on which the template fires,
    in ascending order.

    Each call returns a fresh generator, so the sequence can be walked again
    by calling this again with the same arguments.
    """
    window = occurrence_window(template, range_start, range_end)
    if window is None:
        return

    start, end = window
    if template.explicit_dates is not None:
        # only the explicit dates inside the window matter
        for day in sorted(template.explicit_dates):
            if start <= day < end:
                yield day
        return

    if not template.weekdays:
        return

    day = start
    while day < end:
        if day.weekday() in template.weekdays:
            yield day
        day += timedelta(days=1)


def expand_template(
    template: ShiftTemplate,
    range_start: date,
    range_end: date,
) -> list[ShiftOccurrence]:
    return [
        ShiftOccurrence(template=template, shift_date=day)
        for day in expand_occurrences(template, range_start, range_end)
    ]
