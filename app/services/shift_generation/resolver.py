"""
Exception resolution.
Decides whether an occurrence may be materialized or must be skipped.
"""

import logging
from datetime import date
from typing import Callable, Optional, TypeVar

from .store import ClosureCalendar, ExceptionSourceUnavailable, HolidayCalendar, IssueLog
from .types import LocationClosure, PublicHoliday, ShiftIssue, SkipCode, Verdict


logger = logging.getLogger(__name__)

T = TypeVar("T")


def holiday_message(holiday: PublicHoliday) -> str:
    return f"Public holiday: {holiday.name}"


def closure_message(closure: LocationClosure) -> str:
    if closure.reason:
        return f"Location closed: {closure.reason}"
    return f"Location closed ({closure.day_type})"


def issue_message(issue: ShiftIssue) -> str:
    label = issue.issue_type.replace("_", " ").lower()
    if issue.reason:
        return f"Cancelled for {label}: {issue.reason}"
    return f"Cancelled for {label}"


class ExceptionResolver:
    """
    Checks, in order:
    1. public holiday for the location
    2. location closure
    3. shift issue (leave/cancellation) logged against the template

    First match wins. Nothing is cached between calls.
    """

    def __init__(
        self,
        holidays: HolidayCalendar,
        closures: ClosureCalendar,
        issues: IssueLog,
    ):
        self.holidays = holidays
        self.closures = closures
        self.issues = issues

    def resolve(self, location_id: int, template_id: int, day: date) -> Verdict:
        warnings: list[str] = []

        holiday = self._lookup(
            "holiday calendar", day, warnings,
            lambda: self.holidays.find_holiday(location_id, day),
        )
        if holiday:
            return Verdict.skip(SkipCode.HOLIDAY.value, holiday_message(holiday), tuple(warnings))

        closure = self._lookup(
            "closure calendar", day, warnings,
            lambda: self.closures.find_closure(location_id, day),
        )
        if closure:
            return Verdict.skip(SkipCode.LOCATION_CLOSED.value, closure_message(closure), tuple(warnings))

        issue = self._lookup(
            "issue log", day, warnings,
            lambda: self.issues.find_issue(template_id, day),
        )
        if issue:
            return Verdict.skip(issue.issue_type, issue_message(issue), tuple(warnings))

        return Verdict.allow(tuple(warnings))

    def _lookup(
        self,
        source_name: str,
        day: date,
        warnings: list[str],
        fetch: Callable[[], Optional[T]],
    ) -> Optional[T]:
        """Run one source lookup; an unavailable source counts as no match."""
        try:
            return fetch()
        except ExceptionSourceUnavailable as e:
            logger.warning(f"{source_name} unavailable for {day}: {e}")
            warnings.append(f"{source_name} unavailable for {day}; treated as no exception")
            return None
