"""
Collaborator interfaces used by the generation engine.

The engine only talks to these abstractions. SQL-backed implementations
live in data_loader.py.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from datetime import date
from typing import Iterable, Optional

from .types import LocationClosure, PublicHoliday, ShiftInstance, ShiftIssue, ShiftTemplate


class ShiftStoreError(Exception):
    """Storage is unreachable or rejected a write."""


class DuplicateShiftError(ShiftStoreError):
    """A shift already exists for the same (template, date) pair."""


class ExceptionSourceUnavailable(Exception):
    """A holiday/closure/issue lookup could not be answered."""


class TemplateStore(ABC):

    @abstractmethod
    def get_active_templates(self, template_ids: Iterable[int]) -> list[ShiftTemplate]:
        """Templates for the given ids. Unknown ids are simply absent."""
        ...

    @abstractmethod
    def shift_instance_exists(self, template_id: int, shift_date: date) -> bool:
        ...

    @abstractmethod
    def create_shift_instance(self, instance: ShiftInstance) -> int:
        """
        Persist a shift inside the current transaction and return its id.
        Raises DuplicateShiftError on a (template, date) uniqueness violation.
        """
        ...

    @abstractmethod
    def transaction(self) -> AbstractContextManager:
        """
        Unit of work. Commits on clean exit, rolls back on any exception.
        Uniqueness violations surface as DuplicateShiftError after rollback.
        """
        ...


class HolidayCalendar(ABC):

    @abstractmethod
    def find_holiday(self, location_id: int, day: date) -> Optional[PublicHoliday]:
        ...


class ClosureCalendar(ABC):

    @abstractmethod
    def find_closure(self, location_id: int, day: date) -> Optional[LocationClosure]:
        ...


class IssueLog(ABC):

    @abstractmethod
    def find_issue(self, template_id: int, day: date) -> Optional[ShiftIssue]:
        ...
