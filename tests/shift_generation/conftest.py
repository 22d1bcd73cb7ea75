import os

# must be set before anything under app/ reads settings
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from contextlib import contextmanager
from datetime import date, datetime, time
from typing import Iterable, Optional

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.clock import FixedClock
from app.db.models import Base, Managers, Locations, ShiftTemplates
from app.services.shift_generation.resolver import ExceptionResolver
from app.services.shift_generation.store import (
    ClosureCalendar,
    DuplicateShiftError,
    ExceptionSourceUnavailable,
    HolidayCalendar,
    IssueLog,
    ShiftStoreError,
    TemplateStore,
)
from app.services.shift_generation.types import (
    LocationClosure,
    PublicHoliday,
    ShiftInstance,
    ShiftIssue,
    ShiftTemplate,
)


MANAGER_ID = 1
OTHER_MANAGER_ID = 2
LOCATION_ID = 10
LOCATION_NAME = "Hanoi Office Tower"


def get_test_monday() -> date:
    # returns a fixed Monday for deterministic tests
    return date(2025, 1, 20)


def make_template(**overrides) -> ShiftTemplate:
    values = dict(
        id=1,
        manager_id=MANAGER_ID,
        location_id=LOCATION_ID,
        location_name=LOCATION_NAME,
        name="Day shift",
        code="DAY",
        start_time=time(8, 0),
        end_time=time(16, 0),
        effective_from=date(2025, 1, 1),
        effective_to=None,
        weekdays=frozenset(range(7)),
    )
    values.update(overrides)
    return ShiftTemplate(**values)


# ==================== In-memory collaborators ====================

class InMemoryTemplateStore(TemplateStore):
    """
    Dict-backed store with real unit-of-work semantics: rows written inside
    transaction() only become visible when the block exits cleanly.

    fail_on: (template_id, date) pairs whose create raises ShiftStoreError
    race_on: (template_id, date) pairs a "concurrent run" inserts right
        before our create, so the first create raises DuplicateShiftError
    """

    def __init__(self, templates: Iterable[ShiftTemplate] = ()):
        self.templates = {t.id: t for t in templates}
        self.committed: dict[tuple[int, date], ShiftInstance] = {}
        self.pending: Optional[dict[tuple[int, date], ShiftInstance]] = None
        self.fail_on: set[tuple[int, date]] = set()
        self.race_on: set[tuple[int, date]] = set()
        self.fail_loading = False
        self.next_id = 1
        self.commits = 0
        self.rollbacks = 0
        self.calls: list[str] = []

    def get_active_templates(self, template_ids):
        self.calls.append("get_active_templates")
        if self.fail_loading:
            raise ShiftStoreError("connection refused")
        return [self.templates[i] for i in template_ids if i in self.templates]

    def shift_instance_exists(self, template_id, shift_date):
        self.calls.append("shift_instance_exists")
        key = (template_id, shift_date)
        return key in self.committed or (self.pending is not None and key in self.pending)

    def create_shift_instance(self, instance):
        self.calls.append("create_shift_instance")
        key = (instance.shift_template_id, instance.shift_date)
        if key in self.fail_on:
            raise ShiftStoreError(f"disk full at {instance.shift_date}")
        if key in self.race_on:
            self.race_on.discard(key)
            self.committed[key] = ShiftInstance(**{**instance.__dict__, "id": self._take_id()})
            raise DuplicateShiftError(f"Shift for template {key[0]} on {key[1]} already exists")
        if key in self.committed or key in self.pending:
            raise DuplicateShiftError(f"Shift for template {key[0]} on {key[1]} already exists")

        instance.id = self._take_id()
        self.pending[key] = instance
        return instance.id

    @contextmanager
    def transaction(self):
        self.pending = {}
        try:
            yield
        except Exception:
            self.rollbacks += 1
            raise
        else:
            self.committed.update(self.pending)
            self.commits += 1
        finally:
            self.pending = None

    def _take_id(self) -> int:
        shift_id = self.next_id
        self.next_id += 1
        return shift_id

    @property
    def shifts(self) -> list[ShiftInstance]:
        return sorted(self.committed.values(), key=lambda s: (s.shift_template_id, s.shift_date))


class FakeHolidayCalendar(HolidayCalendar):

    def __init__(self, holidays: Iterable[PublicHoliday] = (), unavailable: bool = False):
        self.holidays = {h.holiday_date: h for h in holidays}
        self.unavailable = unavailable

    def find_holiday(self, location_id, day):
        if self.unavailable:
            raise ExceptionSourceUnavailable("holiday service timed out")
        return self.holidays.get(day)


class FakeClosureCalendar(ClosureCalendar):

    def __init__(self, closures: Iterable[LocationClosure] = (), unavailable: bool = False):
        self.closures = list(closures)
        self.unavailable = unavailable

    def find_closure(self, location_id, day):
        if self.unavailable:
            raise ExceptionSourceUnavailable("closure table locked")
        for closure in self.closures:
            if closure.location_id == location_id and closure.start_date <= day <= closure.end_date:
                return closure
        return None


class FakeIssueLog(IssueLog):

    def __init__(self, issues: Iterable[ShiftIssue] = (), unavailable: bool = False):
        self.issues = list(issues)
        self.unavailable = unavailable

    def find_issue(self, template_id, day):
        if self.unavailable:
            raise ExceptionSourceUnavailable("issue log offline")
        for issue in self.issues:
            if issue.shift_template_id == template_id and issue.start_date <= day <= issue.end_date:
                return issue
        return None


def make_resolver(holidays=(), closures=(), issues=()) -> ExceptionResolver:
    return ExceptionResolver(
        holidays=FakeHolidayCalendar(holidays),
        closures=FakeClosureCalendar(closures),
        issues=FakeIssueLog(issues),
    )


@pytest.fixture
def clock() -> FixedClock:
    # Monday 2025-01-20 09:00 in Vietnam
    return FixedClock(datetime(2025, 1, 20, 9, 0), "Asia/Ho_Chi_Minh")


@pytest.fixture
def utc_clock() -> FixedClock:
    return FixedClock(datetime(2025, 1, 20, 9, 0), "UTC")


# ==================== Database ====================

@pytest.fixture
def engine():
    """Fresh in-memory SQLite database per test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def seeded_db(db):
    """Two managers and one location."""
    db.add_all([
        Managers(id=MANAGER_ID, email="an@guardshift.local", full_name="Nguyen Van An"),
        Managers(id=OTHER_MANAGER_ID, email="binh@guardshift.local", full_name="Tran Thi Binh"),
        Locations(id=LOCATION_ID, name=LOCATION_NAME, jurisdiction="HN"),
    ])
    db.commit()
    return db


def add_template_row(db, **overrides) -> ShiftTemplates:
    values = dict(
        manager_id=MANAGER_ID,
        location_id=LOCATION_ID,
        template_code="DAY",
        template_name="Day shift",
        start_time_local=time(8, 0),
        end_time_local=time(16, 0),
        applies_monday=True,
        applies_tuesday=True,
        applies_wednesday=True,
        applies_thursday=True,
        applies_friday=True,
        effective_from=date(2025, 1, 1),
    )
    values.update(overrides)
    row = ShiftTemplates(**values)
    db.add(row)
    db.commit()
    return row
