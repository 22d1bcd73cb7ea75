"""
Data loader for shift generation.
SQLAlchemy-backed store and exception sources, plus the read-side queries
that turn filter objects into SQL.
"""

import logging
from contextlib import contextmanager
from datetime import date, datetime, timezone
from typing import Iterable, Iterator, Optional

from sqlalchemy import Select, and_, func, or_, select
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.db.models.locations import Locations
from app.db.models.location_closures import LocationClosures
from app.db.models.location_operating_schedules import LocationOperatingSchedules
from app.db.models.managers import Managers
from app.db.models.public_holidays import PublicHolidays
from app.db.models.shift_issues import ShiftIssues
from app.db.models.shift_templates import ShiftTemplates
from app.db.models.shifts import Shifts, ShiftSource, ShiftStatus, UNIQUE_TEMPLATE_DATE

from .filters import ShiftFilter, TemplateFilter
from .store import (
    ClosureCalendar,
    DuplicateShiftError,
    ExceptionSourceUnavailable,
    HolidayCalendar,
    IssueLog,
    ShiftStoreError,
    TemplateStore,
)
from .types import (
    WEEKDAY_NAMES,
    LocationClosure,
    PublicHoliday,
    ShiftInstance,
    ShiftIssue,
    ShiftTemplate,
)


logger = logging.getLogger(__name__)

WEEKDAY_FLAGS = (
    "applies_monday",
    "applies_tuesday",
    "applies_wednesday",
    "applies_thursday",
    "applies_friday",
    "applies_saturday",
    "applies_sunday",
)

OPEN_FLAGS = (
    "is_monday_open",
    "is_tuesday_open",
    "is_wednesday_open",
    "is_thursday_open",
    "is_friday_open",
    "is_saturday_open",
    "is_sunday_open",
)


# ==================== Conversion ====================

def parse_explicit_dates(values: Optional[list]) -> tuple[Optional[frozenset[date]], list[str]]:
    """
    Parse stored ISO date strings.

    Returns:
        (dates, errors) - unreadable entries are left out and described in errors
    """
    if values is None:
        return None, []

    dates = set()
    errors = []
    for value in values:
        try:
            dates.add(date.fromisoformat(value))
        except (TypeError, ValueError) as e:
            errors.append(f"explicit date {value!r} is not a valid ISO date ({e})")
    return frozenset(dates), errors


def to_shift_template(row: ShiftTemplates, location_name: Optional[str] = None) -> ShiftTemplate:
    weekdays = frozenset(i for i, flag in enumerate(WEEKDAY_FLAGS) if getattr(row, flag))
    explicit_dates, load_errors = parse_explicit_dates(row.explicit_dates)
    if load_errors:
        logger.warning(f"Template {row.id} has unreadable explicit dates: {load_errors}")

    return ShiftTemplate(
        id=row.id,
        manager_id=row.manager_id,
        location_id=row.location_id,
        name=row.template_name,
        code=row.template_code,
        start_time=row.start_time_local,
        end_time=row.end_time_local,
        effective_from=row.effective_from,
        effective_to=row.effective_to,
        weekdays=weekdays,
        explicit_dates=explicit_dates,
        location_name=location_name or "",
        contract_id=row.contract_id,
        min_guards=row.min_guards_required,
        max_guards=row.max_guards_allowed,
        is_active=row.is_active,
        is_deleted=row.is_deleted,
        load_errors=tuple(load_errors),
    )


def _to_utc(value: datetime) -> datetime:
    return value.astimezone(timezone.utc)


# ==================== Read-side queries ====================

def apply_template_filter(stmt: Select, f: TemplateFilter) -> Select:
    conditions = []
    if f.template_ids is not None:
        conditions.append(ShiftTemplates.id.in_(list(f.template_ids)))
    if f.manager_id is not None:
        conditions.append(ShiftTemplates.manager_id == f.manager_id)
    if f.contract_id is not None:
        conditions.append(ShiftTemplates.contract_id == f.contract_id)
    if f.location_id is not None:
        conditions.append(ShiftTemplates.location_id == f.location_id)
    if f.has_contract is True:
        conditions.append(ShiftTemplates.contract_id.is_not(None))
    elif f.has_contract is False:
        conditions.append(ShiftTemplates.contract_id.is_(None))
    if f.active_only:
        conditions.append(ShiftTemplates.is_active == True)
        conditions.append(ShiftTemplates.is_deleted == False)

    if conditions:
        stmt = stmt.where(and_(*conditions))
    return stmt


def load_templates(db: Session, f: TemplateFilter) -> list[ShiftTemplate]:
    """Load templates matching the filter, ordered by id."""
    stmt = (
        select(ShiftTemplates, Locations.name)
        .outerjoin(Locations, Locations.id == ShiftTemplates.location_id)
        .order_by(ShiftTemplates.id)
    )
    stmt = apply_template_filter(stmt, f)
    rows = db.execute(stmt).all()
    return [to_shift_template(template, location_name) for template, location_name in rows]


def apply_shift_filter(stmt: Select, f: ShiftFilter) -> Select:
    conditions = []
    if f.manager_id is not None:
        conditions.append(Shifts.manager_id == f.manager_id)
    if f.location_id is not None:
        conditions.append(Shifts.location_id == f.location_id)
    if f.shift_template_id is not None:
        conditions.append(Shifts.shift_template_id == f.shift_template_id)
    if f.contract_id is not None:
        conditions.append(Shifts.contract_id == f.contract_id)
    if f.status is not None:
        conditions.append(Shifts.status == f.status)
    if f.start_date is not None:
        conditions.append(Shifts.shift_date >= f.start_date)
    if f.end_date is not None:
        conditions.append(Shifts.shift_date <= f.end_date)

    if conditions:
        stmt = stmt.where(and_(*conditions))
    return stmt


def list_shifts(db: Session, f: ShiftFilter) -> list[Shifts]:
    stmt = apply_shift_filter(select(Shifts), f)
    stmt = stmt.order_by(Shifts.shift_date, Shifts.start_datetime_utc, Shifts.id)
    stmt = stmt.offset(f.skip).limit(f.limit)
    return list(db.execute(stmt).scalars().all())


def latest_shift_dates(db: Session, contract_ids: Iterable[int]) -> dict[int, date]:
    """Latest generated shift date per contract. Contracts with no shifts are absent."""
    ids = list(contract_ids)
    if not ids:
        return {}

    stmt = (
        select(Shifts.contract_id, func.max(Shifts.shift_date))
        .where(Shifts.contract_id.in_(ids))
        .group_by(Shifts.contract_id)
    )
    return {contract_id: last for contract_id, last in db.execute(stmt).all() if last is not None}


def find_manager_for_generation(db: Session, preferred_manager_id: Optional[int]) -> Optional[int]:
    """
    The preferred manager if they may create shifts, otherwise any active
    manager who can. None when nobody can.
    """
    allowed = and_(
        Managers.can_create_shifts == True,
        Managers.is_active == True,
        Managers.is_deleted == False,
    )
    if preferred_manager_id is not None:
        stmt = select(Managers.id).where(and_(Managers.id == preferred_manager_id, allowed))
        if db.execute(stmt).scalar_one_or_none() is not None:
            return preferred_manager_id

    stmt = select(Managers.id).where(allowed).order_by(Managers.id).limit(1)
    return db.execute(stmt).scalar_one_or_none()


# ==================== Store ====================

def is_duplicate_shift_error(error: IntegrityError) -> bool:
    message = str(error.orig)
    return (
        UNIQUE_TEMPLATE_DATE in message
        # sqlite doesn't report constraint names
        or "shifts.shift_template_id, shifts.shift_date" in message
    )


class SqlTemplateStore(TemplateStore):
    """Template store over a SQLAlchemy session."""

    def __init__(self, db: Session):
        self.db = db

    def get_active_templates(self, template_ids: Iterable[int]) -> list[ShiftTemplate]:
        ids = list(template_ids)
        if not ids:
            return []
        try:
            return load_templates(self.db, TemplateFilter(template_ids=ids, active_only=True))
        except SQLAlchemyError as e:
            raise ShiftStoreError(f"Failed to load templates {ids}: {e}") from e

    def shift_instance_exists(self, template_id: int, shift_date: date) -> bool:
        stmt = (
            select(Shifts.id)
            .where(and_(
                Shifts.shift_template_id == template_id,
                Shifts.shift_date == shift_date,
            ))
            .limit(1)
        )
        try:
            return self.db.execute(stmt).first() is not None
        except SQLAlchemyError as e:
            raise ShiftStoreError(
                f"Failed to check shift for template {template_id} on {shift_date}: {e}"
            ) from e

    def create_shift_instance(self, instance: ShiftInstance) -> int:
        row = Shifts(
            shift_template_id=instance.shift_template_id,
            location_id=instance.location_id,
            location_name=instance.location_name or None,
            manager_id=instance.manager_id,
            contract_id=instance.contract_id,
            shift_date=instance.shift_date,
            start_datetime_utc=_to_utc(instance.start_datetime),
            end_datetime_utc=_to_utc(instance.end_datetime),
            required_guards=instance.required_guards,
            max_guards=instance.max_guards,
            is_night_shift=instance.is_night_shift,
            is_weekend=instance.is_weekend,
            status=ShiftStatus.PENDING_ASSIGNMENT,
            source=ShiftSource.GENERATED,
            created_by_manager_id=instance.created_by_manager_id,
        )
        self.db.add(row)
        try:
            self.db.flush()
        except IntegrityError as e:
            if is_duplicate_shift_error(e):
                raise DuplicateShiftError(
                    f"Shift for template {instance.shift_template_id} on {instance.shift_date} already exists"
                ) from e
            raise ShiftStoreError(
                f"Failed to create shift for template {instance.shift_template_id} "
                f"on {instance.shift_date}: {e.orig}"
            ) from e
        except SQLAlchemyError as e:
            raise ShiftStoreError(
                f"Failed to create shift for template {instance.shift_template_id} "
                f"on {instance.shift_date}: {e}"
            ) from e

        instance.id = row.id
        return row.id

    @contextmanager
    def transaction(self) -> Iterator[None]:
        try:
            yield
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            if is_duplicate_shift_error(e):
                raise DuplicateShiftError(str(e.orig)) from e
            raise ShiftStoreError(f"Commit rejected: {e.orig}") from e
        except SQLAlchemyError as e:
            self.db.rollback()
            raise ShiftStoreError(f"Commit failed: {e}") from e
        except Exception:
            self.db.rollback()
            raise


# ==================== Exception sources ====================

class SqlHolidayCalendar(HolidayCalendar):

    def __init__(self, db: Session):
        self.db = db

    def find_holiday(self, location_id: int, day: date) -> Optional[PublicHoliday]:
        location_jurisdiction = (
            select(Locations.jurisdiction)
            .where(Locations.id == location_id)
            .scalar_subquery()
        )
        stmt = (
            select(PublicHolidays)
            .where(and_(
                PublicHolidays.holiday_date == day,
                PublicHolidays.is_deleted == False,
                or_(
                    PublicHolidays.jurisdiction.is_(None),
                    PublicHolidays.jurisdiction == location_jurisdiction,
                ),
            ))
            .order_by(PublicHolidays.id)
            .limit(1)
        )
        try:
            row = self.db.execute(stmt).scalars().first()
        except OperationalError as e:
            raise ExceptionSourceUnavailable(str(e)) from e

        if row is None:
            return None
        return PublicHoliday(holiday_date=row.holiday_date, name=row.holiday_name, jurisdiction=row.jurisdiction)


class SqlClosureCalendar(ClosureCalendar):
    """Explicit closure records first, then the weekly operating schedule."""

    def __init__(self, db: Session):
        self.db = db

    def find_closure(self, location_id: int, day: date) -> Optional[LocationClosure]:
        closure_stmt = (
            select(LocationClosures)
            .where(and_(
                LocationClosures.location_id == location_id,
                LocationClosures.start_date <= day,
                LocationClosures.end_date >= day,
                LocationClosures.is_deleted == False,
            ))
            .order_by(LocationClosures.start_date, LocationClosures.id)
            .limit(1)
        )
        schedule_stmt = (
            select(LocationOperatingSchedules)
            .where(and_(
                LocationOperatingSchedules.location_id == location_id,
                LocationOperatingSchedules.is_active == True,
            ))
            .order_by(LocationOperatingSchedules.id)
            .limit(1)
        )
        try:
            closure = self.db.execute(closure_stmt).scalars().first()
            if closure is not None:
                return LocationClosure(
                    location_id=closure.location_id,
                    start_date=closure.start_date,
                    end_date=closure.end_date,
                    day_type=closure.day_type,
                    reason=closure.reason,
                )

            schedule = self.db.execute(schedule_stmt).scalars().first()
        except OperationalError as e:
            raise ExceptionSourceUnavailable(str(e)) from e

        if schedule is None:
            return None

        # None means open
        if getattr(schedule, OPEN_FLAGS[day.weekday()]) is False:
            return LocationClosure(
                location_id=location_id,
                start_date=day,
                end_date=day,
                day_type="REGULAR_CLOSED_DAY",
                reason=f"Location normally closed on {WEEKDAY_NAMES[day.weekday()]}",
            )
        return None


class SqlIssueLog(IssueLog):

    def __init__(self, db: Session):
        self.db = db

    def find_issue(self, template_id: int, day: date) -> Optional[ShiftIssue]:
        stmt = (
            select(ShiftIssues)
            .where(and_(
                ShiftIssues.shift_template_id == template_id,
                ShiftIssues.start_date <= day,
                ShiftIssues.end_date >= day,
                ShiftIssues.is_deleted == False,
            ))
            .order_by(ShiftIssues.created_at.desc(), ShiftIssues.id.desc())
            .limit(1)
        )
        try:
            row = self.db.execute(stmt).scalars().first()
        except OperationalError as e:
            raise ExceptionSourceUnavailable(str(e)) from e

        if row is None:
            return None
        return ShiftIssue(
            shift_template_id=row.shift_template_id,
            issue_type=row.issue_type.value,
            start_date=row.start_date,
            end_date=row.end_date,
            reason=row.reason,
            guard_id=row.guard_id,
        )
