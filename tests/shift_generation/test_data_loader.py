"""
Tests for the SQL-backed store, exception sources and read-side queries,
against an in-memory SQLite database.
"""
import pytest
from datetime import date, datetime, time, timedelta

from sqlalchemy import select

from app.db.models import (
    Locations,
    LocationClosures,
    LocationOperatingSchedules,
    Managers,
    PublicHolidays,
    ShiftIssues,
    ShiftIssueType,
    Shifts,
    ShiftSource,
    ShiftStatus,
)
from app.services.shift_generation.data_loader import (
    SqlClosureCalendar,
    SqlHolidayCalendar,
    SqlIssueLog,
    SqlTemplateStore,
    find_manager_for_generation,
    latest_shift_dates,
    list_shifts,
    load_templates,
)
from app.services.shift_generation.filters import ShiftFilter, TemplateFilter
from app.services.shift_generation.generator import generate_shifts
from app.services.shift_generation.store import DuplicateShiftError
from app.services.shift_generation.types import GenerationRequest, ShiftInstance, SkipCode

from conftest import (
    LOCATION_ID,
    LOCATION_NAME,
    MANAGER_ID,
    OTHER_MANAGER_ID,
    add_template_row,
    get_test_monday,
)


def make_instance(template_id: int, day: date) -> ShiftInstance:
    return ShiftInstance(
        shift_template_id=template_id,
        location_id=LOCATION_ID,
        location_name=LOCATION_NAME,
        manager_id=MANAGER_ID,
        shift_date=day,
        start_datetime=datetime.combine(day, time(8, 0)).astimezone(),
        end_datetime=datetime.combine(day, time(16, 0)).astimezone(),
    )


# ==================== Templates ====================

class TestLoadTemplates:

    def test_converts_rows(self, seeded_db):
        row = add_template_row(seeded_db, applies_saturday=True, max_guards_allowed=3, contract_id=77)
        [template] = load_templates(seeded_db, TemplateFilter(template_ids=[row.id]))

        assert template.id == row.id
        assert template.weekdays == frozenset({0, 1, 2, 3, 4, 5})
        assert template.explicit_dates is None
        assert template.location_name == LOCATION_NAME
        assert template.name == "Day shift"
        assert template.max_guards == 3
        assert template.contract_id == 77

    def test_explicit_dates_parsed(self, seeded_db):
        row = add_template_row(seeded_db, explicit_dates=["2025-01-25", "2025-01-22"])
        [template] = load_templates(seeded_db, TemplateFilter(template_ids=[row.id]))
        assert template.explicit_dates == frozenset({date(2025, 1, 22), date(2025, 1, 25)})

    def test_unreadable_explicit_dates_kept_as_load_errors(self, seeded_db):
        row = add_template_row(seeded_db, explicit_dates=["2025-01-22", "2025-02-30", 17])
        [template] = load_templates(seeded_db, TemplateFilter(template_ids=[row.id]))

        assert template.explicit_dates == frozenset({date(2025, 1, 22)})
        assert len(template.load_errors) == 2
        assert template.validation_errors() == list(template.load_errors)

    def test_active_only_filter(self, seeded_db):
        active = add_template_row(seeded_db)
        add_template_row(seeded_db, is_active=False)
        add_template_row(seeded_db, is_deleted=True)

        assert [t.id for t in load_templates(seeded_db, TemplateFilter())] == [active.id]
        assert len(load_templates(seeded_db, TemplateFilter(active_only=False))) == 3

    def test_contract_filter(self, seeded_db):
        add_template_row(seeded_db, contract_id=1)
        add_template_row(seeded_db, contract_id=2)
        add_template_row(seeded_db)

        assert len(load_templates(seeded_db, TemplateFilter(has_contract=True))) == 2
        assert len(load_templates(seeded_db, TemplateFilter(has_contract=False))) == 1
        assert len(load_templates(seeded_db, TemplateFilter(contract_id=2))) == 1


# ==================== Store ====================

class TestSqlTemplateStore:

    def test_create_and_exists(self, seeded_db):
        row = add_template_row(seeded_db)
        store = SqlTemplateStore(seeded_db)
        monday = get_test_monday()

        assert store.shift_instance_exists(row.id, monday) is False
        with store.transaction():
            shift_id = store.create_shift_instance(make_instance(row.id, monday))

        assert shift_id is not None
        assert store.shift_instance_exists(row.id, monday) is True
        saved = seeded_db.get(Shifts, shift_id)
        assert saved.status == ShiftStatus.PENDING_ASSIGNMENT
        assert saved.source == ShiftSource.GENERATED

    def test_unknown_ids_absent(self, seeded_db):
        row = add_template_row(seeded_db)
        store = SqlTemplateStore(seeded_db)
        assert [t.id for t in store.get_active_templates([row.id, 4242])] == [row.id]
        assert store.get_active_templates([]) == []

    def test_duplicate_raises_and_rolls_back(self, seeded_db):
        row = add_template_row(seeded_db)
        store = SqlTemplateStore(seeded_db)
        monday = get_test_monday()

        with store.transaction():
            store.create_shift_instance(make_instance(row.id, monday))

        with pytest.raises(DuplicateShiftError):
            with store.transaction():
                store.create_shift_instance(make_instance(row.id, monday + timedelta(days=1)))
                store.create_shift_instance(make_instance(row.id, monday))

        # the Tuesday row went with the rollback
        assert store.shift_instance_exists(row.id, monday + timedelta(days=1)) is False
        assert len(seeded_db.execute(select(Shifts)).scalars().all()) == 1

    def test_error_inside_transaction_rolls_back(self, seeded_db):
        row = add_template_row(seeded_db)
        store = SqlTemplateStore(seeded_db)

        with pytest.raises(RuntimeError):
            with store.transaction():
                store.create_shift_instance(make_instance(row.id, get_test_monday()))
                raise RuntimeError("boom")

        assert seeded_db.execute(select(Shifts)).first() is None


# ==================== Exception sources ====================

class TestSqlHolidayCalendar:

    def test_nationwide_holiday(self, seeded_db):
        monday = get_test_monday()
        seeded_db.add(PublicHolidays(holiday_date=monday, holiday_name="Tet"))
        seeded_db.commit()

        holiday = SqlHolidayCalendar(seeded_db).find_holiday(LOCATION_ID, monday)
        assert holiday is not None
        assert holiday.name == "Tet"

    def test_jurisdiction_must_match(self, seeded_db):
        monday = get_test_monday()
        seeded_db.add_all([
            PublicHolidays(holiday_date=monday, holiday_name="HCMC day", jurisdiction="HCM"),
            PublicHolidays(holiday_date=monday + timedelta(days=1), holiday_name="Hanoi day", jurisdiction="HN"),
        ])
        seeded_db.commit()
        calendar = SqlHolidayCalendar(seeded_db)

        assert calendar.find_holiday(LOCATION_ID, monday) is None
        assert calendar.find_holiday(LOCATION_ID, monday + timedelta(days=1)).name == "Hanoi day"

    def test_deleted_holiday_ignored(self, seeded_db):
        monday = get_test_monday()
        seeded_db.add(PublicHolidays(holiday_date=monday, holiday_name="Old", is_deleted=True))
        seeded_db.commit()
        assert SqlHolidayCalendar(seeded_db).find_holiday(LOCATION_ID, monday) is None


class TestSqlClosureCalendar:

    def test_closure_range_inclusive(self, seeded_db):
        monday = get_test_monday()
        seeded_db.add(LocationClosures(
            location_id=LOCATION_ID, start_date=monday, end_date=monday + timedelta(days=2),
            day_type="MAINTENANCE", reason="Renovation",
        ))
        seeded_db.commit()
        calendar = SqlClosureCalendar(seeded_db)

        assert calendar.find_closure(LOCATION_ID, monday + timedelta(days=2)).reason == "Renovation"
        assert calendar.find_closure(LOCATION_ID, monday + timedelta(days=3)) is None

    def test_weekly_schedule_closed_day(self, seeded_db):
        seeded_db.add(LocationOperatingSchedules(location_id=LOCATION_ID, is_sunday_open=False))
        seeded_db.commit()
        calendar = SqlClosureCalendar(seeded_db)
        sunday = get_test_monday() + timedelta(days=6)

        closure = calendar.find_closure(LOCATION_ID, sunday)
        assert closure.day_type == "REGULAR_CLOSED_DAY"
        assert "Sunday" in closure.reason
        # unset flags mean open
        assert calendar.find_closure(LOCATION_ID, get_test_monday()) is None

    def test_explicit_closure_wins_over_schedule(self, seeded_db):
        sunday = get_test_monday() + timedelta(days=6)
        seeded_db.add_all([
            LocationOperatingSchedules(location_id=LOCATION_ID, is_sunday_open=False),
            LocationClosures(location_id=LOCATION_ID, start_date=sunday, end_date=sunday, reason="Flood"),
        ])
        seeded_db.commit()
        assert SqlClosureCalendar(seeded_db).find_closure(LOCATION_ID, sunday).reason == "Flood"


class TestSqlIssueLog:

    def test_issue_found_for_template(self, seeded_db):
        row = add_template_row(seeded_db)
        monday = get_test_monday()
        seeded_db.add(ShiftIssues(
            shift_template_id=row.id, issue_type=ShiftIssueType.MATERNITY_LEAVE,
            start_date=monday, end_date=monday + timedelta(days=90), guard_id=7,
        ))
        seeded_db.commit()
        log = SqlIssueLog(seeded_db)

        issue = log.find_issue(row.id, monday + timedelta(days=30))
        assert issue.issue_type == "MATERNITY_LEAVE"
        assert issue.guard_id == 7
        assert log.find_issue(row.id, monday - timedelta(days=1)) is None
        assert log.find_issue(row.id + 1, monday) is None


# ==================== End to end ====================

class TestGenerateShiftsOnDatabase:

    def test_full_run(self, seeded_db, clock):
        row = add_template_row(seeded_db, applies_saturday=True, applies_sunday=True)
        monday = get_test_monday()
        seeded_db.add_all([
            PublicHolidays(holiday_date=monday + timedelta(days=1), holiday_name="Tet"),
            LocationOperatingSchedules(location_id=LOCATION_ID, is_sunday_open=False),
            ShiftIssues(shift_template_id=row.id, issue_type=ShiftIssueType.SICK_LEAVE,
                        start_date=monday + timedelta(days=3), end_date=monday + timedelta(days=3)),
        ])
        seeded_db.commit()

        request = GenerationRequest(manager_id=MANAGER_ID, template_ids=[row.id],
                                    generate_from=monday, generate_days=7)
        result = generate_shifts(seeded_db, request, clock)

        assert result.success
        assert result.shifts_created_count == 4
        assert [(s.shift_date.day, s.reason) for s in result.skip_reasons] == [
            (21, SkipCode.HOLIDAY.value),
            (23, "SICK_LEAVE"),
            (26, SkipCode.LOCATION_CLOSED.value),
        ]

        again = generate_shifts(seeded_db, request, clock)
        assert again.shifts_created_count == 0
        assert again.shifts_skipped_count == 7
        assert len(seeded_db.execute(select(Shifts)).scalars().all()) == 4

    def test_unreadable_explicit_dates_fail_only_that_template(self, seeded_db, clock):
        bad = add_template_row(seeded_db, template_code="BAD", explicit_dates=["2025-02-30", "2025-01-22"])
        good = add_template_row(seeded_db)

        request = GenerationRequest(manager_id=MANAGER_ID, template_ids=[bad.id, good.id],
                                    generate_from=get_test_monday(), generate_days=7)
        result = generate_shifts(seeded_db, request, clock)

        assert len(result.errors) == 1
        assert result.errors[0].startswith(f"Template {bad.id} is invalid: explicit date '2025-02-30'")
        assert result.shifts_created_count == 5
        shifts = seeded_db.execute(select(Shifts)).scalars().all()
        assert {s.shift_template_id for s in shifts} == {good.id}

    def test_stored_times_are_utc(self, seeded_db, clock):
        row = add_template_row(seeded_db)
        request = GenerationRequest(manager_id=MANAGER_ID, template_ids=[row.id],
                                    generate_from=get_test_monday(), generate_days=1)
        generate_shifts(seeded_db, request, clock)

        shift = seeded_db.execute(select(Shifts)).scalars().one()
        # 08:00 in Vietnam is 01:00 UTC
        assert shift.start_datetime_utc.replace(tzinfo=None) == datetime(2025, 1, 20, 1, 0)
        assert shift.end_datetime_utc.replace(tzinfo=None) == datetime(2025, 1, 20, 9, 0)


# ==================== Read-side queries ====================

class TestShiftQueries:

    @pytest.fixture
    def generated(self, seeded_db, clock):
        first = add_template_row(seeded_db, contract_id=5)
        second = add_template_row(seeded_db, contract_id=6, manager_id=OTHER_MANAGER_ID)
        for row, manager_id in ((first, MANAGER_ID), (second, OTHER_MANAGER_ID)):
            generate_shifts(seeded_db, GenerationRequest(
                manager_id=manager_id, template_ids=[row.id],
                generate_from=get_test_monday(), generate_days=14,
            ), clock)
        return first, second

    def test_list_scoped_to_manager(self, seeded_db, generated):
        first, _ = generated
        shifts = list_shifts(seeded_db, ShiftFilter(manager_id=MANAGER_ID))
        assert len(shifts) == 10
        assert {s.shift_template_id for s in shifts} == {first.id}
        assert [s.shift_date for s in shifts] == sorted(s.shift_date for s in shifts)

    def test_list_date_range_and_paging(self, seeded_db, generated):
        monday = get_test_monday()
        f = ShiftFilter(manager_id=MANAGER_ID, start_date=monday, end_date=monday + timedelta(days=2))
        assert len(list_shifts(seeded_db, f)) == 3
        page = ShiftFilter(manager_id=MANAGER_ID, skip=8, limit=5)
        assert len(list_shifts(seeded_db, page)) == 2

    def test_latest_shift_dates(self, seeded_db, generated):
        last_friday = get_test_monday() + timedelta(days=11)
        assert latest_shift_dates(seeded_db, [5, 6, 7]) == {5: last_friday, 6: last_friday}
        assert latest_shift_dates(seeded_db, []) == {}


class TestFindManagerForGeneration:

    def test_preferred_manager_kept(self, seeded_db):
        assert find_manager_for_generation(seeded_db, OTHER_MANAGER_ID) == OTHER_MANAGER_ID

    def test_falls_back_when_not_allowed(self, seeded_db):
        seeded_db.get(Managers, OTHER_MANAGER_ID).can_create_shifts = False
        seeded_db.commit()
        assert find_manager_for_generation(seeded_db, OTHER_MANAGER_ID) == MANAGER_ID

    def test_none_when_nobody_allowed(self, seeded_db):
        for manager in seeded_db.execute(select(Managers)).scalars():
            manager.is_active = False
        seeded_db.commit()
        assert find_manager_for_generation(seeded_db, MANAGER_ID) is None
