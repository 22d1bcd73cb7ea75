"""
Seed script for the GuardShift development database.

Creates the tables if missing, wipes the generation-related tables and
inserts a small, predictable data set:
- 2 managers (one without shift permission)
- 2 locations (Hanoi office, HCMC warehouse closed on Sundays)
- 3 templates on contract 5001 (day, night across midnight, weekend)
- Tet + a Hanoi-only holiday, a warehouse closure and a sick-leave issue

Run with: python -m scripts.seed_demo_data
"""

from datetime import date, time

from sqlalchemy import delete

from app.db.database import SessionLocal, engine
from app.db.models import (
    Base,
    Managers,
    Locations,
    ShiftTemplates,
    Shifts,
    PublicHolidays,
    LocationClosures,
    LocationOperatingSchedules,
    ShiftIssues,
    ShiftIssueType,
)


MANAGER_ID = 100001
VIEWER_MANAGER_ID = 100002
HANOI_OFFICE_ID = 100001
HCMC_WAREHOUSE_ID = 100002
CONTRACT_ID = 5001


def clear_tables(db):
    """Delete rows in dependency order."""
    print("Clearing tables...")
    for model in (
        ShiftIssues,
        Shifts,
        ShiftTemplates,
        LocationClosures,
        LocationOperatingSchedules,
        PublicHolidays,
        Locations,
        Managers,
    ):
        db.execute(delete(model))
    db.commit()


def seed_managers(db):
    db.add_all([
        Managers(id=MANAGER_ID, email="manager1@guardshift.local", full_name="Nguyen Van An",
                 can_create_shifts=True),
        Managers(id=VIEWER_MANAGER_ID, email="viewer@guardshift.local", full_name="Tran Thi Binh",
                 can_create_shifts=False),
    ])
    db.commit()
    print("Seeded managers")


def seed_locations(db):
    db.add_all([
        Locations(id=HANOI_OFFICE_ID, name="Hanoi Office Tower", address="1 Trang Tien, Hoan Kiem",
                  jurisdiction="HN"),
        Locations(id=HCMC_WAREHOUSE_ID, name="Thu Duc Warehouse", address="12 Vo Van Ngan, Thu Duc",
                  jurisdiction="HCM"),
    ])
    db.add(LocationOperatingSchedules(location_id=HCMC_WAREHOUSE_ID, is_sunday_open=False))
    db.commit()
    print("Seeded locations")


def seed_templates(db):
    weekdays = dict(applies_monday=True, applies_tuesday=True, applies_wednesday=True,
                    applies_thursday=True, applies_friday=True)
    db.add_all([
        ShiftTemplates(id=100001, manager_id=MANAGER_ID, contract_id=CONTRACT_ID,
                       location_id=HANOI_OFFICE_ID, template_code="HN-DAY",
                       template_name="Office day shift", start_time_local=time(8, 0),
                       end_time_local=time(16, 0), min_guards_required=2, max_guards_allowed=3,
                       effective_from=date(2025, 1, 1), effective_to=date(2025, 12, 31), **weekdays),
        ShiftTemplates(id=100002, manager_id=MANAGER_ID, contract_id=CONTRACT_ID,
                       location_id=HANOI_OFFICE_ID, template_code="HN-NIGHT",
                       template_name="Office night shift", start_time_local=time(22, 0),
                       end_time_local=time(6, 0), min_guards_required=1,
                       effective_from=date(2025, 1, 1), effective_to=date(2025, 12, 31), **weekdays),
        ShiftTemplates(id=100003, manager_id=MANAGER_ID, contract_id=CONTRACT_ID,
                       location_id=HCMC_WAREHOUSE_ID, template_code="HCM-WEEKEND",
                       template_name="Warehouse weekend patrol", start_time_local=time(7, 0),
                       end_time_local=time(19, 0), min_guards_required=1,
                       applies_saturday=True, applies_sunday=True,
                       effective_from=date(2025, 1, 1)),
    ])
    db.commit()
    print("Seeded shift templates")


def seed_exceptions(db):
    db.add_all([
        PublicHolidays(holiday_date=date(2025, 1, 29), holiday_name="Tet Nguyen Dan", is_tet_period=True),
        PublicHolidays(holiday_date=date(2025, 10, 10), holiday_name="Hanoi Liberation Day",
                       jurisdiction="HN"),
        LocationClosures(location_id=HCMC_WAREHOUSE_ID, start_date=date(2025, 2, 1),
                         end_date=date(2025, 2, 2), day_type="MAINTENANCE",
                         reason="Fire system maintenance"),
        ShiftIssues(shift_template_id=100001, guard_id=200001, issue_type=ShiftIssueType.SICK_LEAVE,
                    reason="Hospitalised", start_date=date(2025, 1, 6), end_date=date(2025, 1, 8),
                    created_by_manager_id=MANAGER_ID),
    ])
    db.commit()
    print("Seeded holidays, closures and issues")


def main():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        clear_tables(db)
        seed_managers(db)
        seed_locations(db)
        seed_templates(db)
        seed_exceptions(db)

        print("\n" + "="*50)
        print("Seeding complete!")
        print("="*50)
        print(f"\nManager {MANAGER_ID} owns templates 100001-100003 (contract {CONTRACT_ID})")
        print("Try: python -m scripts.auto_generate_shifts --dry-run")
        print("="*50 + "\n")

    except Exception as e:
        db.rollback()
        print(f"\nError during seeding: {e}")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    main()
