from app.db.database import Base

# Import models
from app.db.models.managers import Managers
from app.db.models.locations import Locations
from app.db.models.shift_templates import ShiftTemplates
from app.db.models.shifts import Shifts, ShiftStatus, ShiftSource
from app.db.models.public_holidays import PublicHolidays
from app.db.models.location_closures import LocationClosures
from app.db.models.location_operating_schedules import LocationOperatingSchedules
from app.db.models.shift_issues import ShiftIssues, ShiftIssueType

__all__ = [
    "Base",
    # Models
    "Managers",
    "Locations",
    "ShiftTemplates",
    "Shifts",
    "PublicHolidays",
    "LocationClosures",
    "LocationOperatingSchedules",
    "ShiftIssues",
    # Enums
    "ShiftStatus",
    "ShiftSource",
    "ShiftIssueType",
]
