from pydantic import BaseModel
from datetime import date, datetime
from typing import Optional
from app.db.models.shifts import ShiftStatus, ShiftSource


class ShiftBase(BaseModel):
    shift_template_id: Optional[int]
    location_id: int
    location_name: Optional[str]
    manager_id: int
    contract_id: Optional[int]
    shift_date: date
    start_datetime_utc: datetime
    end_datetime_utc: datetime
    required_guards: int
    max_guards: Optional[int]
    is_night_shift: bool
    is_weekend: bool
    status: ShiftStatus
    source: ShiftSource


class ShiftResponse(ShiftBase):
    id: int
    created_by_manager_id: Optional[int]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
