from datetime import date
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.api.deps import get_db, get_current_manager
from app.db.models.managers import Managers
from app.db.models.shifts import Shifts, ShiftStatus
from app.schemas.shifts import ShiftResponse
from app.services.shift_generation.data_loader import list_shifts
from app.services.shift_generation.filters import ShiftFilter

router = APIRouter(prefix="/shifts", tags=["shifts"])


@router.get("", response_model=List[ShiftResponse])
def list_manager_shifts(
    location_id: Optional[int] = None,
    shift_template_id: Optional[int] = None,
    status: Optional[ShiftStatus] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    current_manager: Managers = Depends(get_current_manager),
):
    # always scoped to the current manager
    shift_filter = ShiftFilter(
        manager_id=current_manager.id,
        location_id=location_id,
        shift_template_id=shift_template_id,
        status=status,
        start_date=start_date,
        end_date=end_date,
        skip=skip,
        limit=limit,
    )
    return list_shifts(db, shift_filter)


@router.get("/{shift_id}", response_model=ShiftResponse)
def get_shift(
    shift_id: int,
    db: Session = Depends(get_db),
    current_manager: Managers = Depends(get_current_manager),
):
    shift = db.query(Shifts).filter(Shifts.id == shift_id).first()
    if not shift:
        raise HTTPException(status_code=404, detail="Shift not found")

    if shift.manager_id != current_manager.id:
        raise HTTPException(status_code=403, detail="No access to this shift")

    return shift
