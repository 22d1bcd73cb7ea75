"""
Predicate objects for read-side queries.

Each field is optional; None means "don't filter on this". They are turned
into SQL only in data_loader.py.
"""

from dataclasses import dataclass
from datetime import date
from typing import Optional, Sequence

from app.db.models.shifts import ShiftStatus


@dataclass(frozen=True)
class TemplateFilter:
    template_ids: Optional[Sequence[int]] = None
    manager_id: Optional[int] = None
    contract_id: Optional[int] = None
    location_id: Optional[int] = None
    has_contract: Optional[bool] = None
    active_only: bool = True


@dataclass(frozen=True)
class ShiftFilter:
    manager_id: Optional[int] = None
    location_id: Optional[int] = None
    shift_template_id: Optional[int] = None
    contract_id: Optional[int] = None
    status: Optional[ShiftStatus] = None
    start_date: Optional[date] = None  # inclusive
    end_date: Optional[date] = None  # inclusive
    skip: int = 0
    limit: int = 100
