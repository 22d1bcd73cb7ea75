from pydantic import BaseModel, Field
from datetime import date
from typing import List, Optional

from app.core.config import settings


class GenerateShiftsRequest(BaseModel):
    template_ids: List[int]
    generate_from_date: Optional[date] = None  # defaults to today in business time
    generate_days: int = Field(default=settings.SHIFT_GENERATION_DEFAULT_DAYS)


class SkipReasonResponse(BaseModel):
    shift_date: date
    template_id: int
    location_id: Optional[int]
    location_name: str
    reason: str
    message: str
    schedule_name: str

    class Config:
        from_attributes = True


class GenerateShiftsResponse(BaseModel):
    shifts_created_count: int
    shifts_skipped_count: int
    skip_reasons: List[SkipReasonResponse]
    created_shift_ids: List[int]
    errors: List[str]
    warnings: List[str]
    generated_from: date
    generated_to: date
    templates_processed: int
    duration_ms: int

    class Config:
        from_attributes = True
