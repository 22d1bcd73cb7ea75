from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.api.deps import get_db, get_clock, get_publisher, require_shift_creator
from app.core.clock import BusinessClock
from app.db.models.managers import Managers
from app.schemas.shift_generation import GenerateShiftsRequest, GenerateShiftsResponse
from app.services.shift_generation import (
    GenerationRequest,
    ShiftGenerationError,
    build_generated_event,
    generate_shifts,
)
from app.services.shift_generation.data_loader import load_templates
from app.services.shift_generation.filters import TemplateFilter
from app.services.shift_generation.notifications import EventPublisher

router = APIRouter(prefix="/shifts", tags=["shift-generation"])

MANUAL_GENERATION_JOB = "manual_trigger"


@router.post("/generate", response_model=GenerateShiftsResponse)
def generate_shifts_from_templates(
    payload: GenerateShiftsRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_manager: Managers = Depends(require_shift_creator),
    clock: BusinessClock = Depends(get_clock),
    publisher: EventPublisher = Depends(get_publisher),
):
    """Generate shifts from the manager's templates"""
    # templates owned by someone else are a 403; missing ones are reported in the result
    if payload.template_ids:
        templates = load_templates(db, TemplateFilter(template_ids=payload.template_ids, active_only=False))
        foreign = sorted(t.id for t in templates if t.manager_id != current_manager.id)
        if foreign:
            raise HTTPException(status_code=403, detail=f"No access to templates {foreign}")

    request = GenerationRequest(
        manager_id=current_manager.id,
        template_ids=payload.template_ids,
        generate_from=payload.generate_from_date,
        generate_days=payload.generate_days,
    )

    try:
        result = generate_shifts(db, request, clock)
    except ShiftGenerationError as e:
        partial = None
        if e.partial_result is not None:
            partial = GenerateShiftsResponse.model_validate(e.partial_result).model_dump(mode="json")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"message": str(e), "partial_result": partial},
        )

    if result.shifts_created_count or result.errors:
        background_tasks.add_task(
            publisher.publish,
            build_generated_event(
                result,
                manager_id=current_manager.id,
                job_name=MANUAL_GENERATION_JOB,
                generated_at=clock.now(),
            ),
        )

    return result
