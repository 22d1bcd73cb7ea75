"""
Shift generator - main orchestration layer.

Expands the requested templates over the horizon, asks the exception
resolver about every occurrence, and writes the resulting shifts one
template per transaction.
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import date, time, timedelta
from time import perf_counter
from typing import Optional

from sqlalchemy.orm import Session

from app.core.clock import BusinessClock, get_business_clock
from app.core.config import settings

from .data_loader import SqlClosureCalendar, SqlHolidayCalendar, SqlIssueLog, SqlTemplateStore
from .diagnostics import build_generation_result, summarize_result
from .expander import expand_occurrences
from .resolver import ExceptionResolver
from .store import DuplicateShiftError, ShiftStoreError, TemplateStore
from .types import (
    GenerationRequest,
    GenerationResult,
    ShiftInstance,
    ShiftTemplate,
    SkipCode,
    SkipReason,
)


logger = logging.getLogger(__name__)

# Attempts per template when a concurrent run inserts the same (template, date)
MAX_TEMPLATE_ATTEMPTS = 2

NIGHT_STARTS = time(22, 0)
NIGHT_ENDS = time(6, 0)


class ShiftGenerationError(Exception):
    """A run stopped early. `partial_result` holds what was committed before."""

    def __init__(self, message: str, partial_result: Optional[GenerationResult] = None):
        super().__init__(message)
        self.partial_result = partial_result


class GenerationCancelled(ShiftGenerationError):
    pass


@dataclass
class TemplateOutcome:
    created_shift_ids: list[int] = field(default_factory=list)
    skip_reasons: list[SkipReason] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def validate_request(request: GenerationRequest, max_days: int) -> list[str]:
    errors = []
    if not request.template_ids:
        errors.append("At least one shift template id is required")
    if request.generate_days < 0:
        errors.append(f"generate_days must not be negative, got {request.generate_days}")
    elif request.generate_days > max_days:
        errors.append(f"generate_days {request.generate_days} exceeds the maximum of {max_days}")
    return errors


def is_night_shift(template: ShiftTemplate) -> bool:
    """Any part of the shift falls between 22:00 and 06:00."""
    return (
        template.crosses_midnight
        or template.start_time < NIGHT_ENDS
        or template.end_time > NIGHT_STARTS
    )


def _raise_if_cancelled(cancel_event: Optional[threading.Event], where: str) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise GenerationCancelled(f"Generation cancelled {where}")


class ShiftGenerator:
    """
    Runs one generation request.

    Holds no state between runs; templates and exception data are read
    fresh on every call.
    """

    def __init__(
        self,
        store: TemplateStore,
        resolver: ExceptionResolver,
        clock: BusinessClock,
        max_days: Optional[int] = None,
    ):
        self.store = store
        self.resolver = resolver
        self.clock = clock
        self.max_days = max_days if max_days is not None else settings.SHIFT_GENERATION_MAX_DAYS

    def generate(
        self,
        request: GenerationRequest,
        cancel_event: Optional[threading.Event] = None,
    ) -> GenerationResult:
        """
        Generate shifts for a request.

        Business conditions (bad request, unknown or inactive template,
        holidays, closures, leave, existing shifts) are reported in the
        result. Storage failures and cancellation raise ShiftGenerationError
        with the committed part of the run attached as `partial_result`.
        """
        started = perf_counter()
        generated_from = request.generate_from or self.clock.today()

        errors = validate_request(request, self.max_days)
        if errors:
            logger.warning(f"Rejected shift generation for manager {request.manager_id}: {errors}")
            return build_generation_result(generated_from, generated_from, errors=errors)

        generated_to = generated_from + timedelta(days=request.generate_days)
        if request.generate_days == 0:
            return build_generation_result(generated_from, generated_to)

        template_ids = request.distinct_template_ids
        logger.info(
            f"Generating shifts for manager {request.manager_id}: "
            f"{len(template_ids)} templates, {generated_from} to {generated_to}"
        )

        created_ids: list[int] = []
        skip_reasons: list[SkipReason] = []
        warnings: list[str] = []
        processed = 0

        def result_so_far() -> GenerationResult:
            return build_generation_result(
                generated_from,
                generated_to,
                created_shift_ids=created_ids,
                skip_reasons=skip_reasons,
                errors=errors,
                warnings=warnings,
                templates_processed=processed,
                duration_ms=int((perf_counter() - started) * 1000),
            )

        try:
            templates = {t.id: t for t in self.store.get_active_templates(template_ids)}
        except ShiftStoreError as e:
            errors.append(f"Storage failure while loading templates {template_ids}: {e}")
            raise ShiftGenerationError(errors[-1], result_so_far()) from e

        for template_id in template_ids:
            template = templates.get(template_id)
            if template is None or not template.is_usable:
                errors.append(f"Template {template_id} not found or inactive")
                continue

            problems = template.validation_errors()
            if problems:
                errors.append(f"Template {template_id} is invalid: {'; '.join(problems)}")
                continue

            try:
                _raise_if_cancelled(cancel_event, f"before template {template_id}")
                outcome = self._generate_for_template(
                    template, request.manager_id, generated_from, generated_to, cancel_event
                )
            except GenerationCancelled as e:
                errors.append(str(e))
                e.partial_result = result_so_far()
                logger.warning(f"{e}; {summarize_result(e.partial_result)}")
                raise
            except ShiftStoreError as e:
                errors.append(f"Storage failure while generating template {template_id}: {e}")
                logger.error(errors[-1])
                raise ShiftGenerationError(errors[-1], result_so_far()) from e

            processed += 1
            if outcome is None:
                errors.append(
                    f"Template {template_id}: shifts were being generated concurrently, "
                    f"nothing written; run again to complete"
                )
                continue

            created_ids.extend(outcome.created_shift_ids)
            skip_reasons.extend(outcome.skip_reasons)
            warnings.extend(outcome.warnings)

        result = result_so_far()
        logger.info(summarize_result(result))
        return result

    def _generate_for_template(
        self,
        template: ShiftTemplate,
        manager_id: int,
        range_start: date,
        range_end: date,
        cancel_event: Optional[threading.Event],
    ) -> Optional[TemplateOutcome]:
        """
        Materialize one template inside a single transaction.

        A uniqueness violation means another run wrote some of the same
        shifts; the template is rolled back and evaluated again so those
        rows show up as ALREADY_EXISTS. Returns None if every attempt
        conflicted.
        """
        for attempt in range(1, MAX_TEMPLATE_ATTEMPTS + 1):
            try:
                with self.store.transaction():
                    return self._materialize(template, manager_id, range_start, range_end, cancel_event)
            except DuplicateShiftError as e:
                logger.warning(
                    f"Template {template.id}: duplicate shift on attempt {attempt}/{MAX_TEMPLATE_ATTEMPTS}, "
                    f"rolled back: {e}"
                )
        return None

    def _materialize(
        self,
        template: ShiftTemplate,
        manager_id: int,
        range_start: date,
        range_end: date,
        cancel_event: Optional[threading.Event],
    ) -> TemplateOutcome:
        outcome = TemplateOutcome()

        for day in expand_occurrences(template, range_start, range_end):
            _raise_if_cancelled(cancel_event, f"during template {template.id} at {day}")

            verdict = self.resolver.resolve(template.location_id, template.id, day)
            outcome.warnings.extend(verdict.warnings)

            if not verdict.proceed:
                logger.debug(f"Skipping template {template.id} on {day}: {verdict.code}")
                outcome.skip_reasons.append(
                    self._skip_reason(template, day, verdict.code, verdict.message)
                )
                continue

            if self.store.shift_instance_exists(template.id, day):
                outcome.skip_reasons.append(
                    self._skip_reason(
                        template, day, SkipCode.ALREADY_EXISTS.value, "Shift already generated for this date"
                    )
                )
                continue

            shift_id = self.store.create_shift_instance(self.build_instance(template, day, manager_id))
            outcome.created_shift_ids.append(shift_id)

        return outcome

    def build_instance(self, template: ShiftTemplate, day: date, manager_id: int) -> ShiftInstance:
        start, end = self.clock.shift_window(day, template.start_time, template.end_time)
        return ShiftInstance(
            shift_template_id=template.id,
            location_id=template.location_id,
            location_name=template.location_name,
            manager_id=template.manager_id,
            contract_id=template.contract_id,
            shift_date=day,
            start_datetime=start,
            end_datetime=end,
            required_guards=template.min_guards,
            max_guards=template.max_guards,
            is_night_shift=is_night_shift(template),
            is_weekend=day.weekday() >= 5,
            created_by_manager_id=manager_id,
        )

    @staticmethod
    def _skip_reason(template: ShiftTemplate, day: date, code: str, message: str) -> SkipReason:
        return SkipReason(
            shift_date=day,
            template_id=template.id,
            location_id=template.location_id,
            location_name=template.location_name,
            reason=code,
            message=message,
            schedule_name=template.name,
        )


def generate_shifts(
    db: Session,
    request: GenerationRequest,
    clock: Optional[BusinessClock] = None,
    cancel_event: Optional[threading.Event] = None,
) -> GenerationResult:
    """
    Generate shifts using the database-backed collaborators.

    main entry point for shift generation.

    Args:
        db: Database session; committed once per template
        request: Manager, template ids, start date and horizon
        clock: Business clock, defaults to BUSINESS_TIMEZONE
        cancel_event: Set it to stop the run after rolling back the
            template in progress

    Returns:
        GenerationResult with created ids, skip reasons and errors

    Raises:
        ShiftGenerationError: storage failed mid-run (see partial_result)
        GenerationCancelled: cancel_event was set

    Example:
        from datetime import date
        from app.services.shift_generation import GenerationRequest, generate_shifts

        result = generate_shifts(db, GenerationRequest(
            manager_id=1, template_ids=[10, 11], generate_from=date(2025, 1, 1), generate_days=30,
        ))
        print(result.shifts_created_count, result.errors)
    """
    generator = ShiftGenerator(
        store=SqlTemplateStore(db),
        resolver=ExceptionResolver(
            holidays=SqlHolidayCalendar(db),
            closures=SqlClosureCalendar(db),
            issues=SqlIssueLog(db),
        ),
        clock=clock or get_business_clock(),
    )
    return generator.generate(request, cancel_event)
