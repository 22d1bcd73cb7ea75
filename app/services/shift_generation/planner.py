"""
Auto-generation planner.

Finds contracts whose generated shifts are about to run out and turns each
into a generation request. Meant to be run once a day (see
scripts/auto_generate_shifts.py).
"""

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from app.core.clock import BusinessClock
from app.core.config import settings

from .data_loader import find_manager_for_generation, latest_shift_dates, load_templates
from .diagnostics import build_generated_event
from .filters import TemplateFilter
from .generator import ShiftGenerationError, generate_shifts
from .notifications import EventPublisher
from .types import GenerationRequest, GenerationResult, ShiftTemplate


logger = logging.getLogger(__name__)

AUTO_GENERATION_JOB = "daily_auto_gen"


@dataclass
class GenerationPlan:
    contract_id: int
    manager_id: int
    template_ids: list[int]
    generate_from: date
    generate_days: int
    last_shift_date: Optional[date] = None

    def to_request(self) -> GenerationRequest:
        return GenerationRequest(
            manager_id=self.manager_id,
            template_ids=list(self.template_ids),
            generate_from=self.generate_from,
            generate_days=self.generate_days,
        )


@dataclass
class AutoGenerationReport:
    plans: list[GenerationPlan] = field(default_factory=list)
    results: dict[int, GenerationResult] = field(default_factory=dict)  # contract_id -> result
    failed_contracts: dict[int, str] = field(default_factory=dict)
    skipped_contracts: dict[int, str] = field(default_factory=dict)

    @property
    def shifts_created_count(self) -> int:
        return sum(r.shifts_created_count for r in self.results.values())


def plan_window(
    templates: list[ShiftTemplate],
    today: date,
    last_shift_date: Optional[date],
    advance_days: int,
) -> Optional[tuple[date, int]]:
    """
    Start date and day count for one contract, or None if there is nothing
    left to generate.

    Starts the day after the last generated shift (never before today) and
    runs `advance_days`, clipped to the last day any template is valid when
    every template has an end date.
    """
    start = today
    if last_shift_date is not None:
        start = max(last_shift_date + timedelta(days=1), today)

    end = start + timedelta(days=advance_days)
    end_dates = [t.effective_to for t in templates]
    if end_dates and all(d is not None for d in end_dates):
        end = min(end, max(end_dates) + timedelta(days=1))

    days = (end - start).days
    if days <= 0:
        return None
    return start, days


def find_generation_plans(
    db: Session,
    clock: BusinessClock,
    lookahead_days: Optional[int] = None,
    advance_days: Optional[int] = None,
) -> tuple[list[GenerationPlan], dict[int, str]]:
    """
    Build one plan per contract that needs shifts.

    A contract needs shifts when none were generated yet, or the latest one
    is within `lookahead_days` of today.

    Returns:
        (plans, skipped) where skipped maps contract_id -> reason

    Raises:
        ValueError: advance_days is outside 1..SHIFT_GENERATION_MAX_DAYS
    """
    lookahead_days = settings.AUTO_GENERATION_LOOKAHEAD_DAYS if lookahead_days is None else lookahead_days
    advance_days = settings.SHIFT_GENERATION_DEFAULT_DAYS if advance_days is None else advance_days
    if not 1 <= advance_days <= settings.SHIFT_GENERATION_MAX_DAYS:
        raise ValueError(
            f"advance_days must be between 1 and {settings.SHIFT_GENERATION_MAX_DAYS}, got {advance_days}"
        )
    today = clock.today()

    by_contract: dict[int, list[ShiftTemplate]] = {}
    for template in load_templates(db, TemplateFilter(has_contract=True, active_only=True)):
        by_contract.setdefault(template.contract_id, []).append(template)

    last_dates = latest_shift_dates(db, by_contract.keys())
    plans: list[GenerationPlan] = []
    skipped: dict[int, str] = {}

    for contract_id in sorted(by_contract):
        templates = by_contract[contract_id]
        last = last_dates.get(contract_id)

        if last is not None and last > today + timedelta(days=lookahead_days):
            logger.debug(f"Contract {contract_id} has shifts until {last}, nothing to do")
            continue

        window = plan_window(templates, today, last, advance_days)
        if window is None:
            skipped[contract_id] = "All templates have ended"
            logger.debug(f"Contract {contract_id}: templates ended, nothing to generate")
            continue

        manager_id = find_manager_for_generation(db, templates[0].manager_id)
        if manager_id is None:
            skipped[contract_id] = "No manager allowed to create shifts"
            logger.warning(f"Contract {contract_id}: no manager allowed to create shifts, skipping")
            continue

        generate_from, generate_days = window
        plans.append(GenerationPlan(
            contract_id=contract_id,
            manager_id=manager_id,
            template_ids=[t.id for t in templates],
            generate_from=generate_from,
            generate_days=generate_days,
            last_shift_date=last,
        ))

    return plans, skipped


def run_auto_generation(
    db: Session,
    clock: BusinessClock,
    publisher: EventPublisher,
    lookahead_days: Optional[int] = None,
    advance_days: Optional[int] = None,
) -> AutoGenerationReport:
    """Plan and run generation for every contract that needs it."""
    plans, skipped = find_generation_plans(db, clock, lookahead_days, advance_days)
    report = AutoGenerationReport(plans=plans, skipped_contracts=skipped)

    if not plans:
        logger.info("No contracts need shift generation")
        return report

    logger.info(f"{len(plans)} contracts need shift generation")

    for plan in plans:
        try:
            result = generate_shifts(db, plan.to_request(), clock)
        except ShiftGenerationError as e:
            # one contract failing must not stop the others
            db.rollback()
            report.failed_contracts[plan.contract_id] = str(e)
            logger.error(f"Contract {plan.contract_id}: generation failed: {e}")
            result = e.partial_result
            if result is None:
                continue
        else:
            report.results[plan.contract_id] = result
            logger.info(
                f"Contract {plan.contract_id}: created {result.shifts_created_count} shifts "
                f"({plan.generate_from}, {plan.generate_days} days)"
            )

        publisher.publish(build_generated_event(
            result,
            manager_id=plan.manager_id,
            job_name=AUTO_GENERATION_JOB,
            generated_at=clock.now(),
            contract_id=plan.contract_id,
        ))

    return report
