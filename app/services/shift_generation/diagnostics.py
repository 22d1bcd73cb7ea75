"""
Diagnostics for generation runs: result packaging, log summary and the
event payload sent to other services.
"""

from datetime import date, datetime
from typing import Iterable, Optional

from .types import GenerationResult, ShiftsGeneratedEvent, SkipReason


def build_generation_result(
    generated_from: date,
    generated_to: date,
    created_shift_ids: Optional[Iterable[int]] = None,
    skip_reasons: Optional[Iterable[SkipReason]] = None,
    errors: Optional[Iterable[str]] = None,
    warnings: Optional[Iterable[str]] = None,
    templates_processed: int = 0,
    duration_ms: int = 0,
) -> GenerationResult:
    created = list(created_shift_ids or [])
    skipped = list(skip_reasons or [])
    return GenerationResult(
        generated_from=generated_from,
        generated_to=generated_to,
        shifts_created_count=len(created),
        shifts_skipped_count=len(skipped),
        skip_reasons=skipped,
        created_shift_ids=created,
        errors=list(errors or []),
        warnings=list(warnings or []),
        templates_processed=templates_processed,
        duration_ms=duration_ms,
    )


def skip_reason_counts(result: GenerationResult) -> dict[str, int]:
    counts: dict[str, int] = {}
    for skip in result.skip_reasons:
        counts[skip.reason] = counts.get(skip.reason, 0) + 1
    return counts


def run_status(result: GenerationResult) -> str:
    if not result.errors:
        return "success"
    if result.shifts_created_count > 0:
        return "partial"
    return "failed"


def summarize_result(result: GenerationResult) -> str:
    counts = ", ".join(f"{code}={n}" for code, n in sorted(skip_reason_counts(result).items()))
    return (
        f"Generated shifts {result.generated_from}..{result.generated_to}: "
        f"created={result.shifts_created_count} skipped={result.shifts_skipped_count}"
        f"{f' ({counts})' if counts else ''} "
        f"errors={len(result.errors)} templates={result.templates_processed} "
        f"in {result.duration_ms}ms"
    )


def build_generated_event(
    result: GenerationResult,
    manager_id: int,
    job_name: str,
    generated_at: datetime,
    contract_id: Optional[int] = None,
) -> ShiftsGeneratedEvent:
    return ShiftsGeneratedEvent(
        manager_id=manager_id,
        generated_by_job=job_name,
        generated_at=generated_at,
        generated_from=result.generated_from,
        generated_to=result.generated_to,
        status=run_status(result),
        shifts_created_count=result.shifts_created_count,
        shifts_skipped_count=result.shifts_skipped_count,
        skip_reasons=sorted(skip_reason_counts(result)),
        created_shift_ids=list(result.created_shift_ids),
        error_message="; ".join(result.errors) or None,
        contract_id=contract_id,
        schedules_processed=result.templates_processed,
        generation_duration_ms=result.duration_ms,
    )
