"""
Run contract shift auto-generation once.

Finds every contract whose generated shifts run out within the lookahead
window and generates the next batch. Schedule it daily (e.g. cron at 02:00
business time).

Run with: python -m scripts.auto_generate_shifts [--lookahead-days 7] [--advance-days 30] [--dry-run]
"""

import argparse
import logging
import sys

from app.core.clock import get_business_clock
from app.core.config import settings
from app.db.database import SessionLocal
from app.services.shift_generation import find_generation_plans, get_event_publisher, run_auto_generation


logger = logging.getLogger("auto_generate_shifts")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate upcoming shifts for active contracts")
    parser.add_argument("--lookahead-days", type=int, default=settings.AUTO_GENERATION_LOOKAHEAD_DAYS,
                        help="generate when the last shift is within this many days")
    parser.add_argument("--advance-days", type=int, default=settings.SHIFT_GENERATION_DEFAULT_DAYS,
                        help="how many days to generate per contract")
    parser.add_argument("--dry-run", action="store_true", help="print the plans without generating")
    args = parser.parse_args(argv)

    if not 1 <= args.advance_days <= settings.SHIFT_GENERATION_MAX_DAYS:
        parser.error(f"--advance-days must be between 1 and {settings.SHIFT_GENERATION_MAX_DAYS}")
    if args.lookahead_days < 0:
        parser.error("--lookahead-days must not be negative")
    return args


def main(argv=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    clock = get_business_clock()
    db = SessionLocal()
    try:
        if args.dry_run:
            plans, skipped = find_generation_plans(db, clock, args.lookahead_days, args.advance_days)
            for plan in plans:
                print(
                    f"contract {plan.contract_id}: manager {plan.manager_id}, "
                    f"templates {plan.template_ids}, from {plan.generate_from} for {plan.generate_days} days"
                )
            for contract_id, reason in skipped.items():
                print(f"contract {contract_id}: skipped ({reason})")
            return 0

        report = run_auto_generation(
            db, clock, get_event_publisher(), args.lookahead_days, args.advance_days
        )
        logger.info(
            f"Auto-generation finished: {len(report.plans)} contracts, "
            f"{report.shifts_created_count} shifts created, "
            f"{len(report.failed_contracts)} failed, {len(report.skipped_contracts)} skipped"
        )
        return 1 if report.failed_contracts else 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
