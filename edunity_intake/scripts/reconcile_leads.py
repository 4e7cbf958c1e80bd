"""Detect and merge duplicate leads, then repair ID/uniqueness bookkeeping.

Usage:
    python -m edunity_intake.scripts.reconcile_leads            # dry run
    python -m edunity_intake.scripts.reconcile_leads --apply
    python -m edunity_intake.scripts.reconcile_leads --lead-type parent

The lead type defaults to the ``RECONCILE_LEAD_TYPE`` environment
variable (``teacher`` if unset).  Without ``--apply`` nothing is written.

Exit codes:
    0  success (dry run or apply)
    1  configuration or database error
"""

import argparse
import asyncio
import logging
import sys
from typing import Callable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from edunity_intake.core.cache import CacheService, connect_redis
from edunity_intake.core.config import settings
from edunity_intake.core.exceptions import UnknownLeadTypeError
from edunity_intake.core.lead_types import LeadTypeConfig, get_lead_type
from edunity_intake.services.reconciliation import LeadReconciler, ReconciliationPlan

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Archive duplicate leads and repair Edunity ID bookkeeping"
    )
    parser.add_argument(
        "--apply", action="store_true", help="Write changes (default is a dry run)"
    )
    parser.add_argument(
        "--lead-type",
        default=None,
        help="teacher or parent (defaults to $RECONCILE_LEAD_TYPE)",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=None,
        help="Max writes per committed batch (defaults to $RECONCILE_BATCH_SIZE)",
    )
    return parser


def format_plan(plan: ReconciliationPlan) -> List[str]:
    """Render the plan as the structured lines printed before any write."""
    lines = [f"[summary] {key}={value}" for key, value in plan.summary().items()]
    for row in plan.id_reassignments:
        lines.append(f"[id] {row.lead_id}: {row.from_id} -> {row.to_id}")
    for row in plan.archives:
        lines.append(
            f"[archive] {row.lead_id} duplicate_of={row.canonical_lead_id} "
            f"email={row.email or '-'} phone={row.phone or '-'}"
        )
    for row in plan.updates:
        fields = ",".join(sorted(row.values))
        lines.append(f"[update] {row.lead_id} fields={fields}")
    for row in plan.unique_key_upserts:
        lines.append(f"[unique-key] upsert {row.key} -> {row.lead_id}")
    for key in plan.unique_key_deletes:
        lines.append(f"[unique-key] delete {key}")
    for row in plan.registry_upserts:
        lines.append(f"[registry] upsert {row.edunity_id} -> {row.lead_id}")
    for edunity_id in plan.registry_deletes:
        lines.append(f"[registry] delete {edunity_id}")
    if plan.counter_changes:
        current = "unset" if plan.counter_current is None else plan.counter_current
        lines.append(f"[counter] {current} -> {plan.counter_target}")
    return lines


async def run(
    session_factory: async_sessionmaker,
    lead_type: LeadTypeConfig,
    apply: bool,
    batch_size: Optional[int] = None,
    out: Callable[[str], None] = print,
    cache: Optional[CacheService] = None,
) -> ReconciliationPlan:
    """Plan (and optionally apply) reconciliation, printing through *out*."""
    out(f"[scan] lead_type={lead_type.name} mode={'APPLY' if apply else 'DRY_RUN'}")
    reconciler = LeadReconciler(
        session_factory, lead_type, batch_size=batch_size, cache=cache
    )
    plan = await reconciler.build_plan()

    if plan.total_leads == 0:
        out("[result] No leads found, nothing to reconcile.")
        return plan

    for line in format_plan(plan):
        out(line)

    if not apply:
        out("[dry-run] No writes made. Run with --apply to execute.")
        return plan

    committed = await reconciler.apply(plan)
    out(f"[apply] completed. write_ops={committed}")
    return plan


async def _main(args: argparse.Namespace) -> int:
    try:
        lead_type = get_lead_type(args.lead_type or settings.RECONCILE_LEAD_TYPE)
    except UnknownLeadTypeError as exc:
        print(f"[error] {exc.detail}", file=sys.stderr)
        return 1

    engine = create_async_engine(settings.DATABASE_URL, echo=False)
    session_factory = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )
    redis_client = await connect_redis(settings.REDIS_URL) if args.apply else None
    try:
        await run(
            session_factory,
            lead_type,
            args.apply,
            args.batch_size,
            cache=CacheService(redis_client),
        )
    except SQLAlchemyError:
        logger.exception("Reconciliation failed")
        return 1
    finally:
        if redis_client is not None:
            await redis_client.aclose()
        await engine.dispose()
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(level=settings.LOG_LEVEL)
    args = build_parser().parse_args(argv)
    return asyncio.run(_main(args))


if __name__ == "__main__":
    sys.exit(main())
