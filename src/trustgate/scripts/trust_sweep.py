# src/trustgate/scripts/trust_sweep.py
"""
Cron job that processes the trust recalculation queue once.

Run it periodically when the in-process background worker is disabled:

    python -m trustgate.scripts.trust_sweep --limit 500
"""

from __future__ import annotations

import argparse
import logging

from trustgate.core.settings import settings
from trustgate.db.session import SessionLocal
from trustgate.services.trust import SweepReport, TrustRecalcQueue


def run_sweep(limit: int, passes: int) -> list[SweepReport]:
    """Sweep up to ``passes`` batches, stopping early when the queue drains."""
    queue = TrustRecalcQueue()
    reports: list[SweepReport] = []
    db = SessionLocal()
    try:
        for _ in range(passes):
            report = queue.sweep(db, limit)
            reports.append(report)
            if report.claimed < limit:
                break
    finally:
        db.close()
    return reports


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Process the trust recalculation queue.")
    parser.add_argument(
        "--limit",
        type=int,
        default=settings.trust_sweep_batch_size,
        help="Maximum entries claimed per batch",
    )
    parser.add_argument(
        "--passes",
        type=int,
        default=1,
        help="Maximum number of batches to process",
    )
    args = parser.parse_args(argv)
    if args.limit < 1 or args.passes < 1:
        parser.error("--limit and --passes must be positive")

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    reports = run_sweep(args.limit, args.passes)
    claimed = sum(report.claimed for report in reports)
    users = sum(report.users_recomputed for report in reports)
    print(f"Processed {claimed} queue entries, recomputed {users} trust scores")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
