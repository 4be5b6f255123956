#!/usr/bin/env python3
"""
Run one billing sweep now, outside the API process.

Usage:
  python scripts/run_billing_sweep.py invoices
  python scripts/run_billing_sweep.py overdue
  python scripts/run_billing_sweep.py expiry
  python scripts/run_billing_sweep.py all
  # Requires DATABASE_URL in .env (or export)

Useful when the in-process scheduler is disabled (SCHEDULER_ENABLED=false),
e.g. to drive the sweeps from an external cron.
"""
import asyncio
import os
import sys

from dotenv import load_dotenv

_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

# Load .env from project root
load_dotenv(os.path.join(_root, ".env"))

# Add project root to path
sys.path.insert(0, _root)

from app.config import settings
from app.core.logging import setup_logging
from app.core.scheduler import BillingScheduler
from app.database import Database

JOBS = ("invoices", "overdue", "expiry")


async def run(names):
    database = Database(settings.DATABASE_URL)
    scheduler = BillingScheduler(database)
    failed = False
    try:
        for name in names:
            result = await scheduler.run_job(name)
            if result is None:
                failed = True
                print(f"FAILED: {name} (see logs)")
            else:
                print(f"{name}: {result}")
    finally:
        await database.close()
    return not failed


def main():
    if len(sys.argv) != 2 or sys.argv[1] not in JOBS + ("all",):
        print(f"Usage: python scripts/run_billing_sweep.py [{'|'.join(JOBS)}|all]")
        sys.exit(2)
    setup_logging()
    names = JOBS if sys.argv[1] == "all" else (sys.argv[1],)
    if not asyncio.run(run(names)):
        sys.exit(1)


if __name__ == "__main__":
    main()
