"""Billing scheduler: runs the billing sweeps on UTC calendar schedules inside the app process"""

import asyncio
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.logging import get_logger
from app.database import Database
from app.services.billing_service import BillingService
from app.utils.time import add_months, get_utc_now

logger = get_logger(__name__)

Sweep = Callable[[AsyncSession, datetime], Awaitable[Any]]


def next_monthly_run(now: datetime, day: int, hour: int = 0) -> datetime:
    """Next ``day`` of a month at ``hour``:00 strictly after ``now``."""
    candidate = now.replace(day=day, hour=hour, minute=0, second=0, microsecond=0)
    if candidate <= now:
        candidate = add_months(candidate, 1)
    return candidate


def next_daily_run(now: datetime, hour: int) -> datetime:
    """Next ``hour``:00 strictly after ``now``."""
    candidate = now.replace(hour=hour, minute=0, second=0, microsecond=0)
    if candidate <= now:
        candidate += timedelta(days=1)
    return candidate


def next_interval_run(now: datetime, hours: int) -> datetime:
    """Next top of the hour whose hour-of-day is a multiple of ``hours`` (cron ``0 */N * * *``)."""
    candidate = now.replace(minute=0, second=0, microsecond=0) + timedelta(hours=1)
    while candidate.hour % hours != 0:
        candidate += timedelta(hours=1)
    return candidate


class BillingScheduler:
    """
    Owns one asyncio task per sweep. Each task sleeps until its next run time,
    runs the sweep in a fresh session and logs the outcome; a failing sweep
    never stops its loop or the other two.
    """

    def __init__(self, database: Database):
        self.database = database
        self._tasks: List[asyncio.Task] = []
        self.jobs: Dict[str, Sweep] = {
            "invoices": BillingService.generate_monthly_invoices,
            "overdue": BillingService.mark_overdue_bills,
            "expiry": BillingService.expire_subscriptions,
        }
        self.schedules: Dict[str, Callable[[datetime], datetime]] = {
            "invoices": lambda now: next_monthly_run(now, settings.BILLING_DAY_OF_MONTH),
            "overdue": lambda now: next_daily_run(now, settings.OVERDUE_CHECK_HOUR),
            "expiry": lambda now: next_interval_run(now, settings.EXPIRY_CHECK_INTERVAL_HOURS),
        }

    @property
    def running(self) -> bool:
        return any(not task.done() for task in self._tasks)

    async def run_job(self, name: str, now: Optional[datetime] = None) -> Any:
        """Run one sweep immediately. Errors are logged and return None."""
        sweep = self.jobs[name]
        now = now or get_utc_now()
        logger.info(f"Running billing job: {name}", extra={"job": name})
        try:
            async with self.database.session_factory() as session:
                result = await sweep(session, now)
        except Exception as e:
            logger.error(f"Billing job {name} failed: {str(e)}", extra={"job": name}, exc_info=True)
            return None
        logger.info(f"Billing job {name} finished", extra={"job": name, "result": str(result)})
        return result

    async def _loop(self, name: str) -> None:
        while True:
            now = get_utc_now()
            next_run = self.schedules[name](now)
            await asyncio.sleep((next_run - now).total_seconds())
            await self.run_job(name)

    def start(self) -> None:
        if self.running:
            return
        self._tasks = [
            asyncio.create_task(self._loop(name), name=f"billing-{name}")
            for name in self.jobs
        ]
        logger.info(
            "Billing scheduler started",
            extra={
                "billing_day": settings.BILLING_DAY_OF_MONTH,
                "overdue_hour": settings.OVERDUE_CHECK_HOUR,
                "expiry_interval_hours": settings.EXPIRY_CHECK_INTERVAL_HOURS,
            },
        )

    async def stop(self) -> None:
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        logger.info("Billing scheduler stopped")
