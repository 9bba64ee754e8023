# jobs/monthly_reminder_job.py

"""
Monthly maintenance reminder.

Runs on the 1st of each month and asks the backend to email every owner
their maintenance reminder. Sent at most once per calendar month per
process, even if the job fires again (restart, manual trigger).
"""

import asyncio
from datetime import date
from typing import Optional

from apscheduler.triggers.cron import CronTrigger

from core.config import settings
from core.errors import UpstreamFetchError
from core.logging_config import logger
from core.upstream_client import UpstreamClient


JOB_ID = "monthly_maintenance_reminders"

_last_sent_month: Optional[str] = None


def month_key(today: date) -> str:
    return today.strftime("%Y-%m")


def should_send(today: date) -> bool:
    return today.day == 1 and _last_sent_month != month_key(today)


def reset_marker():
    global _last_sent_month
    _last_sent_month = None


async def send_if_due(client: UpstreamClient, today: Optional[date] = None) -> bool:
    """
    Returns True when reminders were sent. Upstream failures are logged
    and leave the month unmarked so the next trigger retries.
    """
    global _last_sent_month
    today = today or date.today()

    if not should_send(today):
        return False

    try:
        await client.send_monthly_reminders()
    except UpstreamFetchError as e:
        logger.error(f"Monthly maintenance reminders failed: {e}")
        return False

    _last_sent_month = month_key(today)
    logger.info(f"Monthly maintenance reminders sent for {_last_sent_month}")
    return True


def schedule(scheduler, client: UpstreamClient):
    """Register the cron job (09:00 on the 1st, scheduler timezone)."""
    async def job():
        await send_if_due(client)

    return scheduler.add_job(
        job,
        trigger=CronTrigger(day=1, hour=9, minute=0),
        id=JOB_ID,
        replace_existing=True,
    )


def run():
    """
    CLI entry point for a one-off reminder run (e.g. a platform cron job).
    Sends regardless of the day of month.
    """
    async def _run():
        async with UpstreamClient() as client:
            await client.send_monthly_reminders()

    if not settings.UPSTREAM_API_URL:
        raise RuntimeError("UPSTREAM_API_URL not configured")

    asyncio.run(_run())
    logger.info("Monthly maintenance reminders sent (manual run)")


if __name__ == "__main__":
    run()
