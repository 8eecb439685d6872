"""Minute-resolution push scheduler."""

from __future__ import annotations

from datetime import datetime

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from weather_buddy.config import settings
from weather_buddy.memory.user_preferences import JsonPreferenceStore, PreferenceRepository
from weather_buddy.pipeline.push import push_weather
from weather_buddy.tools.wxpusher import get_enabled_uids

logger = structlog.get_logger()

JOB_ID = "check_push_times"


def select_due_users(uids: list[str], now: datetime, store: PreferenceRepository) -> list[str]:
    """Users whose push time equals *now* to the minute.

    Missing preferences are backfilled with the defaults as a side effect. A
    user whose preferences cannot be loaded is checked against the default time.
    """
    due = []
    for uid in uids:
        try:
            push_time = store.ensure_defaults(uid).push_time
        except Exception:
            logger.exception("scheduler.user_check_failed", uid=uid)
            push_time = settings.default_push_time
        hour, minute = (int(part) for part in push_time.split(":"))
        if (hour, minute) == (now.hour, now.minute):
            due.append(uid)
    return due


async def check_push_times(now: datetime | None = None, store: PreferenceRepository | None = None) -> list[str]:
    """One scheduler tick. Returns the uids a push was attempted for."""
    now = now or datetime.now()
    store = store or JsonPreferenceStore()

    uids = await get_enabled_uids()
    if not uids:
        logger.debug("scheduler.tick.no_users", time=now.strftime("%H:%M"))
        return []

    due = select_due_users(uids, now, store)
    logger.info("scheduler.tick", time=now.strftime("%H:%M"), users=len(uids), due=len(due))
    if due:
        await push_weather(due, store)
    return due


async def _tick() -> None:
    try:
        await check_push_times()
    except Exception:
        logger.exception("scheduler.tick.failed")


def create_scheduler() -> AsyncIOScheduler:
    """Scheduler running one tick per wall-clock minute. Not started."""
    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        _tick,
        CronTrigger(minute="*"),
        id=JOB_ID,
        max_instances=1,
        coalesce=True,
        replace_existing=True,
    )
    return scheduler
