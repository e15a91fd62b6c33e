"""
In-process daily watch renewal.

Drive watch channels expire on their own (they are requested with a
lifetime of a few days), after which notifications silently stop. This
loop re-establishes the watch once a day at WATCH_RENEWAL_TIME in WATCH_RENEWAL_TIMEZONE, independent of
webhook traffic.

Deployments with an external scheduler can disable it
(WATCH_RENEWAL_ENABLED=false) and run `python -m app.cron.renew_watch`.
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from sqlalchemy.orm import sessionmaker

from app.config import Settings
from app.services.sync_service import run_scheduled_renewal

logger = logging.getLogger(__name__)


def seconds_until_next_run(run_time: str, tz_name: str, now: Optional[datetime] = None) -> float:
    """
    Seconds from now until the next HH:MM in the given timezone.

    Args:
        run_time: 24-hour "HH:MM"
        tz_name: IANA timezone name, e.g. "Asia/Kolkata"
        now: Current time (timezone-aware); defaults to the real clock
    """
    tz = ZoneInfo(tz_name)
    current = (now or datetime.now(tz)).astimezone(tz)
    hour, minute = (int(part) for part in run_time.split(":"))

    target = current.replace(hour=hour, minute=minute, second=0, microsecond=0)
    if target <= current:
        target += timedelta(days=1)
    # Offsets can differ across a DST change
    return (target.astimezone(timezone.utc) - current.astimezone(timezone.utc)).total_seconds()


class RenewalScheduler:
    """Background asyncio task running the renewal job once a day."""

    def __init__(self, settings: Settings, session_factory: sessionmaker):
        self.settings = settings
        self.session_factory = session_factory
        self._task: Optional[asyncio.Task] = None

    async def start(self) -> None:
        if self._task is not None:
            return
        self._task = asyncio.create_task(self._loop())
        logger.info(
            "Watch renewal scheduled daily at %s (%s)",
            self.settings.renewal_time, self.settings.renewal_timezone,
        )

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _loop(self) -> None:
        while True:
            delay = seconds_until_next_run(self.settings.renewal_time, self.settings.renewal_timezone)
            logger.debug("Next watch renewal in %.0f seconds", delay)
            await asyncio.sleep(delay)
            # Blocking Google/DB calls run off the event loop
            await asyncio.to_thread(run_scheduled_renewal, self.session_factory, self.settings)
