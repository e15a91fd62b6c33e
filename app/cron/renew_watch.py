"""
One-shot Drive watch renewal for external schedulers.

Example crontab (daily at 07:00):
    0 7 * * * cd /srv/blog && python -m app.cron.renew_watch

Exits non-zero if the renewal failed.
"""

import logging
import sys

from app.config import get_settings
from app.database import Base, SessionLocal, engine
from app.services.sync_service import run_scheduled_renewal


def run() -> int:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    Base.metadata.create_all(bind=engine)
    subscription = run_scheduled_renewal(SessionLocal, settings)
    return 0 if subscription else 1


if __name__ == "__main__":
    sys.exit(run())
