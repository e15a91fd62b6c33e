"""
Singleton state persistence on top of the settings table.

Fixed keys used by the pipeline:
- google_tokens: OAuth credential record
- start_page_token: Drive change cursor (database cursor backend)
- watch_channel: last registered watch channel
"""

from typing import Optional

from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError

from app.models.setting import Setting

TOKENS_KEY = "google_tokens"
CURSOR_KEY = "start_page_token"
WATCH_CHANNEL_KEY = "watch_channel"


def get_setting(db: Session, key: str) -> Optional[str]:
    """Return the stored value for key, or None if absent."""
    row = db.query(Setting).filter(Setting.key == key).first()
    return row.value if row else None


def set_setting(db: Session, key: str, value: str) -> None:
    """
    Overwrite the value stored under key (insert if missing).

    Commits immediately so the value is visible to the next invocation.
    """
    row = db.query(Setting).filter(Setting.key == key).first()
    if row:
        row.value = value
        db.commit()
        return

    db.add(Setting(key=key, value=value))
    try:
        db.commit()
    except IntegrityError:
        # Race condition - another invocation inserted it first
        db.rollback()
        row = db.query(Setting).filter(Setting.key == key).first()
        row.value = value
        db.commit()


def delete_setting(db: Session, key: str) -> bool:
    """Remove key. Returns True if something was deleted."""
    deleted = db.query(Setting).filter(Setting.key == key).delete()
    db.commit()
    return bool(deleted)
