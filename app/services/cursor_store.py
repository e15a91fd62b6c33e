"""
Cursor Store - the single "last processed change" page token.

The cursor lives apart from the posts table so that wiping posts for a
re-sync does not lose it, and vice versa. Two backends share one contract:

- AppDataCursorStore: startPageToken.json in the Drive appDataFolder,
  tied to the OAuth identity (default)
- DatabaseCursorStore: a row in the settings table
"""

import io
import json
import logging
from typing import Optional, Protocol

from googleapiclient.http import MediaIoBaseUpload
from sqlalchemy.orm import Session

from app.config import Settings
from app.services.drive_service import upstream_errors
from app.services.state_service import CURSOR_KEY, get_setting, set_setting

logger = logging.getLogger(__name__)

APPDATA_FILE_NAME = "startPageToken.json"


class CursorStore(Protocol):
    """What the sync pipeline needs from either backend."""

    def get(self) -> Optional[str]: ...

    def put(self, cursor: str) -> None: ...


class DatabaseCursorStore:
    """Cursor stored in the settings table."""

    def __init__(self, db: Session):
        self.db = db

    def get(self) -> Optional[str]:
        return get_setting(self.db, CURSOR_KEY) or None

    def put(self, cursor: str) -> None:
        set_setting(self.db, CURSOR_KEY, cursor)
        logger.info("📝 Cursor updated to %s", cursor)


class AppDataCursorStore:
    """Cursor stored as a JSON file in the Drive appDataFolder."""

    def __init__(self, drive):
        self.drive = drive

    def _find_file_id(self) -> Optional[str]:
        with upstream_errors("Find cursor file"):
            response = self.drive.files().list(
                spaces="appDataFolder",
                q=f"name='{APPDATA_FILE_NAME}'",
                fields="files(id)",
            ).execute()
        files = response.get("files") or []
        return files[0]["id"] if files else None

    def get(self) -> Optional[str]:
        """
        Read the stored cursor.

        A missing or corrupt file counts as "no cursor"; the caller then
        re-establishes the watch from a fresh start token.
        API errors propagate.
        """
        file_id = self._find_file_id()
        if not file_id:
            logger.warning("No %s found in appDataFolder", APPDATA_FILE_NAME)
            return None

        with upstream_errors("Read cursor file"):
            content = self.drive.files().get_media(fileId=file_id).execute()

        try:
            if isinstance(content, bytes):
                content = content.decode("utf-8")
            return json.loads(content).get("startPageToken") or None
        except (ValueError, AttributeError) as e:
            logger.warning("Could not read cursor from appDataFolder, treating as absent: %s", e)
            return None

    def put(self, cursor: str) -> None:
        payload = json.dumps({"startPageToken": cursor}).encode("utf-8")
        media = MediaIoBaseUpload(io.BytesIO(payload), mimetype="application/json")

        file_id = self._find_file_id()
        with upstream_errors("Write cursor file"):
            if file_id:
                self.drive.files().update(fileId=file_id, media_body=media).execute()
            else:
                self.drive.files().create(
                    body={
                        "name": APPDATA_FILE_NAME,
                        "parents": ["appDataFolder"],
                        "mimeType": "application/json",
                    },
                    media_body=media,
                    fields="id",
                ).execute()
        logger.info("📝 Cursor updated to %s (appDataFolder)", cursor)


def build_cursor_store(settings: Settings, db: Session, drive) -> CursorStore:
    """Pick the cursor backend configured by CURSOR_BACKEND."""
    if settings.cursor_backend == "database":
        return DatabaseCursorStore(db)
    return AppDataCursorStore(drive)
