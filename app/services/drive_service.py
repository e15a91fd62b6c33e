"""
Google Drive change source.

Wraps the Drive v3 API calls the sync pipeline needs:
- changes.getStartPageToken: fresh cursor when (re-)establishing the watch
- changes.watch: register a push-notification channel
- changes.list: drain every page since a cursor, return only the final cursor
- files.export: current HTML rendering of a Google Doc

Clients are built per invocation from the Credential Store; nothing here
holds a process-wide handle.
"""

import json
import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional

import httplib2
from google.auth.exceptions import RefreshError, TransportError
from google.auth.transport.requests import Request
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from app.config import Settings
from app.errors import AuthenticationRequired, UpstreamUnavailable, NotFound
from app.services.credential_store import CredentialStore, CredentialRecord

logger = logging.getLogger(__name__)

DOC_MIME_TYPE = "application/vnd.google-apps.document"

CHANGE_FIELDS = (
    "nextPageToken, newStartPageToken, "
    "changes(fileId, removed, file(name, mimeType, parents, trashed))"
)

RATE_LIMIT_REASONS = ("rateLimitExceeded", "userRateLimitExceeded")

# Changes channels may live up to a week; renewal runs daily
CHANNEL_TTL = timedelta(days=3)


@dataclass
class ChangeEvent:
    """One modified Drive resource between two cursors."""
    file_id: str
    name: str = ""
    mime_type: str = ""
    parents: list[str] = field(default_factory=list)
    removed: bool = False

    @classmethod
    def from_api(cls, change: dict) -> "ChangeEvent":
        file = change.get("file") or {}
        return cls(
            file_id=change.get("fileId", ""),
            name=file.get("name", ""),
            mime_type=file.get("mimeType", ""),
            parents=list(file.get("parents") or []),
            removed=bool(change.get("removed")) or bool(file.get("trashed")),
        )


@dataclass
class ChangeBatch:
    """All changes since a cursor, plus the cursor to resume from next time."""
    events: list[ChangeEvent]
    next_cursor: Optional[str]


@dataclass
class Subscription:
    """An active Drive push-notification channel."""
    channel_id: str
    resource_id: Optional[str]
    expiry: Optional[datetime]
    address: str

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.expiry is None:
            return False
        return (now or datetime.now(timezone.utc)) >= self.expiry

    def to_json(self) -> str:
        return json.dumps({
            "channel_id": self.channel_id,
            "resource_id": self.resource_id,
            "expiry": self.expiry.isoformat() if self.expiry else None,
            "address": self.address,
        })

    @classmethod
    def from_json(cls, raw: str) -> "Subscription":
        data = json.loads(raw)
        expiry = data.get("expiry")
        return cls(
            channel_id=data["channel_id"],
            resource_id=data.get("resource_id"),
            expiry=datetime.fromisoformat(expiry) if expiry else None,
            address=data.get("address", ""),
        )


def translate_http_error(exc: HttpError, action: str, not_found_statuses=(404,)):
    """Map a googleapiclient HttpError onto the pipeline error taxonomy."""
    status = exc.resp.status
    detail = f"{action} failed: HTTP {status}"

    if status == 403:
        content = exc.content.decode("utf-8", errors="ignore") if isinstance(exc.content, bytes) else str(exc.content)
        if any(reason in content for reason in RATE_LIMIT_REASONS):
            return UpstreamUnavailable(f"{detail} (rate limited)")
    if status in not_found_statuses:
        return NotFound(detail)
    if status in (401, 403):
        return AuthenticationRequired(detail)
    return UpstreamUnavailable(detail)


@contextmanager
def upstream_errors(action: str, not_found_statuses=(404,)):
    """Re-raise Google client exceptions as pipeline errors."""
    try:
        yield
    except HttpError as e:
        raise translate_http_error(e, action, not_found_statuses) from e
    except RefreshError as e:
        raise AuthenticationRequired(f"{action} failed: credentials rejected ({e})") from e
    except (TransportError, httplib2.HttpLib2Error, OSError) as e:
        raise UpstreamUnavailable(f"{action} failed: {e}") from e


def build_drive_client(store: CredentialStore, settings: Settings):
    """
    Create an authenticated Drive v3 client from the stored credentials.

    An expired access token is refreshed up front and the refreshed
    record is written back to the Credential Store.

    Raises:
        AuthenticationRequired: No credentials stored, or refresh impossible
    """
    record = store.get()
    if record is None:
        raise AuthenticationRequired("No Google credentials stored. Sign in via /auth first.")

    creds = record.to_google(settings)

    if not creds.valid:
        if not creds.refresh_token:
            raise AuthenticationRequired("Access token expired and no refresh token. Sign in via /auth.")
        with upstream_errors("Refresh access token"):
            creds.refresh(Request())
        store.put(CredentialRecord.from_google(creds))
        logger.info("🔄 Refreshed Google access token")

    return build("drive", "v3", credentials=creds, cache_discovery=False)


class DriveChangeSource:
    """Change-tracking operations against one authenticated Drive client."""

    def __init__(self, drive):
        self.drive = drive

    def issue_start_cursor(self) -> str:
        """Ask Drive for a 'changes from now on' page token."""
        with upstream_errors("Get start page token"):
            response = self.drive.changes().getStartPageToken().execute()
        return response["startPageToken"]

    def register_subscription(self, cursor: str, address: str) -> Subscription:
        """
        Start pushing change notifications for changes at/after cursor.

        Every call opens a new channel; earlier channels are left to expire.
        """
        now_ms = int(time.time() * 1000)
        channel_id = f"blog-channel-{now_ms}"
        body = {
            "id": channel_id,
            "type": "web_hook",
            "address": address,
            "expiration": str(now_ms + int(CHANNEL_TTL.total_seconds() * 1000)),
        }

        with upstream_errors("Register watch channel"):
            response = self.drive.changes().watch(pageToken=cursor, body=body).execute()

        expiration = response.get("expiration")
        expiry = (
            datetime.fromtimestamp(int(expiration) / 1000, tz=timezone.utc)
            if expiration else None
        )
        return Subscription(
            channel_id=response.get("id", channel_id),
            resource_id=response.get("resourceId"),
            expiry=expiry,
            address=address,
        )

    def list_changes(self, since: str) -> ChangeBatch:
        """
        Fetch every change since the given cursor.

        Follows nextPageToken until Drive returns newStartPageToken. If any
        page fails the error propagates and no cursor is returned at all.
        """
        events = []
        page_token = since

        while True:
            with upstream_errors("List changes"):
                response = self.drive.changes().list(
                    pageToken=page_token,
                    spaces="drive",
                    fields=CHANGE_FIELDS,
                ).execute()

            events.extend(ChangeEvent.from_api(c) for c in response.get("changes", []))

            if response.get("newStartPageToken"):
                return ChangeBatch(events=events, next_cursor=response["newStartPageToken"])

            page_token = response.get("nextPageToken")
            if not page_token:
                logger.warning("Change listing ended without newStartPageToken")
                return ChangeBatch(events=events, next_cursor=None)

    def export_document(self, file_id: str) -> str:
        """
        Export a Google Doc as HTML.

        Raises:
            NotFound: The document no longer exists or is not accessible
        """
        with upstream_errors(f"Export document {file_id}", not_found_statuses=(403, 404)):
            content = self.drive.files().export(fileId=file_id, mimeType="text/html").execute()

        if isinstance(content, bytes):
            return content.decode("utf-8", errors="replace")
        return content or ""
