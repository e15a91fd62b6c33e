"""
Credential Store - the single OAuth token record.

The record is written by the OAuth callback and read by every webhook
drain and renewal, each of which builds its own Google client from it.
"""

import json
import logging
from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Optional

from google.oauth2.credentials import Credentials
from sqlalchemy.orm import Session

from app.config import Settings
from app.services.state_service import TOKENS_KEY, get_setting, set_setting, delete_setting

logger = logging.getLogger(__name__)

TOKEN_URI = "https://oauth2.googleapis.com/token"

SCOPES = [
    "https://www.googleapis.com/auth/drive.readonly",
    "https://www.googleapis.com/auth/documents.readonly",
    "https://www.googleapis.com/auth/drive.appdata",
]


@dataclass
class CredentialRecord:
    """OAuth access/refresh token pair as persisted."""
    access_token: str
    refresh_token: Optional[str] = None
    expiry: Optional[datetime] = None
    scopes: list[str] = field(default_factory=list)

    @classmethod
    def from_google(cls, creds: Credentials) -> "CredentialRecord":
        return cls(
            access_token=creds.token,
            refresh_token=creds.refresh_token,
            expiry=creds.expiry,
            scopes=list(creds.scopes or []),
        )

    def to_google(self, settings: Settings) -> Credentials:
        """Build google-auth Credentials able to refresh themselves."""
        return Credentials(
            token=self.access_token,
            refresh_token=self.refresh_token,
            token_uri=TOKEN_URI,
            client_id=settings.google_client_id,
            client_secret=settings.google_client_secret,
            scopes=self.scopes or SCOPES,
            expiry=self.expiry,
        )

    def to_json(self) -> str:
        data = asdict(self)
        data["expiry"] = self.expiry.isoformat() if self.expiry else None
        return json.dumps(data)

    @classmethod
    def from_json(cls, raw: str) -> "CredentialRecord":
        data = json.loads(raw)
        expiry = data.get("expiry")
        return cls(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token"),
            expiry=datetime.fromisoformat(expiry) if expiry else None,
            scopes=data.get("scopes") or [],
        )


class CredentialStore:
    """Durable holder of the CredentialRecord (settings table)."""

    def __init__(self, db: Session):
        self.db = db

    def get(self) -> Optional[CredentialRecord]:
        raw = get_setting(self.db, TOKENS_KEY)
        if not raw:
            return None
        return CredentialRecord.from_json(raw)

    def put(self, record: CredentialRecord) -> None:
        set_setting(self.db, TOKENS_KEY, record.to_json())
        logger.info("Stored Google credentials (has_refresh_token=%s)", bool(record.refresh_token))

    def clear(self) -> bool:
        return delete_setting(self.db, TOKENS_KEY)
