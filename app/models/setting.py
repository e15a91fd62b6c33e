"""
Setting model for singleton pipeline state.

Used to store (fixed keys):
- google_tokens: OAuth credential record (JSON)
- start_page_token: Drive change cursor, when CURSOR_BACKEND=database
- watch_channel: last registered Drive watch channel (JSON, status only)
"""

from sqlalchemy import Column, Integer, String, Text, DateTime
from sqlalchemy.sql import func
from app.database import Base


class Setting(Base):
    """
    Key-value store for singleton settings.

    Persists across server restarts, unlike in-memory variables.
    """
    __tablename__ = "settings"

    id = Column(Integer, primary_key=True)
    key = Column(String(50), unique=True, nullable=False, index=True)
    value = Column(Text)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<Setting(key={self.key})>"
