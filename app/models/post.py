"""
Post model - the frontend-facing table.

One row per Google Doc in the watched folder. The primary key is the
Drive file id, so re-exporting the same document overwrites its row.

List View Fields:
- id, title, slug, snippet (derived), publish_date

Detail View Fields:
- html_content, status, drive_file_id
"""

from sqlalchemy import Column, String, Text, DateTime, Index
from sqlalchemy.sql import func
from app.database import Base
import enum


class PostStatus(str, enum.Enum):
    """Visibility of a post. Only PUBLISHED rows are listed."""
    PUBLISHED = "published"
    DRAFT = "draft"


class Post(Base):
    """
    A blog post rendered from a Google Doc.

    Each row = one post page on the blog.
    """
    __tablename__ = "posts"

    # Drive file id (stable across edits and renames)
    id = Column(String(128), primary_key=True)

    title = Column(String(512), nullable=False)
    slug = Column(String(512), nullable=False, index=True)
    html_content = Column(Text)

    publish_date = Column(DateTime(timezone=True), index=True)
    status = Column(String(20), default=PostStatus.PUBLISHED.value, index=True)
    drive_file_id = Column(String(128))

    created_at = Column(DateTime, server_default=func.now())
    last_updated = Column(DateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index("ix_posts_status_publish_date", "status", "publish_date"),
    )

    def __repr__(self):
        return f"<Post(id={self.id}, slug={self.slug})>"

    def to_full_dict(self) -> dict:
        """Return all fields for the post page."""
        return {
            "id": self.id,
            "title": self.title,
            "slug": self.slug,
            "htmlContent": self.html_content,
            "publishDate": self.publish_date.isoformat() if self.publish_date else None,
            "driveFileId": self.drive_file_id,
            "status": self.status,
        }
