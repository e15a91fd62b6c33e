"""
Publication Store - database operations for blog posts.

- upsert_post: Insert or fully replace a post keyed by Drive file id
- list_published_posts: Listing query (published only, newest first)
- get_post_by_slug / get_post: Single post lookups
- slugify: Deterministic slug derivation from a title
"""

import re
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError

from app.models.post import Post, PostStatus

logger = logging.getLogger(__name__)

_NON_ALPHANUMERIC = re.compile(r"[^a-z0-9]+")


def slugify(title: str) -> str:
    """
    Derive a URL slug from a post title.

    "My First Post!" -> "my-first-post"
    """
    return _NON_ALPHANUMERIC.sub("-", (title or "").lower()).strip("-")


@dataclass
class PostData:
    """Everything needed to write one post row."""
    id: str
    title: str
    slug: str
    html_content: str
    publish_date: datetime
    status: str = PostStatus.PUBLISHED.value

    @property
    def drive_file_id(self) -> str:
        return self.id


def _apply(post: Post, data: PostData) -> None:
    post.title = data.title
    post.slug = data.slug
    post.html_content = data.html_content
    post.publish_date = data.publish_date
    post.status = data.status
    post.drive_file_id = data.drive_file_id


# ============ WRITE ============

def upsert_post(db: Session, data: PostData) -> Post:
    """
    Insert or replace a post.

    Upsert logic:
    - If a post with the same id (Drive file id) exists -> overwrite its fields
    - Otherwise -> create it

    Writing the same PostData twice leaves the same row behind.
    """
    existing = db.get(Post, data.id)

    if existing:
        _apply(existing, data)
        db.commit()
        db.refresh(existing)
        return existing

    post = Post(id=data.id)
    _apply(post, data)
    db.add(post)

    try:
        db.commit()
    except IntegrityError:
        # Race condition - an overlapping drain inserted it first
        db.rollback()
        post = db.get(Post, data.id)
        _apply(post, data)
        db.commit()

    db.refresh(post)
    return post


# ============ READ ============

def list_published_posts(db: Session) -> list[Post]:
    """Published posts, newest publish date first."""
    return (
        db.query(Post)
        .filter(Post.status == PostStatus.PUBLISHED.value)
        .order_by(Post.publish_date.desc().nulls_last())
        .all()
    )


def get_post_by_slug(db: Session, slug: str) -> Optional[Post]:
    """
    Find a post by slug.

    Slugs are not unique; when several posts share one, the most recently
    published wins.
    """
    return (
        db.query(Post)
        .filter(Post.slug == slug)
        .order_by(Post.publish_date.desc().nulls_last())
        .first()
    )


def get_post(db: Session, post_id: str) -> Optional[Post]:
    """Get a single post by Drive file id."""
    return db.get(Post, post_id)
