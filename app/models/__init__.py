"""
SQLAlchemy models for the blog pipeline.

This package contains:
- Post: Published blog posts keyed by Drive file id (frontend data)
- Setting: Singleton key-value state (credentials, cursor, watch channel)
"""

from app.models.post import Post, PostStatus
from app.models.setting import Setting

__all__ = ["Post", "PostStatus", "Setting"]
