"""
Read API for the blog frontend.

List View: id, title, slug, snippet, publishDate (published posts only)
Detail View: full post including sanitized htmlContent
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.database import get_db
from app.services import post_store
from app.services.html_sanitizer import html_to_snippet

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/posts", tags=["Posts"])


# ============ Response Schemas ============

class PostSummaryResponse(BaseModel):
    """One entry of the post listing."""
    id: str
    title: str
    slug: str
    snippet: str
    publishDate: Optional[str]


class PostResponse(BaseModel):
    """Complete post for the detail page."""
    id: str
    title: str
    slug: str
    htmlContent: Optional[str]
    publishDate: Optional[str]
    driveFileId: Optional[str]
    status: Optional[str]


# ============ LIST ============

@router.get("", response_model=list[PostSummaryResponse])
def list_posts(db: Session = Depends(get_db)):
    """
    List published posts, newest first.

    Draft posts are never included.
    """
    try:
        posts = post_store.list_published_posts(db)
    except SQLAlchemyError as e:
        logger.error("Error fetching posts: %s", e)
        return PlainTextResponse("Error fetching posts.", status_code=500)

    return [
        PostSummaryResponse(
            id=post.id,
            title=post.title,
            slug=post.slug,
            snippet=html_to_snippet(post.html_content),
            publishDate=post.publish_date.isoformat() if post.publish_date else None,
        )
        for post in posts
    ]


# ============ SINGLE POST ============

@router.get("/{slug}", response_model=PostResponse)
def get_post(slug: str, db: Session = Depends(get_db)):
    """
    Get a single post by slug.

    **Returns:**
    - 200: Full post
    - 404: No post with this slug
    """
    try:
        post = post_store.get_post_by_slug(db, slug)
    except SQLAlchemyError as e:
        logger.error("Error fetching single post: %s", e)
        return PlainTextResponse("Error fetching post.", status_code=500)

    if not post:
        return PlainTextResponse("Post not found.", status_code=404)

    return PostResponse(**post.to_full_dict())
