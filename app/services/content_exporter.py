"""
Content Exporter: Drive export -> sanitized post HTML.
"""

import logging

from app.services.html_sanitizer import clean_html

logger = logging.getLogger(__name__)


def export_post_html(source, file_id: str) -> str:
    """
    Export a Google Doc and sanitize it for publishing.

    Args:
        source: DriveChangeSource (or anything with export_document)
        file_id: Drive file id of the document

    Raises:
        NotFound: The document no longer exists or is inaccessible
    """
    raw_html = source.export_document(file_id)
    cleaned = clean_html(raw_html)
    logger.debug("Exported %s: %d bytes raw, %d bytes sanitized", file_id, len(raw_html), len(cleaned))
    return cleaned
