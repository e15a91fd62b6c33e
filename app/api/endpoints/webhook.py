"""
Google Drive Push Notification Webhook

Drive calls this endpoint whenever something changes for the watched
account. The request carries only channel metadata in X-Goog-* headers;
the actual changes are pulled from the Changes API.

Pipeline:
1. Acknowledge with 200 immediately (Drive retries slow deliveries)
2. Drain changes in a background task with its own DB session
"""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from fastapi.responses import PlainTextResponse

from app.api.deps import get_context_factory
from app.config import Settings, get_settings
from app.database import get_session_factory
from app.services.sync_service import process_webhook_delivery

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Drive Push"])


@router.post("/webhook")
def drive_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    settings: Settings = Depends(get_settings),
    session_factory=Depends(get_session_factory),
    context_factory=Depends(get_context_factory),
):
    """
    Webhook endpoint for Drive changes.watch notifications.

    Every delivery triggers a drain, whatever its resource state
    ("sync", "change", ...). The response never reflects the drain outcome.
    """
    headers = request.headers
    logger.info(
        "📨 Drive notification: channel=%s state=%s message=%s",
        headers.get("x-goog-channel-id"),
        headers.get("x-goog-resource-state"),
        headers.get("x-goog-message-number"),
    )

    background_tasks.add_task(process_webhook_delivery, session_factory, settings, context_factory)
    return PlainTextResponse("OK", status_code=200)
