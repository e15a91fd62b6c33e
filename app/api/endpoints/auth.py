"""
Google OAuth endpoints.

Flow:
1. GET /auth -> Redirects to Google consent screen
2. Google redirects back to /oauth2callback with code
3. /oauth2callback exchanges code for tokens, saves them and starts the Drive watch
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import RedirectResponse, PlainTextResponse
from sqlalchemy.orm import Session

from app.api.deps import get_context_factory
from app.config import Settings, get_settings
from app.database import get_db
from app.errors import BlogPipelineError
from app.services import sync_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Authentication"])


@router.get("/auth")
def login(settings: Settings = Depends(get_settings)):
    """
    Start OAuth flow - redirects to Google consent screen.

    After the user grants permission, Google redirects to /oauth2callback.
    """
    return RedirectResponse(url=sync_service.authorization_url(settings), status_code=302)


@router.get("/oauth2callback")
def oauth2callback(
    code: str = None,
    error: str = None,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    context_factory=Depends(get_context_factory),
):
    """
    OAuth callback - exchanges the code, stores credentials, establishes the watch.

    Returns:
    - 200: Authenticated and watching
    - 400: Consent denied or code missing
    - 500: Exchange or watch setup failed (with detail)
    """
    logger.info("--- Starting /oauth2callback ---")

    if error:
        return PlainTextResponse(f"Authentication was denied: {error}", status_code=400)
    if not code:
        return PlainTextResponse("Authorization code missing.", status_code=400)

    try:
        subscription = sync_service.authorize(db, settings, code, context_factory)
    except BlogPipelineError as e:
        logger.error("CRITICAL ERROR during OAuth callback: %s", e)
        return PlainTextResponse(f"Authentication failed: {e}", status_code=500)
    except Exception as e:
        logger.exception("Unexpected error during OAuth callback")
        return PlainTextResponse(f"Authentication failed: {e}", status_code=500)

    logger.info("Drive watch setup complete (channel %s)", subscription.channel_id)
    return PlainTextResponse(
        "Authentication successful! Drive watch initiated. You can close this tab.",
        status_code=200,
    )
