"""
Sync management endpoints.

- GET /api/sync/status: current pipeline phase and watch channel
- POST /api/sync/renew: re-establish the Drive watch now
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.api.deps import get_context_factory
from app.config import Settings, get_settings
from app.database import get_db
from app.errors import AuthenticationRequired, UpstreamUnavailable, BlogPipelineError
from app.services import sync_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sync", tags=["Sync"])


@router.get("/status")
def sync_status(db: Session = Depends(get_db)):
    """Report whether the pipeline is signed in and watching."""
    watch = sync_service.current_watch(db)
    return {
        "phase": sync_service.current_phase(db).value,
        "channel_id": watch.channel_id if watch else None,
        "expiry": watch.expiry.isoformat() if watch and watch.expiry else None,
        "address": watch.address if watch else None,
    }


@router.post("/renew")
def renew(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    context_factory=Depends(get_context_factory),
):
    """
    Re-establish the Drive watch (fresh cursor + new channel).

    Same operation as the daily scheduled renewal.
    """
    try:
        subscription = sync_service.renew_watch(db, settings, context_factory)
    except AuthenticationRequired as e:
        raise HTTPException(status_code=401, detail=str(e))
    except UpstreamUnavailable as e:
        raise HTTPException(status_code=502, detail=str(e))
    except BlogPipelineError as e:
        raise HTTPException(status_code=500, detail=f"Failed to renew Drive watch: {e}")

    return {
        "status": "success",
        "message": "Drive watch re-established",
        "channel_id": subscription.channel_id,
        "expiry": subscription.expiry.isoformat() if subscription.expiry else None,
    }
