"""
Drive -> blog sync orchestration.

State machine:
    UNAUTHENTICATED --authorize(code)--> AUTHENTICATED_NO_WATCH
    AUTHENTICATED_NO_WATCH --establish_watch--> WATCHING
    WATCHING --renew_watch (daily)--> WATCHING
    WATCHING --webhook delivery (drain_changes)--> WATCHING

Every invocation builds its own SyncContext (DB session, Drive client,
cursor store) from durable state. Nothing is shared between invocations,
so overlapping webhook deliveries are safe: they may re-process the same
changes, and upserts keyed by Drive file id make that harmless.

Drain pipeline:
1. Read cursor (absent -> re-establish watch, stop)
2. List all changes since the cursor
3. Keep Google Docs inside the target folder
4. Export -> sanitize -> slug -> upsert, one document at a time
5. Advance the cursor (last step, only if listing produced one)
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional

from google_auth_oauthlib.flow import Flow
from oauthlib.oauth2.rfc6749.errors import OAuth2Error
from requests.exceptions import RequestException
from sqlalchemy.orm import Session, sessionmaker

from app.config import Settings
from app.errors import AuthenticationRequired, BlogPipelineError, UpstreamUnavailable
from app.services.content_exporter import export_post_html
from app.services.credential_store import CredentialStore, CredentialRecord, SCOPES, TOKEN_URI
from app.services.cursor_store import CursorStore, build_cursor_store
from app.services.drive_service import (
    DOC_MIME_TYPE,
    ChangeEvent,
    DriveChangeSource,
    Subscription,
    build_drive_client,
)
from app.services.post_store import PostData, slugify, upsert_post
from app.services.state_service import WATCH_CHANNEL_KEY, get_setting, set_setting

logger = logging.getLogger(__name__)

AUTH_URI = "https://accounts.google.com/o/oauth2/auth"


class SyncPhase(str, Enum):
    """Where the pipeline stands, derived from durable state."""
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED_NO_WATCH = "authenticated_no_watch"
    WATCHING = "watching"


@dataclass
class SyncContext:
    """Per-invocation collaborators."""
    db: Session
    settings: Settings
    source: DriveChangeSource
    cursors: CursorStore


@dataclass
class DrainResult:
    """Outcome of one drain, for logs and callers."""
    cursor_before: Optional[str] = None
    cursor_after: Optional[str] = None
    changes_seen: int = 0
    skipped: int = 0
    published: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    rewatched: bool = False

    def to_dict(self) -> dict:
        return {
            "cursor_before": self.cursor_before,
            "cursor_after": self.cursor_after,
            "changes_seen": self.changes_seen,
            "skipped": self.skipped,
            "published": self.published,
            "failed": self.failed,
            "rewatched": self.rewatched,
        }


ContextFactory = Callable[[Session, Settings], SyncContext]


def open_context(db: Session, settings: Settings) -> SyncContext:
    """
    Build a SyncContext from the stored credentials.

    Raises:
        AuthenticationRequired: No usable credentials stored
    """
    drive = build_drive_client(CredentialStore(db), settings)
    return SyncContext(
        db=db,
        settings=settings,
        source=DriveChangeSource(drive),
        cursors=build_cursor_store(settings, db, drive),
    )


# ============ AUTHORIZATION ============

def build_oauth_flow(settings: Settings) -> Flow:
    """OAuth web flow built from the configured client id/secret."""
    client_config = {
        "web": {
            "client_id": settings.google_client_id,
            "client_secret": settings.google_client_secret,
            "auth_uri": AUTH_URI,
            "token_uri": TOKEN_URI,
            "redirect_uris": [settings.google_redirect_uri],
        }
    }
    return Flow.from_client_config(
        client_config,
        scopes=SCOPES,
        redirect_uri=settings.google_redirect_uri,
        autogenerate_code_verifier=False,
    )


def authorization_url(settings: Settings) -> str:
    """Consent screen URL. Offline access + forced consent yields a refresh token."""
    auth_url, _state = build_oauth_flow(settings).authorization_url(
        access_type="offline",
        prompt="consent",
    )
    return auth_url


def authorize(
    db: Session,
    settings: Settings,
    code: str,
    context_factory: ContextFactory = open_context,
) -> Subscription:
    """
    Exchange a one-time authorization code, store credentials, start watching.

    Raises:
        AuthenticationRequired: Google rejected the code
        UpstreamUnavailable: Token endpoint or Drive unreachable
    """
    logger.info("Step 1: Exchanging authorization code for tokens...")
    flow = build_oauth_flow(settings)
    try:
        flow.fetch_token(code=code)
    except OAuth2Error as e:
        raise AuthenticationRequired(f"Authorization code rejected: {e.error}") from e
    except RequestException as e:
        raise UpstreamUnavailable(f"Token exchange failed: {e}") from e

    logger.info("Step 2: Saving tokens...")
    CredentialStore(db).put(CredentialRecord.from_google(flow.credentials))

    logger.info("Step 3: Setting up Drive watch...")
    return establish_watch(context_factory(db, settings))


# ============ WATCH LIFECYCLE ============

def establish_watch(ctx: SyncContext) -> Subscription:
    """
    Seed a fresh cursor and register a new push channel.

    Safe to repeat: it only replaces the cursor and opens another channel.
    If interrupted, the next renewal starts over from the beginning.
    """
    cursor = ctx.source.issue_start_cursor()
    logger.info("Current startPageToken from Drive: %s", cursor)
    ctx.cursors.put(cursor)

    logger.info(
        "Setting up watch on folder %s with webhook %s",
        ctx.settings.drive_folder_id, ctx.settings.webhook_url,
    )
    subscription = ctx.source.register_subscription(cursor, ctx.settings.webhook_url)
    set_setting(ctx.db, WATCH_CHANNEL_KEY, subscription.to_json())

    logger.info(
        "✅ Drive watch established: channel=%s expires=%s",
        subscription.channel_id,
        subscription.expiry.isoformat() if subscription.expiry else "unknown",
    )
    return subscription


def renew_watch(
    db: Session,
    settings: Settings,
    context_factory: ContextFactory = open_context,
) -> Subscription:
    """
    Re-run establish_watch unconditionally.

    Raises:
        AuthenticationRequired: No credentials stored (state is left unchanged)
    """
    return establish_watch(context_factory(db, settings))


def current_watch(db: Session) -> Optional[Subscription]:
    """The last registered channel, if any."""
    raw = get_setting(db, WATCH_CHANNEL_KEY)
    return Subscription.from_json(raw) if raw else None


def current_phase(db: Session, now: Optional[datetime] = None) -> SyncPhase:
    """Derive the state-machine phase from what is stored."""
    if CredentialStore(db).get() is None:
        return SyncPhase.UNAUTHENTICATED

    watch = current_watch(db)
    if watch is None or watch.is_expired(now):
        return SyncPhase.AUTHENTICATED_NO_WATCH
    return SyncPhase.WATCHING


# ============ DRAIN ============

def is_in_scope(event: ChangeEvent, folder_id: str) -> bool:
    """A Google Doc (not removed) whose parents include the target folder."""
    return (
        not event.removed
        and event.mime_type == DOC_MIME_TYPE
        and folder_id in event.parents
    )


def publish_document(ctx: SyncContext, event: ChangeEvent):
    """Export one document and upsert it as a published post."""
    html_content = export_post_html(ctx.source, event.file_id)
    title = event.name
    slug = slugify(title) or event.file_id

    return upsert_post(ctx.db, PostData(
        id=event.file_id,
        title=title,
        slug=slug,
        html_content=html_content,
        publish_date=datetime.now(timezone.utc),
    ))


def drain_changes(ctx: SyncContext) -> DrainResult:
    """
    Process every change since the stored cursor.

    A failing document is logged and skipped; the rest of the batch still
    runs and the cursor still advances. If listing fails, the error
    propagates and the stored cursor is untouched.
    """
    result = DrainResult()

    cursor = ctx.cursors.get()
    if not cursor:
        logger.error("No startPageToken found. Re-establishing Drive watch.")
        establish_watch(ctx)
        result.rewatched = True
        return result

    result.cursor_before = cursor
    batch = ctx.source.list_changes(cursor)
    result.changes_seen = len(batch.events)
    logger.info("📊 Found %d changes since cursor %s", len(batch.events), cursor)

    for event in batch.events:
        if not is_in_scope(event, ctx.settings.drive_folder_id):
            result.skipped += 1
            logger.debug("Skipping out-of-scope change %s (%s)", event.file_id, event.mime_type or "removed")
            continue

        logger.info("Processing Google Doc: %s (ID: %s)", event.name, event.file_id)
        try:
            post = publish_document(ctx, event)
        except Exception as e:
            ctx.db.rollback()
            result.failed.append(event.file_id)
            logger.error("❌ Error processing Google Doc %s (%s): %s", event.name, event.file_id, e)
            continue

        result.published.append(event.file_id)
        logger.info("✅ Blog post '%s' saved as /%s", post.title, post.slug)

    if batch.next_cursor:
        ctx.cursors.put(batch.next_cursor)
        result.cursor_after = batch.next_cursor
    else:
        logger.warning("newStartPageToken was empty, not updating cursor.")
        result.cursor_after = cursor

    return result


# ============ DETACHED ENTRY POINTS ============

def process_webhook_delivery(
    session_factory: sessionmaker,
    settings: Settings,
    context_factory: ContextFactory = open_context,
) -> Optional[DrainResult]:
    """
    Drain triggered by a webhook, run after the delivery was acknowledged.

    Opens and closes its own DB session. Failures are logged only; the
    next delivery or renewal retries from the stored cursor.
    """
    db = session_factory()
    try:
        result = drain_changes(context_factory(db, settings))
        logger.info("Webhook drain finished: %s", result.to_dict())
        return result
    except AuthenticationRequired as e:
        logger.error("Webhook drain skipped, authentication required: %s", e)
    except BlogPipelineError as e:
        logger.error("Webhook drain failed: %s", e)
    except Exception:
        logger.exception("Unexpected error in webhook processing")
    finally:
        db.close()
    return None


def run_scheduled_renewal(
    session_factory: sessionmaker,
    settings: Settings,
    context_factory: ContextFactory = open_context,
) -> Optional[Subscription]:
    """Daily renewal job. Failures are logged; the next run starts from scratch."""
    logger.info("Running scheduled task to re-establish Drive watch...")
    db = session_factory()
    try:
        subscription = renew_watch(db, settings, context_factory)
        logger.info("Drive watch successfully re-initialized.")
        return subscription
    except BlogPipelineError as e:
        logger.error("Scheduled watch renewal failed: %s", e)
    except Exception:
        logger.exception("Unexpected error in scheduled watch renewal")
    finally:
        db.close()
    return None
