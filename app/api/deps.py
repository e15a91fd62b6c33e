"""Shared FastAPI dependencies for the sync pipeline."""

from app.services.sync_service import ContextFactory, open_context


def get_context_factory() -> ContextFactory:
    """
    How each invocation builds its Drive context.

    Tests override this to inject a fake change source.
    """
    return open_context
