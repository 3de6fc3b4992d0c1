from __future__ import annotations

from storefront.core.config import Settings, settings as default_settings
from storefront.core.context import CoreContext, create_context
from storefront.core.logging import configure_logging


def bootstrap(settings: Settings | None = None) -> CoreContext:
    """Configure logging and start the core for the storefront process.

    Call once at startup; calling again configures a fresh context, so keep
    the returned one and pass it to the code that needs caching or limits.

    Returns:
        Initialized CoreContext with its background sweeps running.
    """
    cfg = settings or default_settings

    # Logging first so subsequent init logs are formatted as desired
    configure_logging(cfg.log)

    return create_context(cfg).initialize()
