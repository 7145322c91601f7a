"""Sentry integration for error tracking and performance monitoring.

Sentry is initialized in the CLI callback right after logging setup.
Without a configured DSN the SDK stays disabled and spans are no-ops.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import sentry_sdk

from dbsetup.__about__ import __version__

if TYPE_CHECKING:
    from dbsetup.core.config import Settings


def setup_sentry(settings: Settings) -> bool:
    """Initialize Sentry when a DSN is configured. Returns True if enabled."""
    if not settings.sentry_dsn:
        return False
    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        traces_sample_rate=0.05,
        environment=settings.sentry_environment,
        release=__version__,
        attach_stacktrace=True,
        send_default_pii=False,
    )
    return True
