"""Sentry integration for error tracking and performance monitoring.

Sentry is only initialized when PGSCOPE_SENTRY_DSN is set. Without it the
sentry_sdk span and capture calls in the code are no-ops.
"""

import os

import sentry_sdk

from pgscope.__about__ import __version__

SENTRY_DSN_ENV = "PGSCOPE_SENTRY_DSN"


def setup_sentry(environment: str = "local") -> bool:
    """Initialize Sentry from the environment. Returns True if enabled."""
    dsn = os.environ.get(SENTRY_DSN_ENV)
    if not dsn:
        return False
    sentry_sdk.init(
        dsn=dsn,
        traces_sample_rate=0.03,
        environment=environment,
        release=f"pgscope@{__version__}",
        attach_stacktrace=True,
        send_default_pii=False,
    )
    return True
