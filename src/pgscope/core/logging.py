"""Logging configuration using structlog.

Logs go to stderr so stdout only carries query output.
"""

import logging
import sys
from typing import Any

import structlog


class _CurrentStderrFactory:
    """Look up sys.stderr each time a logger is created.

    Test runners swap sys.stderr between invocations; binding the stream
    once at configure() time would write to a closed handle.
    """

    def __call__(self, *args: Any, **kwargs: Any) -> structlog.PrintLogger:
        return structlog.PrintLogger(file=sys.stderr)


def setup_logging(verbose: bool = False, *, json_output: bool = False) -> None:
    """Configure structlog for pgscope.

    Args:
        verbose: DEBUG level when True, WARNING otherwise so normal
            command output is not interleaved with session chatter.
        json_output: Render one JSON object per line instead of the
            console format.
    """
    level = logging.DEBUG if verbose else logging.WARNING
    renderer: Any
    if json_output:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=_CurrentStderrFactory(),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str | None = None) -> Any:
    """Get a structlog logger, optionally bound with a name.

    Call inside functions, after setup_logging(), never at import time.
    """
    logger = structlog.get_logger()
    if name:
        logger = logger.bind(logger=name)
    return logger
