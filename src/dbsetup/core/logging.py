"""structlog setup for dbsetup.

Logs go to stderr; stdout carries only command output such as the
export summary. Every module obtains its logger through get_logger()
so records carry the emitting component.
"""

import logging
import sys
from typing import Any

import structlog


class _LazyStderrFactory:
    """Resolve sys.stderr per logger rather than once at configure() time.

    CliRunner swaps and closes stderr between invocations, so a handle
    captured at configuration would go stale.
    """

    def __call__(self, *args: Any, **kwargs: Any) -> structlog.PrintLogger:
        return structlog.PrintLogger(file=sys.stderr)


def setup_logging(verbose: bool = False) -> None:
    """Configure structlog. ``verbose`` lowers the threshold from INFO to DEBUG."""
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.DEBUG if verbose else logging.INFO
        ),
        context_class=dict,
        logger_factory=_LazyStderrFactory(),
        cache_logger_on_first_use=False,
    )


def get_logger(component: str, **context: Any) -> Any:
    """Return a logger bound to ``component`` and any extra context.

    Call inside functions, not at import time, so the logger picks up
    the configuration from setup_logging().
    """
    return structlog.get_logger().bind(component=component, **context)
