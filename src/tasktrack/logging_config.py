"""structlog setup.

Console rendering in development, one JSON object per line everywhere else.
Request-scoped values (request_id) come from structlog.contextvars, bound by
RequestIdMiddleware.
"""

import logging

import structlog


def configure_logging(environment: str = "development", debug: bool = False) -> None:
    level = logging.DEBUG if debug else logging.INFO
    renderer = (
        structlog.dev.ConsoleRenderer()
        if environment == "development"
        else structlog.processors.JSONRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=True,
    )
