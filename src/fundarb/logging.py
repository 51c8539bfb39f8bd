"""structlog setup for the engine, the venue adapters and the dashboard.

Events are snake_case with key/value context, e.g.
``logger.warning("venue_fetch_failed", venue="Aster", error=...)`` or
``logger.info("lighter_state_changed", previous="Connecting", state="Connected")``.
Everything is routed through stdlib logging so uvicorn and the HTTP/websocket
libraries share one handler and one renderer.
"""

import logging

import structlog

# One line per HTTP request / websocket frame at INFO; only their warnings matter
_QUIET_LOGGERS = ("httpx", "httpcore", "websockets")


def _renderer(log_format: str) -> structlog.types.Processor:
    if log_format.lower() == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer()


def setup_logging(log_level: str = "INFO", log_format: str = "console") -> None:
    """Configure structlog and the root stdlib logger.

    Args:
        log_level: Root level name; unknown names fall back to INFO.
        log_format: "json" for one JSON object per line, anything else for
            the human-readable console renderer.
    """
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(log_format),
            ],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger named after the calling module."""
    return structlog.get_logger(name)
