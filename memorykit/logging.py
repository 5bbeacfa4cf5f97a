import logging
import sys

import structlog


_configured = False


def configure_logging(level: str = "INFO", force: bool = False):
    """Configure structured logging for applications using the client.

    The library itself never calls this; the host application (or the
    ``memorykit`` CLI) decides how log output is rendered.

    NOTE:
        Handlers are bound to ``sys.__stderr__`` instead of ``sys.stderr``.
        Click's ``CliRunner`` replaces and later closes ``sys.stderr``, and a
        handler bound to that temporary stream would fail on the next write.
    """
    global _configured
    if _configured and not force:
        return

    log_level = getattr(logging, level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.__stderr__)
    handler.setLevel(log_level)
    logging.basicConfig(
        level=log_level, handlers=[handler], format="%(message)s", force=force
    )

    # Quiet down noisy third-party loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _configured = True


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """
    Get a logger instance.

    Args:
        name: Optional name for the logger (usually __name__)

    Returns:
        A structlog logger
    """
    return structlog.get_logger(name)
