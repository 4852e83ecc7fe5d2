"""
Logging Configuration for the Checkout Analytics service

structlog and stdlib records share one handler and one renderer. Every
line carries the service name, version and environment; request-scoped
fields (request_id, account_id) are merged from contextvars.
"""

import logging
import sys
from typing import Optional, TextIO

import structlog
from structlog.processors import JSONRenderer, TimeStamper
from structlog.stdlib import add_log_level, ProcessorFormatter

from checkout_analytics.config.settings import Settings, get_settings

# Loggers that otherwise keep their own handlers or default levels
UVICORN_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")
SQL_LOGGER = "sqlalchemy.engine"


def service_context(settings: Settings) -> structlog.types.Processor:
    """Processor stamping service identity on every event"""
    fields = {
        "service": settings.app_name,
        "version": settings.version,
        "environment": settings.app_env,
    }

    def add_service_context(logger, method_name, event_dict):
        for key, value in fields.items():
            event_dict.setdefault(key, value)
        return event_dict

    return add_service_context


def build_renderer(log_format: str) -> structlog.types.Processor:
    """JSON lines in deployed environments, console output for 'text'"""
    if log_format == "text":
        return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
    return JSONRenderer()


def configure_logging(
    log_level: Optional[str] = None,
    log_format: Optional[str] = None,
    stream: Optional[TextIO] = None,
) -> None:
    """
    Configure structured logging for the service.

    Args:
        log_level: Override MonitoringSettings.log_level
        log_format: Override MonitoringSettings.log_format (json or text)
        stream: Output stream, stdout by default
    """
    settings = get_settings()
    level = (log_level or settings.monitoring.log_level).upper()
    log_format = log_format or settings.monitoring.log_format
    numeric_level = getattr(logging, level, logging.INFO)

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        service_context(settings),
        structlog.stdlib.add_logger_name,
        add_log_level,
        TimeStamper(fmt="iso", utc=True),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    structlog.configure(
        processors=shared_processors + [ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setLevel(numeric_level)
    handler.setFormatter(
        ProcessorFormatter(
            processors=[
                ProcessorFormatter.remove_processors_meta,
                build_renderer(log_format),
            ],
            foreign_pre_chain=shared_processors,
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(numeric_level)

    for name in UVICORN_LOGGERS:
        uvicorn_logger = logging.getLogger(name)
        uvicorn_logger.handlers = []
        uvicorn_logger.propagate = True

    # SQL statements are logged only when POSTGRES_ECHO is on
    logging.getLogger(SQL_LOGGER).setLevel(
        logging.INFO if settings.database.echo else logging.WARNING
    )

    structlog.get_logger(__name__).info(
        "Logging configured",
        level=level,
        format=log_format,
    )
