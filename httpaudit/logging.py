"""
Audit Logging Setup
===================
structlog configuration for the console route and the package's own
diagnostics.

Usage:
    from httpaudit.logging import create_logger

    audit_logger = create_logger(service_name="smsly-sms")
    app.add_middleware(AuditMiddleware, logger=audit_logger, options=options)
"""

import logging
import sys
from typing import Any, Callable, Dict, List, Optional, TextIO

import structlog

Processor = Callable[[Any, str, Dict[str, Any]], Any]


def _add_service(service_name: str) -> Processor:
    def processor(_logger: Any, _method: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
        event_dict.setdefault("service", service_name)
        return event_dict
    return processor


def build_processors(service_name: str, json_output: bool = True) -> List[Processor]:
    """Processor chain shared by the global config and explicit loggers."""
    processors: List[Processor] = [
        structlog.contextvars.merge_contextvars,
        _add_service(service_name),
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if json_output:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))
    return processors


def _level(level: str) -> int:
    return getattr(logging, level.upper(), logging.INFO)


def create_logger(
    service_name: str,
    level: str = "INFO",
    json_output: bool = True,
    stream: Optional[TextIO] = None,
) -> Any:
    """
    Build a standalone structlog logger writing one line per event.

    The logger does not touch structlog's global configuration, so it can be
    handed to the middleware as an explicit dependency.

    Args:
        service_name: Name of the service (e.g., "smsly-sms")
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: JSON lines when True, key=value console lines otherwise
        stream: Destination text stream (default: stdout)
    """
    return structlog.wrap_logger(
        structlog.PrintLogger(stream or sys.stdout),
        processors=build_processors(service_name, json_output),
        wrapper_class=structlog.make_filtering_bound_logger(_level(level)),
        cache_logger_on_first_use=True,
    )


def configure_logging(
    service_name: str,
    level: str = "INFO",
    json_output: bool = True,
    stream: Optional[TextIO] = None,
) -> Any:
    """
    Configure structlog globally for the package's module loggers.

    Returns:
        A logger bound to ``httpaudit``
    """
    structlog.configure(
        processors=build_processors(service_name, json_output),
        wrapper_class=structlog.make_filtering_bound_logger(_level(level)),
        logger_factory=structlog.PrintLoggerFactory(stream or sys.stdout),
        cache_logger_on_first_use=False,
    )
    logger = structlog.get_logger("httpaudit")
    logger.info("logging_configured", level=level.upper(), json_output=json_output)
    return logger


def get_logger(name: str) -> Any:
    """Get a logger with the given name."""
    return structlog.get_logger(name)
