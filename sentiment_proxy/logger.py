"""
Logging configuration using structlog.
Console output in development, JSON lines everywhere else.
"""

import logging
import sys
from typing import Any, List, Optional

import structlog
from structlog.types import EventDict, Processor

from sentiment_proxy.settings import Settings, settings

SENSITIVE_KEYS = {
    "password",
    "token",
    "api_key",
    "key",
    "secret",
    "auth",
    "authorization",
    "subscription",
}


def add_service_context(
    logger: Any, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add service-level context to all log entries"""
    event_dict["service"] = settings.app_name
    event_dict["version"] = settings.version
    event_dict["environment"] = settings.environment
    return event_dict


def filter_sensitive_data(
    logger: Any, method_name: str, event_dict: EventDict
) -> EventDict:
    """Mask credentials before they reach any renderer"""

    def mask_value(key: str, value: Any) -> Any:
        if isinstance(key, str) and any(
            sensitive in key.lower() for sensitive in SENSITIVE_KEYS
        ):
            return "[REDACTED]"
        return value

    def mask_dict(d: EventDict) -> EventDict:
        return {
            k: mask_value(k, mask_dict(v) if isinstance(v, dict) else v)
            for k, v in d.items()
        }

    return mask_dict(event_dict)


def build_processors(config: Settings) -> List[Processor]:
    processors: List[Processor] = [
        structlog.contextvars.merge_contextvars,
        add_service_context,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        filter_sensitive_data,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if config.log_format == "json" or config.environment != "development":
        # JSON output for production (Loki-friendly)
        processors.append(structlog.processors.JSONRenderer(sort_keys=True))
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    return processors


def configure_logging(config: Optional[Settings] = None):
    """Configure structlog and the stdlib root logger"""
    config = config or settings

    structlog.configure(
        processors=build_processors(config),
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, config.log_level.upper(), logging.INFO),
    )

    # Reduce noise from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    """Get a configured logger instance"""
    return structlog.get_logger(name)
