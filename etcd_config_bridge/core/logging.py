import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional

PACKAGE_LOGGER = "etcd_config_bridge"

# LogRecord attributes that never make it into the JSON document.
_RECORD_ATTRS = frozenset(
    {
        "args",
        "asctime",
        "created",
        "exc_info",
        "exc_text",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "message",
        "msg",
        "name",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "taskName",
        "thread",
        "threadName",
    }
)


class ContextFilter(logging.Filter):
    """Filter that adds service and environment context to all log records"""

    def __init__(self, service_name: str, service_version: str, environment: str):
        super().__init__()
        self.service_name = service_name
        self.service_version = service_version
        self.environment = environment

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "service"):
            record.service = {
                "name": self.service_name,
                "version": self.service_version,
            }
        if not hasattr(record, "environment"):
            record.environment = self.environment
        return True


def get_application_name() -> str:
    """Get application name from environment or default"""
    return os.getenv("APPLICATION_NAME", "EtcdConfigBridge")


def get_environment() -> str:
    """Get environment from environment or default"""
    return os.getenv("ENVIRONMENT", "development")


def get_application_version() -> str:
    """Get application version from environment or default"""
    return os.getenv("APPLICATION_VERSION", "0.0.1")


class SerilogLikeJSONFormatter(logging.Formatter):
    SERILOG_LEVELS = {
        "CRITICAL": "Fatal",
        "ERROR": "Error",
        "WARNING": "Warning",
        "INFO": "Information",
        "DEBUG": "Debug",
        "NOTSET": "Verbose",
    }

    def __init__(self, include_ecs_version: Optional[str] = "8.10.0"):
        super().__init__()
        self.include_ecs_version = include_ecs_version

    def format(self, record: logging.LogRecord) -> str:
        doc: Dict[str, Any] = {
            "@timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc)
            .isoformat(timespec="milliseconds")
            .replace("+00:00", "Z"),
            "level": self.SERILOG_LEVELS.get(
                record.levelname.upper(), record.levelname.title()
            ),
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            doc["exception"] = self.formatException(record.exc_info)
            exc_type = (
                record.exc_info[0].__name__ if record.exc_info[0] else "Exception"
            )
            exc_msg = str(record.exc_info[1]) if record.exc_info[1] else doc["message"]
            doc.setdefault("error", {})
            if isinstance(doc["error"], dict):
                doc["error"].update(
                    {
                        "type": exc_type,
                        "message": exc_msg,
                        "stack_trace": doc["exception"],
                    }
                )

        for k, v in record.__dict__.items():
            if k not in _RECORD_ATTRS and k not in doc:
                doc[k] = v

        if self.include_ecs_version:
            doc["ecs.version"] = self.include_ecs_version

        return json.dumps(doc, ensure_ascii=False, default=str)


def setup_logging(
    level: str = "INFO",
    http_level: Optional[str] = None,
    application_name: Optional[str] = None,
    extra_loggers: Optional[Iterable[str]] = None,
) -> None:
    """Install the JSON stdout handler on the root and bridge loggers.

    Args:
        level: level for the root logger and ``etcd_config_bridge.*``
        http_level: level for ``httpx``/``httpcore`` (defaults to WARNING,
            their request lines are noisy at INFO)
        application_name: overrides APPLICATION_NAME
        extra_loggers: additional logger names to route through the handler
    """
    app_name = application_name or get_application_name()
    app_version = get_application_version()
    app_environment = get_environment()

    context_filter = ContextFilter(app_name, app_version, app_environment)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(SerilogLikeJSONFormatter(include_ecs_version="8.10.0"))
    handler.addFilter(context_filter)

    numeric_level = getattr(logging, str(level).upper(), logging.INFO)
    numeric_http_level = getattr(
        logging, str(http_level or "WARNING").upper(), logging.WARNING
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers = [handler]
    root_logger.filters.clear()
    root_logger.addFilter(context_filter)

    loggers_config = [
        ("httpx", numeric_http_level),
        ("httpcore", numeric_http_level),
        (PACKAGE_LOGGER, numeric_level),
    ]
    loggers_config.extend((name, numeric_level) for name in extra_loggers or ())
    for logger_name, logger_level in loggers_config:
        logger = logging.getLogger(logger_name)
        logger.setLevel(logger_level)
        logger.handlers = [handler]
        logger.filters.clear()
        logger.addFilter(context_filter)
        logger.propagate = False

    logging.getLogger(PACKAGE_LOGGER).info(
        "logging_configured",
        extra={
            "event": {"category": ["application"], "action": "logging_started"},
            "logging": {
                "level": logging.getLevelName(numeric_level),
                "http_level": logging.getLevelName(numeric_http_level),
            },
        },
    )


# For errors use logger.warning("...", exc_info=True) so the exception/error fields get filled.
