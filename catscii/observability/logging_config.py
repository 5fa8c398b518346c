"""
Structured Logging Configuration

Every log line is a JSON object on stdout, carrying the trace_id/span_id of
the span that was active when it was emitted. That is what lets you jump from
a "pipeline failed" log line straight to the Honeycomb trace of the request.

LOG FILTER:
LOG_LEVEL is a target filter, not just a level name:

    info                              -> everything at INFO and above
    warning,catscii=debug             -> WARNING by default, DEBUG for catscii.*
    catscii.services=debug,httpx=error

The first bare level sets the root logger; each `logger=level` pair sets one
named logger. An invalid filter raises ValueError at startup.

FAILURE MODE:
An exception message or a URL can carry the Sentry DSN or the Honeycomb key.
SOLUTION: the formatter masks those values in every string field.
"""

import logging
import sys
from typing import Any, Dict, Iterable, Optional, Tuple

from pythonjsonlogger import jsonlogger

from opentelemetry import trace


_LEVELS = {
    "trace": logging.DEBUG,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
    "off": logging.CRITICAL + 10,
}


class CorrelationJsonFormatter(jsonlogger.JsonFormatter):
    """
    JSON formatter that injects trace_id and span_id into every log.

    Output:
        {"msg": "Pipeline failed", "trace_id": "abc...", "span_id": "...", ...}

    Args:
        secrets: Values that must never appear in a log line (the Sentry DSN,
            the Honeycomb key). Empty or None entries are ignored.
    """

    def __init__(self, *args, secrets: Iterable[Optional[str]] = (), **kwargs):
        super().__init__(*args, **kwargs)
        self.secrets = [secret for secret in secrets if secret]

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)

        # Add trace context (if exists)
        span = trace.get_current_span()
        ctx = span.get_span_context()
        if ctx.is_valid:
            log_record['trace_id'] = format(ctx.trace_id, '032x')
            log_record['span_id'] = format(ctx.span_id, '016x')

        log_record['level'] = record.levelname
        log_record['logger'] = record.name
        log_record['timestamp'] = self.formatTime(record, self.datefmt)

        self.scrub_sensitive_data(log_record)

    def scrub_sensitive_data(self, log_record: Dict[str, Any]) -> Dict[str, Any]:
        """Mask every configured secret wherever it appears in a string field."""
        for key, value in log_record.items():
            if isinstance(value, str):
                for secret in self.secrets:
                    value = value.replace(secret, mask_secret(secret))
                log_record[key] = value

        return log_record


def mask_secret(secret: str) -> str:
    """Keep the last 4 characters of long secrets; hide short ones entirely."""
    if len(secret) > 8:
        return f"***{secret[-4:]}"
    return "***REDACTED***"


def parse_log_filter(filter_string: str) -> Tuple[int, Dict[str, int]]:
    """
    Parse a LOG_LEVEL filter string.

    Args:
        filter_string: e.g. "info" or "warning,catscii=debug,httpx=error"

    Returns:
        (default_level, {logger_name: level})

    Raises:
        ValueError: On an unknown level or an empty logger name
    """
    default_level = logging.INFO
    targets: Dict[str, int] = {}

    for directive in filter_string.split(","):
        directive = directive.strip()
        if not directive:
            continue

        if "=" in directive:
            name, _, level_name = directive.partition("=")
            name = name.strip()
            if not name:
                raise ValueError(f"Invalid log filter directive: {directive!r}")
            targets[name] = _parse_level(level_name)
        else:
            default_level = _parse_level(directive)

    return default_level, targets


def _parse_level(name: str) -> int:
    try:
        return _LEVELS[name.strip().lower()]
    except KeyError:
        raise ValueError(f"Unknown log level: {name!r}") from None


def setup_logging(
    level: str = "info",
    service_name: str = "catscii",
    secrets: Iterable[Optional[str]] = (),
) -> None:
    """
    Configure structured JSON logging for the application.

    Args:
        level: Log filter string (see module docstring)
        service_name: Service name to include in the startup log
        secrets: Values masked out of every log line
    """
    default_level, targets = parse_log_filter(level)

    # Create handler (stdout so the container runtime collects logs)
    handler = logging.StreamHandler(sys.stdout)

    formatter = CorrelationJsonFormatter(
        fmt='%(timestamp)s %(level)s %(logger)s %(message)s',
        rename_fields={'message': 'msg'},
        secrets=secrets,
    )
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    for existing in root_logger.handlers[:]:
        root_logger.removeHandler(existing)
    root_logger.setLevel(default_level)
    root_logger.addHandler(handler)

    # Silence noisy libraries unless the filter says otherwise
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)

    for name, target_level in targets.items():
        logging.getLogger(name).setLevel(target_level)

    root_logger.info(f"Structured logging initialized for {service_name}")


class ContextLoggerAdapter(logging.LoggerAdapter):
    """LoggerAdapter that merges call-site `extra` over the bound context."""

    def process(self, msg, kwargs):
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


def get_logger(name: str, **context) -> logging.LoggerAdapter:
    """
    Create a logger with pre-bound context.

        request_logger = get_logger(__name__, user_agent="curl/8.0")
        request_logger.info("Serving cat")  # includes user_agent
        request_logger.error("Failed", extra={"stage": "decode"})  # both

    Args:
        name: Logger name (usually __name__)
        **context: Key-value pairs to include in every log from this logger

    Returns:
        LoggerAdapter with pre-bound context
    """
    logger = logging.getLogger(name)
    return ContextLoggerAdapter(logger, context)
