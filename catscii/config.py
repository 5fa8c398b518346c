"""
Configuration management for the catscii service.
Reads secrets and tunables from environment variables (and a local .env file).
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


DEFAULT_CAT_API_URL = "http://api.thecatapi.com/v1/images/search"


class ConfigError(Exception):
    """Raised when required configuration is missing or invalid."""


@dataclass
class ErrorReportingConfig:
    """Sentry configuration"""
    sentry_dsn: Optional[str] = field(default_factory=lambda: os.getenv("SENTRY_DSN"))
    release: Optional[str] = field(default_factory=lambda: os.getenv("RELEASE"))


@dataclass
class TracingConfig:
    """Honeycomb (OTLP) tracing configuration"""
    honeycomb_api_key: Optional[str] = field(default_factory=lambda: os.getenv("HONEYCOMB_API_KEY"))
    otlp_endpoint: str = field(default_factory=lambda: os.getenv("OTLP_ENDPOINT", "api.honeycomb.io:443"))
    service_name: str = "catscii"


@dataclass
class ImageSourceConfig:
    """Upstream cat picture API"""
    api_url: str = field(default_factory=lambda: os.getenv("CAT_API_URL", DEFAULT_CAT_API_URL))


@dataclass
class ServerConfig:
    """Listener settings (fixed)"""
    host: str = "0.0.0.0"
    port: int = 8080


@dataclass
class SystemConfig:
    """Master system configuration"""
    error_reporting: ErrorReportingConfig = field(default_factory=ErrorReportingConfig)
    tracing: TracingConfig = field(default_factory=TracingConfig)
    image_source: ImageSourceConfig = field(default_factory=ImageSourceConfig)
    server: ServerConfig = field(default_factory=ServerConfig)

    # Logging
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "info"))
    environment: str = field(default_factory=lambda: os.getenv("ENVIRONMENT", "development"))


def validate_config(config: SystemConfig) -> list[str]:
    """Validate configuration and return list of warnings/errors"""
    issues = []

    if not config.error_reporting.sentry_dsn:
        issues.append("ERROR: $SENTRY_DSN must be set")

    if not config.tracing.honeycomb_api_key:
        issues.append("ERROR: $HONEYCOMB_API_KEY must be set")

    if not config.image_source.api_url.startswith(("http://", "https://")):
        issues.append("ERROR: CAT_API_URL must be an http(s) URL")

    if not config.error_reporting.release:
        issues.append("WARNING: RELEASE not set, Sentry events will use the package version")

    return issues


def load_config() -> SystemConfig:
    """Build the configuration from the environment, failing on any ERROR issue."""
    config = SystemConfig()
    issues = validate_config(config)

    errors = [issue for issue in issues if issue.startswith("ERROR")]
    if errors:
        raise ConfigError("; ".join(errors))

    for issue in issues:
        logger.warning(issue)

    return config
