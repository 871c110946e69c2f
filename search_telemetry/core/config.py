"""Telemetry configuration - Centralized environment and settings management."""

import os
from dataclasses import dataclass
from typing import Optional

# ============================================================================
# Buffer Configuration
# ============================================================================

BUFFER_CAPACITY = int(os.getenv("TELEMETRY_BUFFER_CAPACITY", 500))
OVERFLOW_POLICY = os.getenv("TELEMETRY_OVERFLOW_POLICY", "drop_oldest")  # drop_oldest, reject

# ============================================================================
# Delivery Configuration
# ============================================================================

BATCH_SIZE = int(os.getenv("TELEMETRY_BATCH_SIZE", 50))
DISPATCH_INTERVAL = float(os.getenv("TELEMETRY_DISPATCH_INTERVAL", 5.0))  # seconds
RETRY_BASE_DELAY = float(os.getenv("TELEMETRY_RETRY_BASE_DELAY", 1.0))  # seconds
RETRY_MAX_DELAY = float(os.getenv("TELEMETRY_RETRY_MAX_DELAY", 30.0))  # seconds
RETRY_JITTER = float(os.getenv("TELEMETRY_RETRY_JITTER", 0.2))  # +/- fraction
MAX_RETRIES = int(os.getenv("TELEMETRY_MAX_RETRIES", 5))
FLUSH_TIMEOUT = float(os.getenv("TELEMETRY_FLUSH_TIMEOUT", 10.0))  # seconds
DEAD_LETTER_ALERT_THRESHOLD = int(os.getenv("TELEMETRY_DEAD_LETTER_ALERT_THRESHOLD", 100))

# ============================================================================
# Correlation Configuration
# ============================================================================

RECENT_SEARCH_HISTORY = int(os.getenv("TELEMETRY_RECENT_SEARCH_HISTORY", 1000))
REQUIRE_BACKEND_CORRELATION = os.getenv(
    "TELEMETRY_REQUIRE_BACKEND_CORRELATION", "false"
).lower() == "true"
SERVICE_NAME = os.getenv("TELEMETRY_SERVICE_NAME", "search-service")

# ============================================================================
# Sink Configuration
# ============================================================================

SINK = os.getenv("TELEMETRY_SINK", "memory")  # memory, logging, http, redis, sql
HTTP_ENDPOINT = os.getenv("TELEMETRY_HTTP_ENDPOINT", "http://localhost:8081/v1/events")
HTTP_API_KEY = os.getenv("TELEMETRY_HTTP_API_KEY", None)
HTTP_TIMEOUT = float(os.getenv("TELEMETRY_HTTP_TIMEOUT", 10.0))
REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379")
REDIS_STREAM = os.getenv("TELEMETRY_REDIS_STREAM", "search-telemetry")
REDIS_STREAM_MAXLEN = int(os.getenv("TELEMETRY_REDIS_STREAM_MAXLEN", 100000))
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./telemetry.db")

# ============================================================================
# Application Configuration
# ============================================================================

APP_NAME = "Search Telemetry API"
APP_VERSION = "1.0.0"
APP_DESCRIPTION = "Search/click correlation and event delivery"

# ============================================================================
# Logging Configuration
# ============================================================================

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# ============================================================================
# API Configuration
# ============================================================================

API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", 8080))

OVERFLOW_POLICIES = ("drop_oldest", "reject")


@dataclass
class TelemetryConfig:
    """Settings for one TelemetryClient instance.

    Defaults come from the environment constants above; any field can be
    overridden per instance.
    """

    buffer_capacity: int = BUFFER_CAPACITY
    overflow_policy: str = OVERFLOW_POLICY
    batch_size: int = BATCH_SIZE
    dispatch_interval: float = DISPATCH_INTERVAL
    retry_base_delay: float = RETRY_BASE_DELAY
    retry_max_delay: float = RETRY_MAX_DELAY
    retry_jitter: float = RETRY_JITTER
    max_retries: int = MAX_RETRIES
    flush_timeout: Optional[float] = FLUSH_TIMEOUT
    dead_letter_alert_threshold: int = DEAD_LETTER_ALERT_THRESHOLD
    recent_search_history: int = RECENT_SEARCH_HISTORY
    require_backend_correlation: bool = REQUIRE_BACKEND_CORRELATION

    def __post_init__(self):
        if self.buffer_capacity < 1:
            raise ValueError(f"buffer_capacity must be >= 1, got {self.buffer_capacity}")
        if self.overflow_policy not in OVERFLOW_POLICIES:
            raise ValueError(
                f"overflow_policy must be one of {OVERFLOW_POLICIES}, got {self.overflow_policy!r}"
            )
        if self.batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {self.batch_size}")
        if self.dispatch_interval <= 0:
            raise ValueError(f"dispatch_interval must be > 0, got {self.dispatch_interval}")
        if self.retry_base_delay < 0 or self.retry_max_delay < 0:
            raise ValueError("retry delays must be >= 0")
        if self.retry_max_delay < self.retry_base_delay:
            raise ValueError("retry_max_delay must be >= retry_base_delay")
        if not 0 <= self.retry_jitter < 1:
            raise ValueError(f"retry_jitter must be in [0, 1), got {self.retry_jitter}")
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {self.max_retries}")
        if self.flush_timeout is not None and self.flush_timeout <= 0:
            raise ValueError(f"flush_timeout must be > 0, got {self.flush_timeout}")
        if self.recent_search_history < 0:
            raise ValueError("recent_search_history must be >= 0")
