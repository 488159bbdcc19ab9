"""Service configuration for the NDRC case service.

All settings come from environment variables and are parsed once at startup into
an immutable ServiceConfig. Invalid values fail fast with ConfigError naming the
offending variable.

Environment Variables:
    NDRC_APP_NAME: Audit source name (default: national-duty-repayment-center)
    NDRC_EIS_BASE_URL: Base URL of the EIS case-management API
    NDRC_EIS_TOKEN: Bearer token presented to EIS
    NDRC_EIS_ENVIRONMENT: Value of the EIS "environment" header (default: local)
    NDRC_EIS_TIMEOUT_SECONDS: Timeout for a single case submission call (default: 20)
    NDRC_EIS_MAX_RETRIES: Retries on connection errors / 502 / 503 / 504 (default: 1)
    NDRC_FILE_TRANSFER_BASE_URL: Base URL of the file-transfer service
    NDRC_FILE_TRANSFER_TIMEOUT_SECONDS: Timeout for one file transfer call (default: 30)
    NDRC_FILE_TRANSFER_MAX_CONCURRENCY: Concurrent transfers per request (default: 4)
    NDRC_AUDIT_LOG_PATH: JSONL audit log path (default: ./var/audit/audit_events.jsonl)
    NDRC_AUDIT_DATASTREAM_URL: If set, audit records are POSTed here instead
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Final

logger = logging.getLogger(__name__)

ENV_APP_NAME: Final[str] = "NDRC_APP_NAME"
ENV_EIS_BASE_URL: Final[str] = "NDRC_EIS_BASE_URL"
ENV_EIS_TOKEN: Final[str] = "NDRC_EIS_TOKEN"
ENV_EIS_ENVIRONMENT: Final[str] = "NDRC_EIS_ENVIRONMENT"
ENV_EIS_TIMEOUT_SECONDS: Final[str] = "NDRC_EIS_TIMEOUT_SECONDS"
ENV_EIS_MAX_RETRIES: Final[str] = "NDRC_EIS_MAX_RETRIES"
ENV_FILE_TRANSFER_BASE_URL: Final[str] = "NDRC_FILE_TRANSFER_BASE_URL"
ENV_FILE_TRANSFER_TIMEOUT_SECONDS: Final[str] = "NDRC_FILE_TRANSFER_TIMEOUT_SECONDS"
ENV_FILE_TRANSFER_MAX_CONCURRENCY: Final[str] = "NDRC_FILE_TRANSFER_MAX_CONCURRENCY"
ENV_AUDIT_LOG_PATH: Final[str] = "NDRC_AUDIT_LOG_PATH"
ENV_AUDIT_DATASTREAM_URL: Final[str] = "NDRC_AUDIT_DATASTREAM_URL"

DEFAULT_APP_NAME: Final[str] = "national-duty-repayment-center"
DEFAULT_EIS_BASE_URL: Final[str] = "http://localhost:9380"
DEFAULT_EIS_ENVIRONMENT: Final[str] = "local"
DEFAULT_EIS_TIMEOUT_SECONDS: Final[float] = 20.0
DEFAULT_EIS_MAX_RETRIES: Final[int] = 1
DEFAULT_FILE_TRANSFER_BASE_URL: Final[str] = "http://localhost:10003"
DEFAULT_FILE_TRANSFER_TIMEOUT_SECONDS: Final[float] = 30.0
DEFAULT_FILE_TRANSFER_MAX_CONCURRENCY: Final[int] = 4
DEFAULT_AUDIT_LOG_PATH: Final[str] = "./var/audit/audit_events.jsonl"


class ConfigError(Exception):
    """Raised when service configuration is invalid."""


@dataclass(frozen=True)
class ServiceConfig:
    """NDRC service configuration (immutable).

    Attributes:
        app_name: Application name, used as the audit source.
        eis_base_url: Base URL of the EIS case-management API.
        eis_token: Bearer token for EIS.
        eis_environment: EIS "environment" header value.
        eis_timeout_seconds: Timeout for one case submission call.
        eis_max_retries: Retry budget for retryable submission failures.
        file_transfer_base_url: Base URL of the file-transfer service.
        file_transfer_timeout_seconds: Timeout for one file transfer call.
        file_transfer_max_concurrency: Upper bound on concurrent transfers.
        audit_log_path: Path of the JSONL audit log.
        audit_datastream_url: Optional HTTP audit collector URL.
    """

    app_name: str = DEFAULT_APP_NAME
    eis_base_url: str = DEFAULT_EIS_BASE_URL
    eis_token: str = ""
    eis_environment: str = DEFAULT_EIS_ENVIRONMENT
    eis_timeout_seconds: float = DEFAULT_EIS_TIMEOUT_SECONDS
    eis_max_retries: int = DEFAULT_EIS_MAX_RETRIES
    file_transfer_base_url: str = DEFAULT_FILE_TRANSFER_BASE_URL
    file_transfer_timeout_seconds: float = DEFAULT_FILE_TRANSFER_TIMEOUT_SECONDS
    file_transfer_max_concurrency: int = DEFAULT_FILE_TRANSFER_MAX_CONCURRENCY
    audit_log_path: str = DEFAULT_AUDIT_LOG_PATH
    audit_datastream_url: str | None = None

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.eis_timeout_seconds <= 0:
            raise ConfigError(
                f"{ENV_EIS_TIMEOUT_SECONDS} must be positive, got {self.eis_timeout_seconds}"
            )
        if self.eis_max_retries < 0:
            raise ConfigError(
                f"{ENV_EIS_MAX_RETRIES} must not be negative, got {self.eis_max_retries}"
            )
        if self.file_transfer_timeout_seconds <= 0:
            raise ConfigError(
                f"{ENV_FILE_TRANSFER_TIMEOUT_SECONDS} must be positive, "
                f"got {self.file_transfer_timeout_seconds}"
            )
        if self.file_transfer_max_concurrency <= 0:
            raise ConfigError(
                f"{ENV_FILE_TRANSFER_MAX_CONCURRENCY} must be a positive integer, "
                f"got {self.file_transfer_max_concurrency}"
            )


def _get_env_str(env_var: str, default: str) -> str:
    """Get a stripped string from an environment variable, falling back to default."""
    raw = os.environ.get(env_var)
    if raw is None or not raw.strip():
        return default
    return raw.strip()


def _parse_int(env_var: str, default: int) -> int:
    """Parse an integer from an environment variable.

    Raises:
        ConfigError: If the value is set but is not an integer.
    """
    raw = _get_env_str(env_var, "")
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigError(f"{env_var} must be an integer, got '{raw}'") from e


def _parse_float(env_var: str, default: float) -> float:
    """Parse a float from an environment variable.

    Raises:
        ConfigError: If the value is set but is not a number.
    """
    raw = _get_env_str(env_var, "")
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigError(f"{env_var} must be a number, got '{raw}'") from e


def load_service_config() -> ServiceConfig:
    """Load service configuration from environment variables.

    Returns:
        ServiceConfig with validated values.

    Raises:
        ConfigError: If any value is invalid.
    """
    datastream_url = _get_env_str(ENV_AUDIT_DATASTREAM_URL, "")

    config = ServiceConfig(
        app_name=_get_env_str(ENV_APP_NAME, DEFAULT_APP_NAME),
        eis_base_url=_get_env_str(ENV_EIS_BASE_URL, DEFAULT_EIS_BASE_URL).rstrip("/"),
        eis_token=_get_env_str(ENV_EIS_TOKEN, ""),
        eis_environment=_get_env_str(ENV_EIS_ENVIRONMENT, DEFAULT_EIS_ENVIRONMENT),
        eis_timeout_seconds=_parse_float(ENV_EIS_TIMEOUT_SECONDS, DEFAULT_EIS_TIMEOUT_SECONDS),
        eis_max_retries=_parse_int(ENV_EIS_MAX_RETRIES, DEFAULT_EIS_MAX_RETRIES),
        file_transfer_base_url=_get_env_str(
            ENV_FILE_TRANSFER_BASE_URL, DEFAULT_FILE_TRANSFER_BASE_URL
        ).rstrip("/"),
        file_transfer_timeout_seconds=_parse_float(
            ENV_FILE_TRANSFER_TIMEOUT_SECONDS, DEFAULT_FILE_TRANSFER_TIMEOUT_SECONDS
        ),
        file_transfer_max_concurrency=_parse_int(
            ENV_FILE_TRANSFER_MAX_CONCURRENCY, DEFAULT_FILE_TRANSFER_MAX_CONCURRENCY
        ),
        audit_log_path=_get_env_str(ENV_AUDIT_LOG_PATH, DEFAULT_AUDIT_LOG_PATH),
        audit_datastream_url=datastream_url or None,
    )

    if not config.eis_token:
        logger.warning(
            "%s is not set; EIS calls will be sent without a bearer token", ENV_EIS_TOKEN
        )

    return config
