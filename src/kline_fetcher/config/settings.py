"""Configuration settings using Pydantic for validation."""

from typing import Any, List, Optional, Tuple, Type
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict
import os
import re

from ..utils.timeutils import interval_to_millis


class BybitConfig(BaseModel):
    """Bybit kline API configuration."""
    rest_base_url: str = Field(default="https://api.bybit-tr.com", description="Bybit REST API base URL")
    kline_endpoint: str = Field(default="/v5/market/kline", description="Kline endpoint path")
    category: str = Field(default="linear", description="Product category: spot, linear or inverse")
    symbol: str = Field(default="SOLUSDT", description="Trading symbol to download")
    interval: str = Field(default="5", description="Kline interval (minutes, or D/W/M)")
    page_size: int = Field(default=1000, ge=1, le=1000, description="Candles per request (API max 1000)")
    request_timeout_seconds: float = Field(default=35.0, description="Overall HTTP request timeout")
    socket_timeout_seconds: float = Field(default=30.0, description="Socket read inactivity timeout")

    @field_validator('interval')
    @classmethod
    def validate_interval(cls, v):
        interval_to_millis(v)
        return v

    @property
    def kline_url(self) -> str:
        base = self.rest_base_url.rstrip('/')
        if base.endswith(self.kline_endpoint):
            return base
        return f"{base}{self.kline_endpoint}"

    @property
    def chunk_millis(self) -> int:
        """Duration covered by one full page of candles."""
        return self.page_size * interval_to_millis(self.interval)


class RetryConfig(BaseModel):
    """Retry configuration for rate-limited responses."""
    max_retries: int = Field(default=5, ge=0, description="Retries after the first attempt")
    backoff_step_seconds: float = Field(default=2.0, description="Delay before retry n is n * step")
    retry_statuses: List[int] = Field(default=[429], description="HTTP statuses retried automatically")


class RateLimitConfig(BaseModel):
    """Reactive pacing driven by the server's rate-limit headers."""
    remaining_header: str = Field(default="X-Bapi-Limit-Status", description="Remaining quota header")
    reset_header: str = Field(default="X-Bapi-Limit-Reset-Timestamp", description="Quota reset timestamp header")
    reset_timestamp_unit: str = Field(default="seconds", description="Unit of the reset header: seconds or milliseconds")
    min_remaining: int = Field(default=3, description="Wait for reset when remaining quota drops below this")
    min_wait_seconds: float = Field(default=1.0, description="Lower bound for a reactive wait")
    treat_missing_as_exhausted: bool = Field(
        default=False,
        description="Treat absent/unparseable headers as quota=1, reset=1s instead of unknown"
    )

    @field_validator('reset_timestamp_unit')
    @classmethod
    def validate_reset_unit(cls, v):
        if v not in ['seconds', 'milliseconds']:
            raise ValueError("Reset timestamp unit must be 'seconds' or 'milliseconds'")
        return v

    @property
    def reset_multiplier(self) -> int:
        return 1000 if self.reset_timestamp_unit == 'seconds' else 1


class PacingConfig(BaseModel):
    """Fixed delays inserted after every chunk request."""
    base_delay_seconds: float = Field(default=0.8, description="Delay after an ordinary request")
    every_5th_delay_seconds: float = Field(default=1.5, description="Delay after every 5th request")
    every_20th_delay_seconds: float = Field(default=3.0, description="Delay after every 20th request")


class FetchConfig(BaseModel):
    """Historical window configuration."""
    lookback_days: int = Field(default=360, ge=0, description="Days of history to fetch (12 x 30)")


class OutputConfig(BaseModel):
    """CSV output configuration."""
    path: str = Field(default="data/1yearsSolData.csv", description="Destination CSV path")


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="text", description="Log format: json or text")
    output: str = Field(default="console", description="console, stdout, stderr or a file path")

    @field_validator('level')
    @classmethod
    def validate_level(cls, v):
        level = v.upper()
        if level not in ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']:
            raise ValueError(f"Log level must be DEBUG, INFO, WARNING, ERROR or CRITICAL, got '{v}'")
        return level


class KlineFetcherSettings(BaseSettings):
    """Main kline fetcher settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    # Service configuration
    service_name: str = Field(default="kline-fetcher", description="Service name")
    environment: str = Field(default="local", description="Environment: local, dev, prod")

    # Component configurations
    bybit: BybitConfig = Field(default_factory=BybitConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)
    pacing: PacingConfig = Field(default_factory=PacingConfig)
    fetch: FetchConfig = Field(default_factory=FetchConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator('environment')
    @classmethod
    def validate_environment(cls, v):
        if v not in ['local', 'dev', 'prod']:
            raise ValueError("Environment must be 'local', 'dev', or 'prod'")
        return v

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        # Environment variables override values loaded from the YAML file
        return env_settings, dotenv_settings, init_settings, file_secret_settings


def substitute_env_vars(obj: Any) -> Any:
    """
    Recursively substitute environment variables in configuration objects.

    Supports syntax:
    - ${VAR_NAME} - Required variable (raises error if not found)
    - ${VAR_NAME:-default} - Optional variable with default value

    Raises:
        ValueError: If required environment variable is not found
    """
    if isinstance(obj, dict):
        return {key: substitute_env_vars(value) for key, value in obj.items()}
    elif isinstance(obj, list):
        return [substitute_env_vars(item) for item in obj]
    elif isinstance(obj, str):
        def replace_env_var(match):
            var_expr = match.group(1)

            if ':-' in var_expr:
                var_name, default_value = var_expr.split(':-', 1)
                return os.getenv(var_name.strip(), default_value)
            else:
                var_name = var_expr.strip()
                value = os.getenv(var_name)
                if value is None:
                    raise ValueError(f"Required environment variable '{var_name}' is not set")
                return value

        return re.sub(r'\$\{([^}]+)\}', replace_env_var, obj)
    else:
        return obj


def load_settings(config_file: Optional[str] = None) -> KlineFetcherSettings:
    """
    Load settings from config file and environment variables.

    The config file supports environment variable substitution using ${VAR_NAME} syntax.

    Args:
        config_file: Path to YAML configuration file

    Returns:
        KlineFetcherSettings: Validated configuration object

    Raises:
        ValueError: If required environment variables are missing
        FileNotFoundError: If config file doesn't exist
    """

    if config_file and os.path.exists(config_file):
        import yaml

        with open(config_file, 'r') as f:
            raw_config = yaml.safe_load(f) or {}

        config_data = substitute_env_vars(raw_config)

        return KlineFetcherSettings(**config_data)

    elif config_file:
        raise FileNotFoundError(f"Configuration file not found: {config_file}")

    # Load from environment variables only
    return KlineFetcherSettings()
