"""
Configuration management for the exporter.

Two layers:
- The exporter config file (YAML): database connection and the queries to run.
  Read once at startup and validated with Pydantic; any failure is fatal.
- Runtime settings from environment variables (and an optional .env file):
  bind address, logging and scheduler tuning.
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal, cast

import structlog
import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from sql_exporter.domain.models import QueryDefinition
from sql_exporter.errors import ConfigError

# Load environment variables from .env file
load_dotenv()

logger = structlog.get_logger(__name__)

REDACTED = "***"


class DbConfig(BaseModel):
    """Connection settings shared by every targeted database."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    host: str = Field(min_length=1, description="Database hostname or IP address")
    port: int = Field(gt=0, lt=65536, description="Database port")
    user: str = Field(min_length=1, description="Database user")
    password: str | None = Field(default=None, alias="pass", description="Database password")
    databases: list[str] = Field(min_length=1, description="Targeted database names")


class ExporterConfig(BaseModel):
    """Complete exporter config file."""

    model_config = ConfigDict(frozen=True)

    db: DbConfig
    queries: list[QueryDefinition]

    @model_validator(mode="after")
    def unique_query_names(self) -> "ExporterConfig":
        seen: set[str] = set()
        for query in self.queries:
            if query.name in seen:
                raise ValueError(f"Query name [{query.name}] is not unique")
            seen.add(query.name)
        return self

    def redacted(self) -> dict[str, Any]:
        """Dump the config for logging, without the database password."""
        dumped = self.model_dump(by_alias=True)
        if dumped["db"].get("pass") is not None:
            dumped["db"]["pass"] = REDACTED
        return dumped


def _format_validation_error(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"]) or "<root>"
        parts.append(f"{location}: {item['msg']}")
    return "; ".join(parts)


def load_config(file_path: str | Path) -> ExporterConfig:
    """Load and validate the exporter config file.

    Raises:
        ConfigError: the file is unreadable, empty, not YAML or fails validation.
    """
    path = Path(file_path)
    logger.info("loading_config", path=str(path))

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(f"Exporter config file [{path}] could not be read: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Exporter config file [{path}] is not valid YAML: {e}") from e

    if raw is None:
        raise ConfigError(f"Exporter config file [{path}] is empty.")
    if not isinstance(raw, dict):
        raise ConfigError(f"Exporter config file [{path}] must contain a mapping.")

    try:
        config = ExporterConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(
            f"Exporter config file [{path}] is invalid: {_format_validation_error(e)}"
        ) from e

    if config.db.password is None:
        logger.warning("no_database_password_provided")

    logger.info("config_loaded", config=config.redacted())
    return config


class APIConfig(BaseModel):
    """HTTP server configuration."""

    host: str = Field(default="0.0.0.0", description="Metrics server host")
    port: int = Field(default=8080, gt=0, lt=65536, description="Metrics server port")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    format: Literal["json", "console"] = Field(default="json", description="Logging format")


class SchedulerConfig(BaseModel):
    """Scheduler tuning."""

    initial_delay_seconds: float = Field(
        default=0.25, ge=0.0, le=5.0, description="Delay before the first tick of each query"
    )
    include_process_metrics: bool = Field(
        default=True, description="Export process, platform and GC metrics"
    )


class AppSettings(BaseModel):
    """Runtime settings combining all subsystems."""

    environment: Literal["development", "staging", "production"] = Field(
        default="production", description="Environment"
    )
    api: APIConfig = Field(default_factory=APIConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)


def load_settings_from_env() -> AppSettings:
    """Load runtime settings from environment variables with validation."""

    def _env_to_literal(val: str) -> Literal["development", "staging", "production"]:
        v = val.strip().lower()
        if v in {"dev", "development"}:
            return "development"
        if v in {"stage", "staging"}:
            return "staging"
        return "production"

    def _level_to_literal(val: str) -> Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
        v = val.strip().upper()
        return cast(
            Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
            v if v in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"} else "INFO",
        )

    def _parse_bool(val: str | None, default: bool) -> bool:
        if val is None:
            return default
        return val.strip().lower() in {"1", "true", "yes", "on"}

    environment = _env_to_literal(os.getenv("ENVIRONMENT", "production"))

    api_config = APIConfig(
        host=os.getenv("API_HOST", "0.0.0.0"),
        port=int(os.getenv("API_PORT", "8080")),
    )

    logging_config = LoggingConfig(
        level=_level_to_literal(os.getenv("LOG_LEVEL", "INFO")),
        format="console" if environment == "development" else "json",
    )

    scheduler_config = SchedulerConfig(
        initial_delay_seconds=float(os.getenv("INITIAL_DELAY_SECONDS", "0.25")),
        include_process_metrics=_parse_bool(os.getenv("PROCESS_METRICS"), True),
    )

    return AppSettings(
        environment=environment,
        api=api_config,
        logging=logging_config,
        scheduler=scheduler_config,
    )


@lru_cache
def get_settings() -> AppSettings:
    """Get cached runtime settings."""
    return load_settings_from_env()
