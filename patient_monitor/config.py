"""
Configuration management with environment variable support and validation.

Design principles:
- Environment-specific configs (dev, staging, prod)
- Validation at startup (fail fast)
- Type safety with Pydantic
- Clinical thresholds are NOT configurable; they live in the rule engine
"""

import os
from functools import lru_cache
from typing import Literal, cast

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

# Load environment variables from .env file
load_dotenv()


class MonitoringConfig(BaseModel):
    """Evaluation and collection cadence."""

    evaluation_interval_seconds: float = Field(
        default=10.0, gt=0.0, description="Interval between rule evaluation passes"
    )
    collection_interval_seconds: float = Field(
        default=1.0, gt=0.0, description="Interval between measurement collections"
    )
    collection_timeout_seconds: float = Field(
        default=5.0, gt=0.0, description="Timeout for a single source collection"
    )
    max_concurrent_evaluations: int = Field(
        default=8, gt=0, description="Maximum number of patients evaluated in parallel"
    )
    alert_history_size: int = Field(
        default=1000, gt=0, description="Number of recent alerts kept in memory"
    )


class SimulationConfig(BaseModel):
    """Simulated bedside monitor settings."""

    enabled: bool = Field(default=True, description="Feed the store from the simulator")
    patient_count: int = Field(default=50, gt=0, description="Number of simulated patients")
    seed: int | None = Field(default=None, description="Seed for reproducible streams")
    manual_alert_rate: float = Field(
        default=0.1, ge=0.0, description="Expected manual alerts per patient per collection"
    )


class IngestionConfig(BaseModel):
    """File-based ingestion settings."""

    data_directory: str | None = Field(
        default=None, description="Directory with *.txt / *.csv measurement files"
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    format: Literal["json", "console"] = Field(default="json", description="Logging format")


class AppConfig(BaseModel):
    """Main application configuration combining all subsystems."""

    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Environment"
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    monitoring: MonitoringConfig = Field(default_factory=MonitoringConfig)
    simulation: SimulationConfig = Field(default_factory=SimulationConfig)
    ingestion: IngestionConfig = Field(default_factory=IngestionConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def debug_only_in_dev(self) -> "AppConfig":
        """Ensure debug mode is only allowed in development environment."""
        if self.debug and self.environment != "development":
            raise ValueError("debug mode is only allowed in development environment")
        return self


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


def _parse_optional_int(val: str | None) -> int | None:
    if val is None or not val.strip():
        return None
    return int(val)


def load_config_from_env() -> AppConfig:
    """Load configuration from environment variables with validation."""

    environment = _env_to_literal(os.getenv("ENVIRONMENT", "development"))
    debug = _parse_bool(os.getenv("DEBUG"), environment == "development")

    monitoring_config = MonitoringConfig(
        evaluation_interval_seconds=float(os.getenv("EVALUATION_INTERVAL_SECONDS", "10.0")),
        collection_interval_seconds=float(os.getenv("COLLECTION_INTERVAL_SECONDS", "1.0")),
        collection_timeout_seconds=float(os.getenv("COLLECTION_TIMEOUT_SECONDS", "5.0")),
        max_concurrent_evaluations=int(os.getenv("MAX_CONCURRENT_EVALUATIONS", "8")),
        alert_history_size=int(os.getenv("ALERT_HISTORY_SIZE", "1000")),
    )

    simulation_config = SimulationConfig(
        enabled=_parse_bool(os.getenv("SIMULATION_ENABLED"), True),
        patient_count=int(os.getenv("PATIENT_COUNT", "50")),
        seed=_parse_optional_int(os.getenv("SIMULATION_SEED")),
        manual_alert_rate=float(os.getenv("MANUAL_ALERT_RATE", "0.1")),
    )

    ingestion_config = IngestionConfig(data_directory=os.getenv("DATA_DIRECTORY") or None)

    logging_config = LoggingConfig(
        level=_level_to_literal(os.getenv("LOG_LEVEL", "INFO")),
        format="console" if environment == "development" else "json",
    )

    return AppConfig(
        environment=environment,
        debug=debug,
        monitoring=monitoring_config,
        simulation=simulation_config,
        ingestion=ingestion_config,
        logging=logging_config,
    )


@lru_cache
def get_config() -> AppConfig:
    """Get cached application configuration."""
    return load_config_from_env()


def validate_config() -> None:
    """Validate configuration at startup."""
    try:
        config = get_config()
        print(f"Configuration loaded for {config.environment} environment")
    except Exception as e:
        print(f"Configuration validation failed: {e}")
        raise


def print_config_summary() -> None:
    """Print configuration summary for debugging."""
    config = get_config()

    print("\nCONFIGURATION SUMMARY")
    print(f"Environment: {config.environment}")
    print(f"Debug Mode: {config.debug}")
    print(f"Log Level: {config.logging.level}")

    print("\nMONITORING")
    print(f"Evaluation Interval: {config.monitoring.evaluation_interval_seconds}s")
    print(f"Collection Interval: {config.monitoring.collection_interval_seconds}s")
    print(f"Max Concurrent Evaluations: {config.monitoring.max_concurrent_evaluations}")

    print("\nINGESTION")
    print(f"Simulator: {'on' if config.simulation.enabled else 'off'}")
    print(f"Simulated Patients: {config.simulation.patient_count}")
    print(f"Data Directory: {config.ingestion.data_directory or '-'}")


if __name__ == "__main__":
    validate_config()
    print_config_summary()
