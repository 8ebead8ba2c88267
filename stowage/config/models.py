"""
Pydantic-based configuration models for stowage.

Values come from the environment (and an optional ``.env`` file) so a host
application can tune logging and the simulation constants used by recursive
processing without code changes.
"""

from pathlib import Path

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings

from ..structured_logging.enhanced_logging_config import VALID_LOG_LEVELS, get_logger

logger = get_logger(__name__)


class LoggingConfig(BaseSettings):
    """Logging configuration."""

    environment: str = Field(default="local", description="Logging environment")
    level: str = Field(default="INFO", description="Log level")
    json_output: bool = Field(default=False, description="Render log entries as JSON lines")
    disable_logging: bool = Field(default=False, description="Disable all logging")

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate logging environment."""
        valid_environments = ["local", "unit_test", "production"]
        if v not in valid_environments:
            logger.error("Invalid logging environment", environment=v, valid_environments=valid_environments)
            raise ValueError(f"Environment must be one of {valid_environments}, got '{v}'")
        return v

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level."""
        v_upper = v.upper()
        if v_upper not in VALID_LOG_LEVELS:
            raise ValueError(f"Log level must be one of {list(VALID_LOG_LEVELS)}, got '{v}'")
        return v_upper

    model_config = {"env_prefix": "STOWAGE_LOG_", "case_sensitive": False, "extra": "ignore"}

    def to_logging_dict(self) -> dict:
        """Convert to the dictionary shape accepted by setup_logging()."""
        return {
            "logging": {
                "environment": self.environment,
                "level": self.level,
                "json_output": self.json_output,
                "disable_logging": self.disable_logging,
            }
        }


class SimulationConfig(BaseSettings):
    """Constants used by recursive processing (spoilage and heat exchange)."""

    ambient_temperature: float = Field(default=20.0, description="Default ambient temperature in Celsius")
    hot_temperature: float = Field(default=60.0, description="Temperature applied by heat_up(); also the hot threshold")
    cold_temperature: float = Field(default=0.0, description="At or below this an item counts as cold")
    heat_exchange_rate: float = Field(
        default=0.1,
        description="Fraction of the gap to ambient closed per processed turn for uninsulated items",
    )

    @field_validator("heat_exchange_rate")
    @classmethod
    def validate_heat_exchange_rate(cls, v: float) -> float:
        """Validate the exchange rate is a fraction."""
        if not 0.0 < v <= 1.0:
            logger.error("Invalid heat exchange rate", heat_exchange_rate=v)
            raise ValueError("heat_exchange_rate must be in (0, 1]")
        return v

    @model_validator(mode="after")
    def validate_temperature_bands(self) -> "SimulationConfig":
        """Validate that the cold band lies below the hot band."""
        if self.cold_temperature >= self.hot_temperature:
            logger.error(
                "Invalid temperature bands",
                cold_temperature=self.cold_temperature,
                hot_temperature=self.hot_temperature,
            )
            raise ValueError("cold_temperature must be lower than hot_temperature")
        return self

    model_config = {"env_prefix": "STOWAGE_SIM_", "case_sensitive": False, "extra": "ignore"}


class StowageConfig(BaseSettings):
    """
    Composite configuration.

    Access via get_config().
    """

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    simulation: SimulationConfig = Field(default_factory=SimulationConfig)
    item_types_dir: Path | None = Field(default=None, description="Directory of item type JSON definitions")

    model_config = {
        "env_prefix": "STOWAGE_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }
