"""
Application Settings - Pydantic Settings for configuration management.

Supports environment variables and .env file loading.
"""

from functools import lru_cache
from typing import Annotated, Any, Literal

from pydantic import BeforeValidator, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


def normalize_to_lowercase(v: str) -> str:
    """Normalize string to lowercase."""
    if isinstance(v, str):
        return v.lower()
    return v


class BenchmarkSettings(BaseSettings):
    """Service-wide benchmark defaults and executor tuning."""

    model_config = SettingsConfigDict(env_prefix="BENCHMARK_")

    size: Annotated[
        Literal["small", "medium", "large", "custom"],
        BeforeValidator(normalize_to_lowercase),
    ] = Field(default="small", description="Data size class")
    custom_size: int | None = Field(default=None, gt=0, description="Record count when size=custom")
    iterations: int = Field(default=5, ge=1, description="Timed iterations per store")
    setup_environment: bool = Field(default=True, description="Run benchmark setup before timing")
    cleanup_environment: bool = Field(default=True, description="Run benchmark cleanup after timing")
    save_results: bool = Field(default=True, description="Persist results to output_dir")
    output_dir: str = Field(default="./benchmark-results", description="Directory for result files")
    verbose: bool = Field(default=False, description="Log every iteration")

    # Executor tuning
    penalty_multiplier: float = Field(
        default=2.0, gt=0, description="Failed iteration duration = multiplier x current max"
    )
    fallback_penalty_ms: float = Field(
        default=10000.0, gt=0, description="Failed iteration duration when no duration exists yet"
    )

    # Comparison
    tie_breaker: Annotated[str, BeforeValidator(normalize_to_lowercase)] = Field(
        default="mongodb", description="Store declared winner when medians are equal"
    )

    # Workload generators
    seed: int | None = Field(default=None, description="Seed for workload generators (None = random)")

    def default_options(self) -> dict[str, Any]:
        """Service-wide default BenchmarkOptions as a plain mapping."""
        return {
            "size": self.size,
            "custom_size": self.custom_size,
            "iterations": self.iterations,
            "setup_environment": self.setup_environment,
            "cleanup_environment": self.cleanup_environment,
            "save_results": self.save_results,
            "output_dir": self.output_dir,
            "verbose": self.verbose,
            "store_options": {"mongodb": {}, "postgresql": {}},
        }


class MongoDBSettings(BaseSettings):
    """MongoDB connection settings."""

    model_config = SettingsConfigDict(env_prefix="MONGODB_")

    uri: str = Field(default="mongodb://localhost:27017", description="MongoDB connection URI")
    database: str = Field(default="benchmark", description="MongoDB database name")
    max_pool_size: int = Field(default=10, description="Connection pool size")
    min_pool_size: int = Field(default=5, description="Minimum pooled connections")
    connect_timeout_ms: int = Field(default=30000, description="Connect timeout in milliseconds")
    socket_timeout_ms: int = Field(default=60000, description="Socket timeout in milliseconds")


class PostgreSQLSettings(BaseSettings):
    """PostgreSQL connection settings."""

    model_config = SettingsConfigDict(env_prefix="POSTGRES_")

    host: str = Field(default="localhost", description="PostgreSQL host")
    port: int = Field(default=5432, description="PostgreSQL port")
    user: str = Field(default="postgres", description="PostgreSQL user")
    password: SecretStr = Field(default=SecretStr("postgres"), description="PostgreSQL password")
    database: str = Field(default="benchmark", description="PostgreSQL database name")
    connect_timeout: int = Field(default=10, description="Connect timeout in seconds")


class ObservabilitySettings(BaseSettings):
    """Logging settings."""

    model_config = SettingsConfigDict(env_prefix="OBSERVABILITY_")

    log_format: Literal["json", "console"] = Field(
        default="console", description="Log format (json for CI, console for interactive runs)"
    )


class Settings(BaseSettings):
    """Main application settings aggregating all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = Field(default="storebench", description="Application name")
    environment: Literal["development", "ci", "production"] = Field(
        default="development", description="Execution environment"
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", description="Logging level"
    )

    # Sub-settings
    benchmark: BenchmarkSettings = Field(default_factory=BenchmarkSettings)
    mongodb: MongoDBSettings = Field(default_factory=MongoDBSettings)
    postgresql: PostgreSQLSettings = Field(default_factory=PostgreSQLSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
