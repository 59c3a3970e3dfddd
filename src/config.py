"""
Configuration module for the Lifecycle Hook Reconciler.

Loads configuration from environment variables.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Optional


@dataclass
class DatabaseConfig:
    """PostgreSQL database configuration."""

    host: str = "localhost"
    port: int = 5432
    database: str = "lifecycle_hooks"
    user: str = "operator"
    password: str = field(default="", repr=False)  # Never log password
    min_pool_size: int = 1
    max_pool_size: int = 5

    @classmethod
    def from_env(cls):
        """Load from environment variables."""
        password = os.getenv("DB_PASSWORD", "")
        if not password:
            raise ValueError(
                "DB_PASSWORD environment variable must be set. "
                "Database password cannot be empty."
            )

        return cls(
            host=os.getenv("DB_HOST", "localhost"),
            port=int(os.getenv("DB_PORT", "5432")),
            database=os.getenv("DB_NAME", "lifecycle_hooks"),
            user=os.getenv("DB_USER", "operator"),
            password=password,
            min_pool_size=int(os.getenv("DB_MIN_POOL_SIZE", "1")),
            max_pool_size=int(os.getenv("DB_MAX_POOL_SIZE", "5")),
        )


@dataclass
class AutoScalingConfig:
    """Scaling group API client configuration."""

    api_base_url: str = "http://localhost:8080"
    token: Optional[str] = field(default=None, repr=False)
    request_timeout: float = 30.0  # seconds, per request

    @classmethod
    def from_env(cls):
        """Load from environment variables."""
        return cls(
            api_base_url=os.getenv("AUTOSCALING_API_URL", "http://localhost:8080"),
            token=os.getenv("AUTOSCALING_API_TOKEN") or None,
            request_timeout=float(os.getenv("AUTOSCALING_REQUEST_TIMEOUT", "30")),
        )


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    @classmethod
    def from_env(cls):
        """Load from environment variables."""
        return cls(level=os.getenv("LOG_LEVEL", "INFO").upper())


@dataclass
class Config:
    """Main configuration object."""

    database: DatabaseConfig
    autoscaling: AutoScalingConfig
    logging: LoggingConfig

    @classmethod
    def from_env(cls):
        """Load all configuration from environment variables."""
        return cls(
            database=DatabaseConfig.from_env(),
            autoscaling=AutoScalingConfig.from_env(),
            logging=LoggingConfig.from_env(),
        )

    @classmethod
    def default(cls):
        """Return default configuration."""
        return cls(
            database=DatabaseConfig(),
            autoscaling=AutoScalingConfig(),
            logging=LoggingConfig(),
        )


def configure_logging(logging_config: Optional[LoggingConfig] = None) -> None:
    """Configure root logging the way every entry point expects it."""
    logging_config = logging_config or LoggingConfig.from_env()
    logging.basicConfig(level=logging_config.level, format=logging_config.format)


# Global config instance
config: Optional[Config] = None


def load_config() -> Config:
    """Load configuration (singleton pattern)."""
    global config
    if config is None:
        config = Config.from_env()
    return config


def get_config() -> Config:
    """Get the current configuration."""
    if config is None:
        return load_config()
    return config


def reset_config() -> None:
    """Reset configuration (mainly for testing)."""
    global config
    config = None
