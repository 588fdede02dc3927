"""
Configuration management for the geoquery spatial query engine.

Settings are read from GEOQUERY_* environment variables (and a .env file when
present) into pydantic models once, at import time. Constructor arguments on
the engine and store wrappers override them per instance.
"""

import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

load_dotenv()


class QueryConfig(BaseModel):
    """Spatial query execution configuration."""

    default_max_cells: int = Field(
        default=100, description="Cell budget used when a query does not supply one"
    )
    absolute_max_cells: int = Field(
        default=500, description="Hard upper bound for any query's cell budget"
    )
    max_concurrency: int = Field(
        default=10, description="Maximum concurrent cell queries in scatter/gather mode"
    )
    store_page_limit: Optional[int] = Field(
        None, description="Limit passed to the store for each scatter/gather page"
    )

    @field_validator("default_max_cells", "absolute_max_cells", "max_concurrency")
    @classmethod
    def validate_positive(cls, v):
        """Counts must be strictly positive."""
        if v < 1:
            raise ValueError(f"Value must be at least 1, got {v}")
        return v

    @field_validator("store_page_limit")
    @classmethod
    def validate_page_limit(cls, v):
        if v is not None and v < 1:
            raise ValueError(f"store_page_limit must be at least 1, got {v}")
        return v


class RetryConfig(BaseModel):
    """Retry configuration for transient storage faults."""

    max_retries: int = Field(default=3, description="Maximum number of retry attempts")
    backoff_factor: float = Field(
        default=0.1, description="Exponential backoff multiplier in seconds"
    )
    backoff_min_seconds: float = Field(
        default=0.05, description="Minimum wait between attempts"
    )
    backoff_max_seconds: float = Field(
        default=2.0, description="Maximum wait between attempts"
    )

    @field_validator("max_retries")
    @classmethod
    def validate_retries(cls, v):
        if v < 0:
            raise ValueError(f"max_retries cannot be negative, got {v}")
        return v


class TokenConfig(BaseModel):
    """Continuation token signing configuration."""

    secret: Optional[str] = Field(
        None, description="HMAC secret used to sign continuation tokens"
    )


class LoggingConfig(BaseModel):
    """Log level and output format."""

    level: str = Field(default="INFO", description="Logging level")
    format_str: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format string",
    )
    enable_structured_logging: bool = Field(
        default=True, description="Enable structured JSON logging"
    )


class AppConfig(BaseModel):
    """All geoquery settings."""

    query: QueryConfig
    retry: RetryConfig
    token: TokenConfig
    logging: LoggingConfig

    # Environment
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Enable debug mode")


def _optional_int(name: str) -> Optional[int]:
    value = os.getenv(name)
    return int(value) if value else None


def load_config() -> AppConfig:
    """Load and validate configuration from environment variables."""

    config_dict = {
        "query": {
            "default_max_cells": int(os.getenv("GEOQUERY_DEFAULT_MAX_CELLS", "100")),
            "absolute_max_cells": int(os.getenv("GEOQUERY_ABSOLUTE_MAX_CELLS", "500")),
            "max_concurrency": int(os.getenv("GEOQUERY_MAX_CONCURRENCY", "10")),
            "store_page_limit": _optional_int("GEOQUERY_STORE_PAGE_LIMIT"),
        },
        "retry": {
            "max_retries": int(os.getenv("GEOQUERY_MAX_RETRIES", "3")),
            "backoff_factor": float(os.getenv("GEOQUERY_BACKOFF_FACTOR", "0.1")),
            "backoff_min_seconds": float(
                os.getenv("GEOQUERY_BACKOFF_MIN_SECONDS", "0.05")
            ),
            "backoff_max_seconds": float(
                os.getenv("GEOQUERY_BACKOFF_MAX_SECONDS", "2.0")
            ),
        },
        "token": {
            "secret": os.getenv("GEOQUERY_TOKEN_SECRET"),
        },
        "logging": {
            "level": os.getenv("LOG_LEVEL", "INFO"),
            "enable_structured_logging": os.getenv(
                "ENABLE_STRUCTURED_LOGGING", "true"
            ).lower()
            == "true",
        },
        "environment": os.getenv("ENVIRONMENT", "development"),
        "debug": os.getenv("DEBUG", "false").lower() == "true",
    }

    return AppConfig(**config_dict)


config = load_config()
