"""
Configuration for schemagen.

All settings can be overridden with SCHEMAGEN_* environment variables,
e.g. SCHEMAGEN_LOG_FORMAT=json.
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """schemagen configuration."""

    # Logging
    log_level: str = Field(default="INFO")
    log_format: Literal["text", "json"] = Field(default="text")

    # Output file names used by `schemagen compile --out-dir`
    graphql_filename: str = Field(default="schema.graphql")
    dgraph_filename: str = Field(default="schema.dgraph")

    model_config = {"env_prefix": "SCHEMAGEN_"}


def get_settings() -> Settings:
    """Load settings from the environment."""
    return Settings()
