"""centralized configuration management using pydantic settings.

this module provides type-safe, validated configuration for the sqlite agent.
configuration is loaded from environment variables, an optional .env file and
an optional yaml file.
"""

from functools import lru_cache
from pathlib import Path

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_ERROR_MARKERS = [
    '"isError":true',
    '"isError": true',
    "404 Not Found",
    "failed to",
]


class Settings(BaseSettings):
    """main settings class for the sqlite agent.

    configuration is loaded from environment variables prefixed with
    SQLITE_AGENT_. a .env file in the working directory is also loaded if
    present.

    attributes:
        log_level: logging level (DEBUG, INFO, WARNING, ERROR)
        default_max_iterations: loop bound when the caller passes none
        repeated_error_threshold: identical consecutive tool errors that abort
            the table-mode loop
        min_context_size: smallest chat context ever requested
        extraction_prompt_overhead: chars reserved for the extraction template
        safety_margin: extra chars reserved when sizing tool results
        min_conversation_space: floor for the conversation budget
        min_truncate_chars: lower bound of the per-tool-result limit
        max_truncate_chars: upper bound of the per-tool-result limit
        error_signature_chars: prefix length compared between tool errors
        extraction_history_chars: history prefix sent to the extraction call
        string_aware_scanning: ignore braces inside quoted strings when
            matching objects (False restores naive brace counting)
    """

    model_config = SettingsConfigDict(
        env_prefix="SQLITE_AGENT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # ignore extra env vars
        populate_by_name=True,
    )

    log_level: str = "WARNING"

    # agent loop
    default_max_iterations: int = 5
    repeated_error_threshold: int = Field(default=3, ge=1)
    continuation_message: str = "Continue"
    error_markers: list[str] = Field(default_factory=lambda: list(DEFAULT_ERROR_MARKERS))
    error_signature_chars: int = Field(default=200, ge=1)
    placeholder_preview_chars: int = Field(default=200, ge=0)
    string_aware_scanning: bool = True

    # context budget
    min_context_size: int = Field(default=4096, ge=1)
    extraction_prompt_overhead: int = 2000
    safety_margin: int = 1024
    min_conversation_space: int = 8192
    min_truncate_chars: int = Field(default=4096, ge=1)
    max_truncate_chars: int = Field(default=50000, ge=1)

    # extraction
    extraction_history_chars: int = Field(default=6000, ge=0)

    # embeddings and vector indices
    embedding_config: str = "embedding_type=FLOAT32"
    vector_type: str = "FLOAT32"
    vector_distance: str = "cosine"

    # openai-compatible providers
    openai_api_key: str | None = Field(default=None, alias="OPENAI_API_KEY")
    openai_base_url: str | None = Field(default=None, alias="OPENAI_BASE_URL")
    llm_model: str = "gpt-4o-mini"
    embedding_model: str = "text-embedding-3-small"
    embedding_dimension: int | None = None


@lru_cache
def get_settings() -> Settings:
    """get the singleton settings instance.

    uses lru_cache to ensure only one instance is created.
    call get_settings.cache_clear() to reload settings if needed.

    returns:
        the settings instance
    """
    return Settings()


def load_settings(path: str | Path | None = None) -> Settings:
    """build settings with overrides from a yaml file.

    the file's ``agent`` section (or the whole document when there is no such
    section) is applied on top of environment values. a missing file is not
    an error.

    args:
        path: yaml file to read, defaults to ./sqlite_agent.yaml

    returns:
        a new settings instance
    """
    config_path = Path(path) if path else Path("sqlite_agent.yaml")
    try:
        with open(config_path, "r") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        return Settings()

    overrides = data.get("agent", data) if isinstance(data, dict) else {}
    return Settings(**overrides)
