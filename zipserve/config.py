from __future__ import annotations

import logging
import os
import re
from pathlib import Path

import yaml
from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from zipserve.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def expand_env_vars(config_str: str) -> str:
    """
    Expand environment variables in the format ${VAR_NAME} within a YAML string.
    Skips expansion in YAML comments (lines starting with #).

    Args:
        config_str: YAML configuration string potentially containing ${VAR_NAME} placeholders

    Returns:
        YAML string with all ${VAR_NAME} placeholders expanded to environment variable values

    Raises:
        KeyError: If a referenced environment variable is not set
    """
    def replace_var(match: re.Match[str]) -> str:
        var_name = match.group(1)
        try:
            return os.environ[var_name]
        except KeyError:
            msg = f"Environment variable '{var_name}' referenced in config.yaml but not set"
            raise KeyError(msg) from None

    lines = []
    for line in config_str.split('\n'):
        stripped = line.lstrip()
        if stripped.startswith('#'):
            lines.append(line)
        else:
            lines.append(re.sub(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}", replace_var, line))

    return '\n'.join(lines)


def load_config_from_yaml(config_path: str | None = None) -> dict:
    """
    Load YAML configuration file and expand environment variables.

    Args:
        config_path: Path to config.yaml file. If None, uses CONFIG_PATH environment variable.
                     Defaults to /app/config.yaml if neither is set.

    Returns:
        Dictionary containing the parsed configuration

    Raises:
        FileNotFoundError: If config file is not found
        ValueError: If the YAML is invalid, not a mapping, or references unset variables
    """
    if config_path is None:
        config_path = os.environ.get("CONFIG_PATH", "/app/config.yaml")

    config_file = Path(config_path)
    if not config_file.exists():
        msg = (
            f"Configuration file not found at {config_path}\n"
            f"Use CONFIG_PATH environment variable to override location."
        )
        raise FileNotFoundError(msg)

    with open(config_file) as f:
        config_str = f.read()

    try:
        expanded_config = expand_env_vars(config_str)
    except KeyError as e:
        msg = f"Error expanding environment variables in config.yaml: {e}"
        raise ValueError(msg) from None

    try:
        config_dict = yaml.safe_load(expanded_config)
    except yaml.YAMLError as e:
        msg = f"Invalid YAML in config.yaml: {e}"
        raise ValueError(msg) from None

    if not isinstance(config_dict, dict):
        msg = "config.yaml must contain a YAML mapping/dictionary at root level"
        raise ValueError(msg)

    return config_dict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=None,  # Disable .env file loading for Docker
        case_sensitive=False,  # Match environment variables case-insensitively
    )

    # Archive location
    results_directory: Path  # Required
    archive_extension: str = "zip"

    # Streaming
    stream_chunk_size: int = Field(
        default=64 * 1024,
        ge=1,
        description="Bytes read per chunk when streaming archive entries",
    )
    extra_media_types: dict[str, str] = Field(
        default_factory=dict,
        description="Extension -> media type mappings added to the built-in table",
    )

    environment: str = "development"  # Environment mode (development or production)

    # Observability
    log_level: str = "INFO"
    log_json: bool = True

    @field_validator("results_directory", mode="after")
    @classmethod
    def validate_results_directory(cls, v: Path) -> Path:
        """Results directory must be absolute; it is normalized but never resolved."""
        if not v.is_absolute():
            msg = f"results.directory must be an absolute path, got {v}"
            raise ValueError(msg)
        return Path(os.path.normpath(v))

    @field_validator("archive_extension", mode="after")
    @classmethod
    def validate_archive_extension(cls, v: str) -> str:
        """Accept "zip" or ".zip"; reject empty or path-like extensions."""
        extension = v.strip().removeprefix(".")
        if not extension or "/" in extension or "." in extension:
            msg = f"results.archive_extension must be a single extension like 'zip', got {v!r}"
            raise ValueError(msg)
        return extension

    @field_validator("log_level", mode="after")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            msg = f"logging.level must be a standard level name, got {v!r}"
            raise ValueError(msg)
        return level


def _flatten_config(config_dict: dict) -> dict:
    """Flatten the nested config.yaml structure into Settings field names."""
    flat_config: dict = {}

    results = config_dict.get("results")
    if isinstance(results, dict):
        if "directory" in results:
            flat_config["results_directory"] = results["directory"]
        if "archive_extension" in results:
            flat_config["archive_extension"] = results["archive_extension"]

    streaming = config_dict.get("streaming")
    if isinstance(streaming, dict) and "chunk_size" in streaming:
        flat_config["stream_chunk_size"] = streaming["chunk_size"]

    media_types = config_dict.get("media_types")
    if isinstance(media_types, dict):
        flat_config["extra_media_types"] = {str(k): str(v) for k, v in media_types.items()}

    logging_config = config_dict.get("logging")
    if isinstance(logging_config, dict):
        flat_config["log_level"] = logging_config.get("level", "INFO")
        flat_config["log_json"] = logging_config.get("json", True)

    flat_config["environment"] = config_dict.get("environment", "development")

    return flat_config


def _build_settings_from_yaml(config_path: str | None = None) -> Settings:
    """Load settings from YAML config file with environment variable expansion."""
    try:
        config_dict = load_config_from_yaml(config_path)
    except (FileNotFoundError, ValueError) as e:
        logger.error("Configuration error", extra={"error": str(e)})
        raise

    try:
        return Settings(**_flatten_config(config_dict))
    except ValidationError as e:
        msg = "Configuration validation error"
        raise ConfigurationError(
            msg,
            context={
                "config_file": config_path or os.environ.get("CONFIG_PATH", "/app/config.yaml"),
                "errors": [error["msg"] for error in e.errors()],
            },
        ) from e


_settings: Settings | None = None


def get_settings() -> Settings:
    """Get process-wide settings, loading config.yaml on first use."""
    global _settings

    if _settings is None:
        _settings = _build_settings_from_yaml()
    return _settings


def reset_settings_for_testing() -> None:
    """Forget cached settings so the next get_settings() reloads from disk."""
    global _settings
    _settings = None
