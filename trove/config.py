"""Configuration loading.

The config file is YAML::

    plugins:
      sources:
        - trove.plugins.storage_memory
        - ./plugins
      config:
        memory-storage: {}
    storage:
      events: {plugin: memory-storage, options: {}}
      files: {plugin: memory-storage}
      links: use-event-storage
    logging:
      level: INFO

Relative filesystem sources are resolved against the config file's directory.
"""

import os
from pathlib import Path

import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from trove.core.errors import ConfigurationError
from trove.core.types import CoreConfig
from trove.utils.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_CONFIG_PATH = "trove.yaml"


def _is_path_source(source: str) -> bool:
    return (
        source.startswith((".", "/", "~"))
        or "/" in source
        or "\\" in source
        or source.endswith(".py")
    )


def _resolve_source(source: str, base_dir: Path) -> str:
    if not _is_path_source(source):
        return source  # dotted module path
    path = Path(source).expanduser()
    if path.is_absolute():
        return str(path)
    resolved = (base_dir / path).resolve()
    logger.debug(
        "Resolved relative plugin source",
        extra={"source": source, "resolved": str(resolved)},
    )
    return str(resolved)


def load_config(path: str | os.PathLike[str] | None = None) -> CoreConfig:
    """Load and normalize the configuration file.

    Args:
        path: Config file path; defaults to $TROVE_CONFIG, then ``trove.yaml``

    Raises:
        ConfigurationError: If the file is missing, unparsable or invalid
    """
    load_dotenv()
    config_path = Path(path or os.getenv("TROVE_CONFIG", DEFAULT_CONFIG_PATH)).resolve()
    logger.info("Loading configuration", extra={"config_file": str(config_path)})

    if not config_path.is_file():
        logger.error("Configuration file not found", extra={"config_file": str(config_path)})
        raise ConfigurationError(f"Configuration file not found at: {config_path}")

    try:
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        logger.error(
            "Failed to parse configuration YAML",
            extra={"config_file": str(config_path), "error": str(e)},
        )
        raise ConfigurationError(f"Configuration loading failed: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError("Configuration file must contain a mapping")

    try:
        config = CoreConfig.model_validate(data)
    except ValidationError as e:
        logger.error(
            "Invalid configuration",
            extra={"config_file": str(config_path), "error": str(e)},
        )
        raise ConfigurationError(f"Configuration loading failed: {e}") from e

    config.plugins.sources = [
        _resolve_source(source, config_path.parent) for source in config.plugins.sources
    ]

    # Environment overrides file settings
    if os.getenv("LOG_LEVEL"):
        config.logging.level = os.environ["LOG_LEVEL"]
    if os.getenv("LOG_FILE"):
        config.logging.file = os.environ["LOG_FILE"]

    logger.info("Configuration loaded successfully", extra={"config_file": str(config_path)})
    return config
