"""Load service configuration from disk."""

from pathlib import Path

from loguru import logger

from polyinit.config.schema import Config

DEFAULT_CONFIG_NAME = "polyinit.json"


def get_config_path() -> Path:
    """Default configuration file: ``polyinit.json`` in the working directory."""
    return Path.cwd() / DEFAULT_CONFIG_NAME


def load_config(path: Path | None = None) -> Config:
    """Read a JSON service description.

    Raises:
        FileNotFoundError: If the file does not exist.
        pydantic.ValidationError: If the document does not describe a service.
    """
    config_path = path or get_config_path()
    logger.debug(f"Loading service config from {config_path}")
    return Config.model_validate_json(config_path.read_text(encoding="utf-8"))
