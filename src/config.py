"""Configuration management for the lytnit link shortener.

This module handles loading configuration from environment variables and config files,
with sensible defaults for optional values.
"""

import logging
import os
import tomllib
from pathlib import Path
from typing import Optional
from typing import TypedDict

from src.id_generator import DEFAULT_SEED, MAX_ATTEMPTS

# Configure logging
logger = logging.getLogger(__name__)

_TRUTHY = {"1", "true", "yes", "on"}


class _ConfigValues(TypedDict):
    storage_path: str
    custom_domain: str | None
    listen_port: int
    seed: str
    max_attempts: int
    counter_url: str | None
    conflict_on_check_error: bool


def _defaults() -> _ConfigValues:
    return {
        "storage_path": "",  # Will be set from env/file or raise error
        "custom_domain": None,
        "listen_port": 8080,
        "seed": DEFAULT_SEED,
        "max_attempts": MAX_ATTEMPTS,
        "counter_url": None,
        "conflict_on_check_error": False,
    }


class ConfigError(Exception):
    """Raised when configuration is invalid or missing required values."""

    pass


class Config:
    """Configuration for the lytnit link shortener.

    Configuration is loaded with the following priority:
    1. Environment variables (highest priority)
    2. Configuration file (TOML format)
    3. Default values (lowest priority)

    Required configuration:
    - storage_path: Directory where the link and counter databases live

    Optional configuration:
    - custom_domain: Domain for short URLs (e.g., "lytn.it")
    - listen_port: Port for HTTP server (default: 8080)
    - seed: Allocation namespace seed (default: "lytnit")
    - max_attempts: ID collisions tolerated per allocation (default: 10)
    - counter_url: Base URL of a remote counter service (default: local SQLite)
    - conflict_on_check_error: Treat failed existence checks as collisions
    """

    def __init__(
        self,
        storage_path: str,
        custom_domain: Optional[str] = None,
        listen_port: int = 8080,
        seed: str = DEFAULT_SEED,
        max_attempts: int = MAX_ATTEMPTS,
        counter_url: Optional[str] = None,
        conflict_on_check_error: bool = False,
    ):
        self.storage_path = storage_path
        self.custom_domain = custom_domain
        self.listen_port = listen_port
        self.seed = seed
        self.max_attempts = max_attempts
        self.counter_url = counter_url
        self.conflict_on_check_error = conflict_on_check_error

    @classmethod
    def from_env_and_file(cls, config_file: Optional[str] = None) -> "Config":
        """Load configuration from environment variables and optional config file.

        Environment variables take precedence over config file values.

        Environment variables:
        - STORAGE_PATH: Directory for databases (required)
        - CUSTOM_DOMAIN: Domain for short URLs (optional)
        - LISTEN_PORT: HTTP server port (optional, default: 8080)
        - SEED: Allocation seed (optional, default: "lytnit")
        - MAX_ATTEMPTS: Collision limit per allocation (optional, default: 10)
        - COUNTER_URL: Remote counter service base URL (optional)
        - CONFLICT_ON_CHECK_ERROR: Truthy to treat check errors as collisions

        Args:
            config_file: Path to TOML config file (optional)

        Returns:
            Config instance with loaded values

        Raises:
            ConfigError: If required configuration is missing or invalid
        """
        config_values = _defaults()

        if config_file:
            file_config = cls._load_from_file(config_file)
            config_values.update(file_config)

        if "STORAGE_PATH" in os.environ:
            config_values["storage_path"] = os.environ["STORAGE_PATH"]

        if not config_values["storage_path"]:
            raise ConfigError("STORAGE_PATH is required")
        if "CUSTOM_DOMAIN" in os.environ:
            config_values["custom_domain"] = os.environ["CUSTOM_DOMAIN"]
        if "LISTEN_PORT" in os.environ:
            config_values["listen_port"] = cls._parse_int(
                "LISTEN_PORT", os.environ["LISTEN_PORT"]
            )
        if "SEED" in os.environ:
            config_values["seed"] = os.environ["SEED"]
        if "MAX_ATTEMPTS" in os.environ:
            config_values["max_attempts"] = cls._parse_int(
                "MAX_ATTEMPTS", os.environ["MAX_ATTEMPTS"]
            )
        if "COUNTER_URL" in os.environ:
            config_values["counter_url"] = os.environ["COUNTER_URL"] or None
        if "CONFLICT_ON_CHECK_ERROR" in os.environ:
            config_values["conflict_on_check_error"] = (
                os.environ["CONFLICT_ON_CHECK_ERROR"].lower() in _TRUTHY
            )

        if config_values["custom_domain"]:
            cls._validate_custom_domain(config_values["custom_domain"])

        if not (1 <= config_values["listen_port"] <= 65535):
            logger.error(f"Invalid listen_port: {config_values['listen_port']}")
            raise ConfigError("Invalid listen_port: must be between 1 and 65535")

        if not config_values["seed"]:
            logger.error("Seed cannot be empty")
            raise ConfigError("Invalid seed: must be a non-empty string")

        if config_values["max_attempts"] < 1:
            logger.error(f"Invalid max_attempts: {config_values['max_attempts']}")
            raise ConfigError("Invalid max_attempts: must be at least 1")

        logger.info(
            f"Configuration loaded: storage_path={config_values['storage_path']}, "
            f"custom_domain={config_values['custom_domain']}, "
            f"listen_port={config_values['listen_port']}, "
            f"seed={config_values['seed']}"
        )

        return cls(**config_values)

    @staticmethod
    def _parse_int(name: str, value: str) -> int:
        try:
            return int(value)
        except ValueError:
            raise ConfigError(f"Invalid {name}: must be an integer")

    @staticmethod
    def _load_from_file(config_file: str) -> dict:
        """Load configuration from TOML file.

        Args:
            config_file: Path to TOML config file

        Returns:
            Dictionary of the configuration values present in the file

        Raises:
            ConfigError: If file cannot be read or parsed
        """
        try:
            with open(config_file, "rb") as f:
                data = tomllib.load(f)
        except FileNotFoundError:
            raise ConfigError(f"Config file not found: {config_file}")
        except (OSError, tomllib.TOMLDecodeError) as e:
            raise ConfigError(f"Failed to parse config file: {e}")

        config = {key: data[key] for key in _defaults() if key in data}
        if "conflict_on_check_error" in config:
            config["conflict_on_check_error"] = bool(config["conflict_on_check_error"])
        for key in ("listen_port", "max_attempts"):
            if key in config and not isinstance(config[key], int):
                raise ConfigError(f"Invalid {key}: must be an integer")

        return config

    @staticmethod
    def _validate_custom_domain(domain: str) -> None:
        """Validate custom domain format.

        Args:
            domain: Domain name to validate

        Raises:
            ConfigError: If domain format is invalid
        """
        if not domain:
            logger.error("Custom domain cannot be empty")
            raise ConfigError("Custom domain cannot be empty")

        # Basic validation: no protocol, no path, no port
        if "://" in domain:
            logger.error(f"Invalid custom domain (contains protocol): {domain}")
            raise ConfigError(
                "Custom domain should not include protocol (http:// or https://)"
            )
        if "/" in domain:
            logger.error(f"Invalid custom domain (contains path): {domain}")
            raise ConfigError("Custom domain should not include path")
        if ":" in domain:
            logger.error(f"Invalid custom domain (contains port): {domain}")
            raise ConfigError("Custom domain should not include port")

        if not all(c.isalnum() or c in ".-" for c in domain):
            logger.error(f"Invalid custom domain (invalid characters): {domain}")
            raise ConfigError("Custom domain contains invalid characters")

        logger.debug(f"Custom domain validated: {domain}")

    def validate_storage_path(self) -> None:
        """Validate that storage path exists and is writable.

        Raises:
            ConfigError: If storage path is invalid or not writable
        """
        path = Path(self.storage_path)

        try:
            path.mkdir(parents=True, exist_ok=True)
            logger.info(f"Storage path validated: {self.storage_path}")
        except Exception as e:
            logger.error(f"Cannot create storage directory: {e}")
            raise ConfigError(f"Cannot create storage directory: {e}")

        if not os.access(path, os.W_OK):
            logger.error(f"Storage path is not writable: {self.storage_path}")
            raise ConfigError(f"Storage path is not writable: {self.storage_path}")

    def __repr__(self) -> str:
        """String representation of configuration."""
        return (
            f"Config(storage_path={self.storage_path!r}, "
            f"custom_domain={self.custom_domain!r}, "
            f"listen_port={self.listen_port}, "
            f"seed={self.seed!r}, "
            f"max_attempts={self.max_attempts}, "
            f"counter_url={self.counter_url!r})"
        )
