#!/usr/bin/env python3
"""Main entry point for the lytnit link shortener.

This module initializes all components and starts the HTTP server.
"""

import logging
import sys
from pathlib import Path

from src.app import run_server
from src.config import Config, ConfigError
from src.counter import CounterSourceUnavailable, CounterStore
from src.id_generator import IDGenerator
from src.link_handler import LinkHandler
from src.remote_counter import RemoteCounterSource
from src.storage import Storage, StorageError

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

logger = logging.getLogger(__name__)


def build_counter_source(config: Config):
    """Create the counter source selected by configuration."""
    if config.counter_url:
        logger.info(f"Using remote counter service at {config.counter_url}")
        return RemoteCounterSource(config.counter_url)

    database_path = Path(config.storage_path) / "counters.db"
    logger.info(f"Using local counter store at {database_path}")
    return CounterStore(str(database_path))


def main():
    """Main entry point for the application."""
    logger.info("Starting lytnit link shortener...")

    try:
        logger.info("Loading configuration...")
        config_file = "config.toml" if Path("config.toml").exists() else None
        config = Config.from_env_and_file(config_file)
        logger.info(f"Configuration loaded: {config}")

        logger.info("Validating storage path...")
        config.validate_storage_path()

        logger.info("Initializing storage...")
        database_path = Path(config.storage_path) / "links.db"
        storage = Storage(str(database_path))

        logger.info("Initializing counter source...")
        counter_source = build_counter_source(config)

        id_generator = IDGenerator(
            counter_source,
            seed=config.seed,
            max_attempts=config.max_attempts,
            conflict_on_check_error=config.conflict_on_check_error,
        )
        logger.info(f"ID generator initialized for seed {config.seed!r}")

        link_handler = LinkHandler(storage, id_generator, config)

        logger.info(f"Starting HTTP server on port {config.listen_port}...")
        logger.info(
            f"Short link domain: {config.custom_domain or 'Not configured (using default)'}"
        )

        run_server(config, link_handler)

    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        logger.error("Please check your configuration and try again")
        sys.exit(1)
    except (StorageError, CounterSourceUnavailable) as e:
        logger.error(f"Storage initialization error: {e}")
        logger.error("Please check your storage path and database permissions")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Shutting down gracefully...")
        sys.exit(0)
    except Exception as e:
        logger.exception(f"Unexpected error during startup: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
