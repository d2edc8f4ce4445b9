#!/usr/bin/env python3
"""
Meter Reader - Main Entry Point

Loads configuration, sets up logging and serves the measurement API with uvicorn.
The recognition backend (Azure OpenAI or AWS Bedrock) is chosen in
configs/recognition_config.yaml.
"""

import logging
import os
import sys

import uvicorn

from meter_reader.api import create_app
from meter_reader.config import ConfigManager
from meter_reader.config.config_manager import CONFIG_DIR_ENV
from meter_reader.utils import CLIConfig, setup_logging


def main(argv=None):
    """Main entry function."""
    args = CLIConfig.parse_args(argv)

    if args.config_dir:
        # Exported so the --reload worker process resolves the same directory
        os.environ[CONFIG_DIR_ENV] = args.config_dir

    config_manager = ConfigManager(args.config_dir)
    setup_logging(config_manager, args.log_level)
    logger = logging.getLogger(__name__)

    settings = CLIConfig(config_manager).resolve_config(args)
    recognition_config = config_manager.get_recognition_config()

    logger.info("=" * 80)
    logger.info("METER READER")
    logger.info("=" * 80)
    logger.info(f"Listening on: {settings['host']}:{settings['port']}")
    logger.info(f"Recognition client: {recognition_config.get('client_type', 'azure').upper()}")
    logger.info(f"Max concurrent recognitions: {recognition_config.get('max_concurrent_requests', 10)}")
    logger.info("=" * 80)

    try:
        if settings["reload"]:
            uvicorn.run(
                "meter_reader.api.app:create_app",
                factory=True,
                host=settings["host"],
                port=settings["port"],
                reload=True,
                log_config=None,
            )
        else:
            uvicorn.run(
                create_app(config_manager),
                host=settings["host"],
                port=settings["port"],
                log_config=None,
            )
    except Exception as e:
        logger.error(f"Failed to start meter reader: {str(e)}")
        raise


if __name__ == "__main__":
    sys.exit(main())
