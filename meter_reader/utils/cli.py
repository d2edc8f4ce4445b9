"""
CLI utility functions for the server entry point and scripts.
"""

import logging
from typing import Optional


def setup_logging(config_manager, level_override: Optional[str] = None) -> None:
    """Setup logging configuration from config manager."""
    logging_config = config_manager.get_logging_config()

    level_name = (level_override or logging_config.get("level", "INFO")).upper()
    main_level = getattr(logging, level_name, logging.INFO)
    logging.basicConfig(
        level=main_level,
        format=logging_config.get("format", "%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    )

    # Apply specific logger level controls to reduce verbose output
    logger_levels = logging_config.get("logger_levels", {})
    for logger_name, level_name in logger_levels.items():
        level = getattr(logging, str(level_name).upper(), None)
        if not isinstance(level, int):
            # Fallback to WARNING if invalid level
            level = logging.WARNING
        logging.getLogger(logger_name).setLevel(level)
