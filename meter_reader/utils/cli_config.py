"""CLI Configuration Utility for the meter reader server."""

import argparse
from typing import Any, Dict, List, Optional


class CLIConfig:
    """Handles command line argument parsing and configuration merging."""

    def __init__(self, config_manager):
        self.config_manager = config_manager
        self.server_config = config_manager.get_server_config()

    @staticmethod
    def create_parser() -> argparse.ArgumentParser:
        """Create and configure the argument parser."""
        parser = argparse.ArgumentParser(
            description="Meter Reader - upload, recognise and confirm utility meter readings",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog="""
Examples:
  # Serve with the settings from configs/app_config.yaml
  python main.py

  # Serve on another port with debug logging
  python main.py --port 8080 --log-level DEBUG

  # Use a different configuration directory
  python main.py --config-dir /etc/meter-reader
            """
        )

        parser.add_argument(
            "--config-dir",
            help="Directory containing the YAML configuration files (default: ./configs)"
        )

        parser.add_argument(
            "--host",
            help="Interface to bind (default: from config)"
        )

        parser.add_argument(
            "--port",
            type=int,
            help="Port to listen on (default: from config)"
        )

        parser.add_argument(
            "--log-level",
            choices=["DEBUG", "INFO", "WARNING", "ERROR"],
            help="Override the configured logging level"
        )

        parser.add_argument(
            "--reload",
            action="store_true",
            help="Restart the server when source files change (development only)"
        )

        return parser

    def resolve_config(self, args) -> Dict[str, Any]:
        """Resolve final configuration by merging CLI args with config defaults."""
        return {
            "host": args.host or self.server_config["host"],
            "port": args.port or int(self.server_config["port"]),
            "log_level": args.log_level,
            "reload": args.reload,
        }

    @classmethod
    def parse_args(cls, argv: Optional[List[str]] = None) -> argparse.Namespace:
        return cls.create_parser().parse_args(argv)
