from .cli import setup_logging
from .cli_config import CLIConfig

__all__ = ["setup_logging", "CLIConfig"]
