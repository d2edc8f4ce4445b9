from __future__ import annotations

import os
import yaml
from pathlib import Path
from typing import Dict, Any, Optional
import logging

logger = logging.getLogger(__name__)

CONFIG_DIR_ENV = "METER_READER_CONFIG_DIR"


class ConfigManager:
    """Manages configuration loading and access for the application."""

    def __init__(self, config_dir: Optional[str] = None):
        """
        Initialize the configuration manager.

        Args:
            config_dir: Directory containing configuration files. If None, uses
                        $METER_READER_CONFIG_DIR or the project root configs/
        """
        if config_dir is None:
            config_dir = os.getenv(CONFIG_DIR_ENV)

        if config_dir is None:
            # Resolve config directory relative to project root
            project_root = Path(__file__).parent.parent.parent
            self.config_dir = project_root / "configs"
        else:
            self.config_dir = Path(config_dir)

        self._configs: Dict[str, Dict[str, Any]] = {}

        if not self.config_dir.exists():
            raise FileNotFoundError(f"Configuration directory not found: {self.config_dir}")

    def load_config(self, config_name: str, subdirectory: Optional[str] = None) -> Dict[str, Any]:
        """
        Load a configuration file.

        Args:
            config_name: Name of the config file (without .yaml extension)
            subdirectory: Optional subdirectory within configs/

        Returns:
            Dictionary containing configuration data
        """
        cache_key = f"{subdirectory}/{config_name}" if subdirectory else config_name

        if cache_key in self._configs:
            return self._configs[cache_key]

        if subdirectory:
            config_path = self.config_dir / subdirectory / f"{config_name}.yaml"
        else:
            config_path = self.config_dir / f"{config_name}.yaml"

        try:
            with open(config_path, 'r', encoding='utf-8') as file:
                # An empty file loads as None
                config_data = yaml.safe_load(file) or {}

            self._configs[cache_key] = config_data
            logger.info(f"Loaded configuration: {config_path}")

            return config_data

        except FileNotFoundError:
            logger.error(f"Configuration file not found: {config_path}")
            raise
        except yaml.YAMLError as e:
            logger.error(f"Error parsing YAML file {config_path}: {e}")
            raise

    def get_app_config(self) -> Dict[str, Any]:
        """Get application configuration."""
        return self.load_config("app_config")

    def get_server_config(self) -> Dict[str, Any]:
        """
        Get HTTP server configuration.

        METER_READER_HOST and METER_READER_PORT override the file values.
        """
        server_config = dict(self.get_app_config().get("server", {}))
        server_config.setdefault("host", "0.0.0.0")
        server_config.setdefault("port", 3000)

        if os.getenv("METER_READER_HOST"):
            server_config["host"] = os.environ["METER_READER_HOST"]
        if os.getenv("METER_READER_PORT"):
            server_config["port"] = int(os.environ["METER_READER_PORT"])

        return server_config

    def get_image_processing_config(self) -> Dict[str, Any]:
        """Get image processing configuration."""
        return self.get_app_config().get("image_processing", {})

    def get_storage_config(self) -> Dict[str, Any]:
        """Get image staging and artifact storage configuration."""
        return self.get_app_config().get("storage", {})

    def get_logging_config(self) -> Dict[str, Any]:
        """Get logging configuration."""
        return self.get_app_config().get("logging", {})

    def get_recognition_config(self) -> Dict[str, Any]:
        """Get meter recognition configuration (client selection, concurrency, prompt)."""
        return self.load_config("recognition_config").get("recognition", {})

    def get_prompt_config(self, prompt_name: str = "meter_reading") -> Dict[str, Any]:
        """
        Get prompt configuration for the recognition model.

        Args:
            prompt_name: Name of the prompt file under configs/prompts/

        Returns:
            Prompt configuration dictionary
        """
        config_data = self.load_config(prompt_name, "prompts")

        if prompt_name not in config_data:
            raise ValueError(f"Prompt configuration not found: {prompt_name}")

        return config_data[prompt_name]

    def get_aws_config(self) -> Dict[str, Any]:
        """Get AWS and Bedrock configuration."""
        return self.load_config("aws_config")

    def get_bedrock_client_config(self) -> Dict[str, Any]:
        """Get configuration for initializing Bedrock client."""
        aws_config = self.get_aws_config()

        return {
            "region_name": aws_config["aws"]["region"],
            "model_id": aws_config["bedrock"]["default_model"],
            "timeout": aws_config["bedrock"].get("timeout", 60),
            "retry_attempts": aws_config["bedrock"].get("retry_attempts", 0)
        }

    def get_pricing_config(self, model_name: str = "claude_3_5_sonnet") -> Dict[str, Any]:
        """
        Get Bedrock pricing configuration for a model.

        Args:
            model_name: Name of the model

        Returns:
            Pricing configuration dictionary
        """
        pricing = self.get_aws_config().get("pricing", {})

        if model_name not in pricing:
            logger.warning(f"Pricing config not found for {model_name}, using defaults")
            return {"input_price_per_1k": 0.003, "output_price_per_1k": 0.015}

        return pricing[model_name]

    def get_azure_config(self) -> Dict[str, Any]:
        """Get Azure configuration."""
        return self.load_config("azure_config")

    def get_azure_openai_config(self) -> Dict[str, Any]:
        """Get Azure OpenAI specific configuration."""
        return self.get_azure_config().get("azure_openai", {})

    def get_azure_pricing_config(self) -> Dict[str, Any]:
        """Get Azure OpenAI pricing for the configured deployment."""
        azure_config = self.get_azure_openai_config()
        deployment_name = azure_config.get("deployment_name", "gpt-4o-mini")
        pricing = azure_config.get("pricing", {})

        if deployment_name in pricing:
            return pricing[deployment_name]

        return pricing.get("gpt-4o-mini", {
            "input_price_per_1k": 0.0001,
            "output_price_per_1k": 0.0002
        })

    def reload_config(self, config_name: str, subdirectory: Optional[str] = None) -> None:
        """
        Reload a specific configuration file.

        Args:
            config_name: Name of the config file to reload
            subdirectory: Optional subdirectory within configs/
        """
        cache_key = f"{subdirectory}/{config_name}" if subdirectory else config_name

        if cache_key in self._configs:
            del self._configs[cache_key]

        self.load_config(config_name, subdirectory)
        logger.info(f"Reloaded configuration: {cache_key}")

    def reload_all_configs(self) -> None:
        """Reload all cached configurations."""
        self._configs.clear()
        logger.info("Cleared all cached configurations")

    def list_available_configs(self) -> Dict[str, Any]:
        """List all available configuration files."""
        configs: Dict[str, Any] = {"root": [], "subdirectories": {}}

        for config_file in sorted(self.config_dir.glob("*.yaml")):
            configs["root"].append(config_file.stem)

        for subdir in sorted(self.config_dir.iterdir()):
            if subdir.is_dir():
                subdir_configs = [config_file.stem for config_file in sorted(subdir.glob("*.yaml"))]
                if subdir_configs:
                    configs["subdirectories"][subdir.name] = subdir_configs

        return configs

    def get_config(self, config_name: str, subdirectory: Optional[str] = None) -> Dict[str, Any]:
        """
        Get configuration data (alias for load_config for consistency).

        Args:
            config_name: Name of the config file (without .yaml extension)
            subdirectory: Optional subdirectory within configs/

        Returns:
            Dictionary containing configuration data
        """
        return self.load_config(config_name, subdirectory)
