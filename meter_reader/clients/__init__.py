from .base import VisionClient
from .azure_openai_client import AzureOpenAIClient
from .bedrock_client import BedrockClient
from .keyvault_client import KeyVaultClient


def build_client(config_manager, client_type: str) -> VisionClient:
    """Create the vision client named by recognition_config.yaml."""
    if client_type.lower() == "azure":
        return AzureOpenAIClient.from_config(config_manager)
    if client_type.lower() == "aws":
        return BedrockClient.from_config(config_manager)
    raise ValueError(f"Unsupported client type: {client_type}. Must be 'aws' or 'azure'")


__all__ = ["VisionClient", "AzureOpenAIClient", "BedrockClient", "KeyVaultClient", "build_client"]
