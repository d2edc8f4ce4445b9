from __future__ import annotations

import os
import logging
from typing import Optional, Dict, Any, List

from openai import AzureOpenAI

from .base import VisionClient
from .keyvault_client import KeyVaultClient


class AzureOpenAIClient(VisionClient):

    def __init__(self, endpoint: str, deployment_name: str, api_key: str, api_version: str = "2024-02-15-preview",
                 pricing_config: Optional[Dict[str, float]] = None) -> None:
        """
        Initialize the Azure OpenAI client.

        Args:
            endpoint: The Azure OpenAI endpoint URL
            deployment_name: The deployment name to use
            api_key: The API key for authentication
            api_version: API version for Azure OpenAI
            pricing_config: Optional pricing configuration for cost calculation
        """
        self.endpoint = endpoint.rstrip('/')
        self.deployment_name = deployment_name
        self.api_version = api_version
        self.pricing_config = pricing_config or {
            "input_price_per_1k": 0.00015,
            "output_price_per_1k": 0.0006
        }

        self.client = AzureOpenAI(
            azure_endpoint=self.endpoint,
            api_key=api_key,
            api_version=self.api_version
        )

        logging.info(f"Azure OpenAI client initialized for deployment: {deployment_name}")

    @classmethod
    def from_config(cls, config_manager) -> 'AzureOpenAIClient':
        """
        Create an Azure OpenAI client from configuration.

        The API key is read from Key Vault when a vault name is configured,
        otherwise from AZURE_OPENAI_API_KEY.
        """
        azure_config = config_manager.get_azure_openai_config()
        vault_config = config_manager.get_azure_config().get("keyvault", {})

        api_key = None
        if vault_config.get("name"):
            vault = KeyVaultClient.from_config(config_manager)
            api_key = vault.get_secret(vault_config.get("api_key_secret", "azure-openai-api-key"))
        if not api_key:
            api_key = os.getenv("AZURE_OPENAI_API_KEY")
        if not api_key:
            raise ValueError("AZURE_OPENAI_API_KEY environment variable must be set")

        return cls(
            endpoint=os.getenv("AZURE_OPENAI_ENDPOINT") or azure_config["endpoint"],
            deployment_name=os.getenv("AZURE_OPENAI_DEPLOYMENT") or azure_config["deployment_name"],
            api_key=api_key,
            api_version=azure_config.get("api_version", "2024-02-15-preview"),
            pricing_config=config_manager.get_azure_pricing_config()
        )

    def invoke_model(
        self,
        prompt: str,
        max_tokens: int = 300,
        temperature: float = 0.0,
        images: Optional[List[Dict[str, str]]] = None,
        system_prompt: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Invoke the deployment with a prompt and optional images.

        Args:
            prompt: The text prompt to send to the model
            max_tokens: Maximum number of tokens to generate
            temperature: Controls randomness (0.0 = deterministic)
            images: Optional list of dicts with 'name', 'data' (base64) and optional 'mime_type'
            system_prompt: Optional system message

        Returns:
            Dictionary with the generated 'text' plus token usage and cost
        """
        content: List[Dict[str, Any]] = [{"type": "text", "text": prompt.strip()}]

        for image_info in images or []:
            if not self._is_base64(image_info['data']):
                raise ValueError(f"Image data for {image_info['name']} is not base64 encoded")
            mime_type = image_info.get("mime_type", "image/png")
            content.append({
                "type": "image_url",
                "image_url": {"url": f"data:{mime_type};base64,{image_info['data']}"}
            })

        messages: List[Dict[str, Any]] = []
        if system_prompt and system_prompt.strip():
            messages.append({"role": "system", "content": system_prompt.strip()})
        messages.append({"role": "user", "content": content})

        try:
            response = self.client.chat.completions.create(
                model=self.deployment_name,
                messages=messages,
                max_tokens=max_tokens,
                temperature=temperature
            )
        except Exception as e:
            logging.error(f"Failed to invoke model: {str(e)}")
            raise

        return self._parse_azure_response(response)

    def _parse_azure_response(self, response) -> Dict[str, Any]:
        """Parse an Azure OpenAI chat completion into text plus usage."""
        usage = response.usage
        input_tokens = usage.prompt_tokens if usage else 0
        output_tokens = usage.completion_tokens if usage else 0

        result = {"text": response.choices[0].message.content or ""}
        result.update(self._usage(input_tokens, output_tokens))
        return result
