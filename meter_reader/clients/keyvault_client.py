from __future__ import annotations

import logging
from typing import Optional, Any

from azure.identity import DefaultAzureCredential
from azure.keyvault.secrets import SecretClient


class KeyVaultClient:
    """Azure Key Vault lookup for the recognition API key."""

    def __init__(self, vault_url: str, credential: Optional[Any] = None):
        """
        Initialize the Key Vault client.

        Args:
            vault_url: The Key Vault URL
            credential: Azure credential (will use DefaultAzureCredential if None)
        """
        self.vault_url = vault_url
        self.credential = credential or DefaultAzureCredential()
        self.client = SecretClient(vault_url=vault_url, credential=self.credential)
        logging.info(f"Key Vault client initialized for: {vault_url}")

    def get_secret(self, secret_name: str) -> Optional[str]:
        """
        Get a secret from Key Vault.

        Returns:
            The secret value, or None if it cannot be retrieved
        """
        try:
            return self.client.get_secret(secret_name).value
        except Exception as e:
            # Callers fall back to environment variables
            logging.warning(f"Failed to retrieve secret '{secret_name}': {str(e)}")
            return None

    @classmethod
    def from_config(cls, config_manager) -> 'KeyVaultClient':
        """Create a Key Vault client from azure_config.yaml."""
        vault_name = config_manager.get_azure_config().get("keyvault", {}).get("name")

        if not vault_name:
            raise ValueError("Key Vault name not configured in azure_config.yaml")

        return cls(vault_url=f"https://{vault_name}.vault.azure.net/")
