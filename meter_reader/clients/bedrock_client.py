from __future__ import annotations

import json
import logging
from typing import Optional, Dict, Any, List

import boto3
from botocore.config import Config

from .base import VisionClient


class BedrockClient(VisionClient):

    def __init__(self, model_id: str, region_name: Optional[str] = 'ap-southeast-2',
                 pricing_config: Optional[Dict[str, float]] = None,
                 timeout: int = 60, retry_attempts: int = 0) -> None:
        """
        Initialize the Bedrock client.

        Args:
            model_id: The model ID to use (e.g., 'anthropic.claude-3-5-sonnet-20241022-v2:0')
            region_name: AWS region name (optional, will use default if not specified)
            pricing_config: Optional pricing configuration for cost calculation
            timeout: Read timeout in seconds
            retry_attempts: botocore retry attempts (0 leaves retries to the caller)
        """
        self.model_id = model_id
        self.region_name = region_name
        self.pricing_config = pricing_config or {
            "input_price_per_1k": 0.003,
            "output_price_per_1k": 0.015
        }

        boto_config = Config(read_timeout=timeout, retries={"max_attempts": retry_attempts})
        try:
            if region_name:
                self.client = boto3.client('bedrock-runtime', region_name=region_name, config=boto_config)
            else:
                self.client = boto3.client('bedrock-runtime', config=boto_config)
            logging.info(f"Bedrock client initialized successfully for model: {model_id}")
        except Exception as e:
            logging.error(f"Failed to initialize Bedrock client: {str(e)}")
            raise

    @classmethod
    def from_config(cls, config_manager) -> 'BedrockClient':
        """Create a Bedrock client from configuration."""
        bedrock_config = config_manager.get_bedrock_client_config()

        return cls(
            model_id=bedrock_config["model_id"],
            region_name=bedrock_config["region_name"],
            pricing_config=config_manager.get_pricing_config(),
            timeout=bedrock_config["timeout"],
            retry_attempts=bedrock_config["retry_attempts"]
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
        Invoke the model with a prompt and optional images in one message.

        Args:
            prompt: The text prompt to send to the model
            max_tokens: Maximum number of tokens to generate
            temperature: Controls randomness (0.0 = deterministic)
            images: Optional list of dicts with 'name', 'data' (base64) and optional 'mime_type'
            system_prompt: Optional system prompt

        Returns:
            Dictionary with the generated 'text' plus token usage and cost
        """
        content: List[Dict[str, Any]] = []

        for image_info in images or []:
            if not self._is_base64(image_info['data']):
                raise ValueError(f"Image data for {image_info['name']} is not base64 encoded")
            content.append({
                "type": "image",
                "source": {
                    "type": "base64",
                    "media_type": image_info.get("mime_type", "image/png"),
                    "data": image_info['data']
                }
            })

        content.append({"type": "text", "text": prompt.strip()})

        request_body: Dict[str, Any] = {
            "anthropic_version": "bedrock-2023-05-31",
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [{"role": "user", "content": content}]
        }
        if system_prompt and system_prompt.strip():
            request_body["system"] = system_prompt.strip()

        try:
            response = self.client.invoke_model(
                modelId=self.model_id,
                body=json.dumps(request_body),
                contentType='application/json',
                accept='application/json'
            )
        except Exception as e:
            logging.error(f"Failed to invoke model: {str(e)}")
            raise

        return self._parse_response(response)

    def _parse_response(self, response: Any) -> Dict[str, Any]:
        """Parse a single model response."""
        response_body = json.loads(response['body'].read())

        usage = response_body.get("usage", {})
        input_tokens = usage.get("inputTokens") or usage.get("input_tokens", 0)
        output_tokens = usage.get("outputTokens") or usage.get("output_tokens", 0)

        text_blocks = [block.get("text", "") for block in response_body.get("content", [])
                       if block.get("type") == "text"]

        result = {"text": "".join(text_blocks)}
        result.update(self._usage(input_tokens, output_tokens))
        return result
