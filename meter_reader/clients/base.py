from __future__ import annotations

import base64
import binascii
import json
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional


class VisionClient(ABC):
    """Shared response handling for the multimodal model clients."""

    pricing_config: Dict[str, float]

    @abstractmethod
    def invoke_model(
        self,
        prompt: str,
        max_tokens: int = 300,
        temperature: float = 0.0,
        images: Optional[List[Dict[str, str]]] = None,
        system_prompt: Optional[str] = None
    ) -> Dict[str, Any]:
        """Send a prompt and images; return the answer text plus token usage and cost."""

    def _usage(self, input_tokens: int, output_tokens: int) -> Dict[str, Any]:
        """Token usage and cost using the configured per-1k pricing."""
        input_cost = input_tokens * (self.pricing_config["input_price_per_1k"] / 1000)
        output_cost = output_tokens * (self.pricing_config["output_price_per_1k"] / 1000)
        return {
            "input_tokens": input_tokens,
            "output_tokens": output_tokens,
            "total_tokens": input_tokens + output_tokens,
            "input_cost": input_cost,
            "output_cost": output_cost,
            "total_cost": input_cost + output_cost
        }

    @staticmethod
    def _is_base64(data: str) -> bool:
        """Check if a string is base64 encoded."""
        try:
            base64.b64decode(data, validate=True)
            return True
        except (binascii.Error, ValueError):
            return False

    @staticmethod
    def parse_json_response(response_text: str,
                            fallback_parser: Optional[Callable[[str], Dict[str, Any]]] = None) -> Dict[str, Any]:
        """
        Parse JSON response from model output, with fallback handling.

        Args:
            response_text: The raw text response from the model
            fallback_parser: Optional function to parse non-JSON responses

        Returns:
            Dictionary containing parsed response
        """
        start_idx = response_text.find('{')
        end_idx = response_text.rfind('}') + 1

        if start_idx != -1 and end_idx > start_idx:
            try:
                parsed = json.loads(response_text[start_idx:end_idx])
                if isinstance(parsed, dict):
                    return parsed
            except json.JSONDecodeError:
                pass

        if fallback_parser:
            return fallback_parser(response_text)
        return {"raw_text": response_text}
