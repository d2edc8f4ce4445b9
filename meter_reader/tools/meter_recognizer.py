from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from .image_codec import ImageCodec, StagedImage
from ..clients import VisionClient, build_client
from ..config import ConfigManager

NUMBER = re.compile(r"-?\d+(?:[.,]\d+)?")


class RecognitionFailure(Enum):
    CLIENT_ERROR = "client_error"
    EMPTY_RESPONSE = "empty_response"
    UNPARSEABLE = "unparseable"


@dataclass(frozen=True)
class RecognitionResult:
    """Either a numeric reading or the reason none could be produced."""
    value: Optional[float] = None
    failure: Optional[RecognitionFailure] = None
    detail: str = ""
    raw_text: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    @classmethod
    def success(cls, value: float, raw_text: Optional[str] = None) -> 'RecognitionResult':
        return cls(value=value, raw_text=raw_text)

    @classmethod
    def failed(cls, failure: RecognitionFailure, detail: str,
               raw_text: Optional[str] = None) -> 'RecognitionResult':
        return cls(failure=failure, detail=detail, raw_text=raw_text)


def coerce_reading(value: Any) -> Optional[float]:
    """Turn a model-supplied reading into a float, or None."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        match = NUMBER.search(value.replace(" ", ""))
        if match:
            return float(match.group(0).replace(",", "."))
    return None


class MeterRecognizer:
    """Reads the register value of a meter photo with a vision model."""

    def __init__(self, client: VisionClient, codec: ImageCodec, prompt_config: Dict[str, Any],
                 model_params: Optional[Dict[str, Any]] = None, max_concurrent_requests: int = 10):
        """
        Initialize the recognizer.

        Args:
            client: Vision model client (Azure OpenAI or Bedrock)
            codec: Codec used to encode staged images for the client
            prompt_config: Prompt settings (main_prompt, system_prompt, response_key)
            model_params: max_tokens / temperature for the call
            max_concurrent_requests: Maximum number of concurrent model requests
        """
        self.client = client
        self.codec = codec
        self.prompt_config = prompt_config
        self.model_params = model_params or {}
        self.response_key = prompt_config.get("response_key", "reading")
        self.logger = logging.getLogger(__name__)

        self.semaphore = asyncio.Semaphore(max_concurrent_requests)

    @classmethod
    def from_config(cls, config_manager: ConfigManager, codec: ImageCodec) -> 'MeterRecognizer':
        recognition_config = config_manager.get_recognition_config()
        client_type = recognition_config.get("client_type", "azure")

        return cls(
            client=build_client(config_manager, client_type),
            codec=codec,
            prompt_config=config_manager.get_prompt_config(recognition_config.get("prompt", "meter_reading")),
            model_params=recognition_config.get("model_params", {}),
            max_concurrent_requests=recognition_config.get("max_concurrent_requests", 10),
        )

    def _fallback_parser(self, text: str) -> Dict[str, Any]:
        """Use the first number in a free-text answer."""
        match = NUMBER.search(text)
        return {self.response_key: match.group(0) if match else None}

    def parse_reading(self, text: str) -> Optional[float]:
        parsed = self.client.parse_json_response(text, self._fallback_parser)
        return coerce_reading(parsed.get(self.response_key))

    async def recognize(self, staged: StagedImage) -> RecognitionResult:
        """
        Ask the model for the meter reading of a staged image.

        Never raises: client faults and unusable answers come back as failures.
        """
        async with self.semaphore:
            try:
                image_data = await asyncio.to_thread(self.codec.encode, staged)
                response = await asyncio.to_thread(
                    self.client.invoke_model,
                    prompt=self.prompt_config["main_prompt"],
                    max_tokens=self.model_params.get("max_tokens", 100),
                    temperature=self.model_params.get("temperature", 0.0),
                    images=[image_data],
                    system_prompt=self.prompt_config.get("system_prompt"),
                )
            except Exception as e:
                self.logger.error(f"Recognition call failed for {staged.name}: {e}")
                return RecognitionResult.failed(RecognitionFailure.CLIENT_ERROR, str(e))

        text = (response.get("text") or "").strip()
        if not text:
            self.logger.warning(f"Empty recognition response for {staged.name}")
            return RecognitionResult.failed(RecognitionFailure.EMPTY_RESPONSE, "Model returned no text")

        value = self.parse_reading(text)
        if value is None:
            self.logger.warning(f"Unparseable recognition response for {staged.name}: {text!r}")
            return RecognitionResult.failed(RecognitionFailure.UNPARSEABLE, "No numeric reading in response", text)

        self.logger.info(
            f"Recognised {staged.name} as {value} "
            f"({response.get('input_tokens', 0)} in / {response.get('output_tokens', 0)} out tokens, "
            f"${response.get('total_cost', 0.0):.4f})")
        return RecognitionResult.success(value, text)
