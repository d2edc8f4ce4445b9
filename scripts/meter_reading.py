#!/usr/bin/env python3
"""
Meter Reading Check Script

Runs the configured recognition backend against local meter photos without
starting the API, to check prompts and credentials.
"""

import argparse
import asyncio
import base64
import logging
import os
import sys
from pathlib import Path

# Add the project root to the Python path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from meter_reader.config import ConfigManager
from meter_reader.tools import ImageCodec, MeterRecognizer
from meter_reader.utils import setup_logging

SUPPORTED_SUFFIXES = {".jpg", ".jpeg", ".png", ".webp"}


async def read_image(recognizer: MeterRecognizer, codec: ImageCodec, image_path: Path) -> None:
    payload = base64.b64encode(image_path.read_bytes()).decode("utf-8")
    staged = codec.stage(payload)
    try:
        result = await recognizer.recognize(staged)
    finally:
        codec.release(staged)

    if result.ok:
        print(f"{image_path.name}: {result.value}")
    else:
        print(f"{image_path.name}: FAILED ({result.failure.value}) {result.detail}")


async def main():
    """Recognise every image in a file or folder."""
    parser = argparse.ArgumentParser(description="Read meter values from local images")
    parser.add_argument("path", help="Image file or folder of images")
    parser.add_argument("--config-dir", help="Directory containing the YAML configuration files")
    args = parser.parse_args()

    config_manager = ConfigManager(args.config_dir)
    setup_logging(config_manager)

    codec = ImageCodec.from_config(config_manager)
    recognizer = MeterRecognizer.from_config(config_manager, codec)

    target = Path(args.path)
    if target.is_dir():
        images = sorted(p for p in target.rglob("*") if p.suffix.lower() in SUPPORTED_SUFFIXES)
    else:
        images = [target]

    if not images or not images[0].exists():
        logging.error(f"No images found at {target}")
        return

    logging.info(f"Reading {len(images)} image(s) from: {target}")
    await asyncio.gather(*(read_image(recognizer, codec, image) for image in images))


if __name__ == "__main__":
    asyncio.run(main())
