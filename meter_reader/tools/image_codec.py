from __future__ import annotations

import base64
import binascii
import io
import logging
import re
import shutil
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Tuple

from PIL import Image, ImageOps, UnidentifiedImageError

DEFAULT_IMAGE_MIME_TYPES = ("image/jpeg", "image/png", "image/webp", "image/heic", "image/heif")
FORMAT_SUFFIXES = {"JPEG": ".jpg", "PNG": ".png", "WEBP": ".webp"}
FORMAT_MIME_TYPES = {"JPEG": "image/jpeg", "PNG": "image/png", "WEBP": "image/webp"}

BASE64_BODY = re.compile(r"^[A-Za-z0-9+/]*={0,2}$")
DATA_URI = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+);base64,")


def split_data_uri(payload: str, allowed_mime_types: Iterable[str] = DEFAULT_IMAGE_MIME_TYPES) -> Tuple[Optional[str], str]:
    """
    Strip an allowed ``data:<mime>;base64,`` prefix.

    A prefix with a MIME type outside the allow-list is left in place, so the
    remaining body fails the alphabet check.
    """
    match = DATA_URI.match(payload)
    if match and match.group("mime").lower() in allowed_mime_types:
        return match.group("mime").lower(), payload[match.end():]
    return None, payload


def decode_image_payload(payload: Any, allowed_mime_types: Iterable[str] = DEFAULT_IMAGE_MIME_TYPES) -> Optional[bytes]:
    """Decode a base64 image payload, or return None if it is malformed."""
    if not isinstance(payload, str) or not payload:
        return None

    _, body = split_data_uri(payload, tuple(allowed_mime_types))

    if len(body) % 4 != 0:
        return None
    if not BASE64_BODY.match(body):
        return None
    try:
        raw = base64.b64decode(body, validate=True)
    except (binascii.Error, ValueError):
        return None
    return raw or None


class ImageDecodeError(ValueError):
    """The payload is valid base64 but not an image Pillow can read."""


@dataclass
class StagedImage:
    name: str
    path: Path
    mime_type: str
    size: Tuple[int, int]
    received_at: str


class ImageCodec:
    """Decode uploaded meter photos, stage them for recognition and keep the stored copy."""

    def __init__(self, staging_dir: str, image_dir: str, max_size_mb: float = 5.0,
                 resize: Tuple[int, int] = (1600, 1600), output_format: str = "JPEG",
                 allowed_mime_types: Iterable[str] = DEFAULT_IMAGE_MIME_TYPES) -> None:
        """
        Initialize the codec.

        Args:
            staging_dir: Directory for short-lived files handed to recognition
            image_dir: Directory for stored image artifacts
            max_size_mb: Maximum encoded size sent to the vision model
            resize: Bounding box images are downscaled into
            output_format: Pillow format used for staged and stored files
            allowed_mime_types: data-URI MIME types accepted on input
        """
        self.staging_dir = Path(staging_dir)
        self.image_dir = Path(image_dir)
        self.max_size_mb = max_size_mb
        self.resize = resize
        self.output_format = output_format.upper()
        if self.output_format not in FORMAT_SUFFIXES:
            raise ValueError(f"Unsupported output format: {output_format}")
        self.allowed_mime_types = tuple(mime.lower() for mime in allowed_mime_types)
        self._logger = logging.getLogger(__name__)

        self.staging_dir.mkdir(parents=True, exist_ok=True)
        self.image_dir.mkdir(parents=True, exist_ok=True)

    @classmethod
    def from_config(cls, config_manager) -> 'ImageCodec':
        img_config = config_manager.get_image_processing_config()
        storage_config = config_manager.get_storage_config()
        resize_config = img_config.get("default_resize", {"width": 1600, "height": 1600})

        return cls(
            staging_dir=storage_config.get("staging_dir", "tmp/staging"),
            image_dir=storage_config.get("image_dir", "tmp/images"),
            max_size_mb=img_config.get("max_size_mb", 5.0),
            resize=(resize_config["width"], resize_config["height"]),
            output_format=img_config.get("default_format", "JPEG"),
            allowed_mime_types=img_config.get("allowed_mime_types", DEFAULT_IMAGE_MIME_TYPES),
        )

    @property
    def suffix(self) -> str:
        return FORMAT_SUFFIXES[self.output_format]

    def stage(self, payload: str) -> StagedImage:
        """
        Decode a base64 payload and write it to the staging directory.

        Raises:
            ImageDecodeError: If the payload is not a readable image
        """
        raw = decode_image_payload(payload, self.allowed_mime_types)
        if raw is None:
            raise ImageDecodeError("Payload is not valid base64 image data")

        try:
            with Image.open(io.BytesIO(raw)) as opened:
                opened.load()
                image = ImageOps.exif_transpose(opened)
        except (UnidentifiedImageError, OSError, SyntaxError) as e:
            raise ImageDecodeError(f"Cannot decode image: {e}") from e

        image = self._fit(image)
        if self.output_format == "JPEG" and image.mode not in ("RGB", "L"):
            image = image.convert("RGB")

        name = f"{uuid.uuid4().hex}{self.suffix}"
        path = self.staging_dir / name
        try:
            image.save(path, format=self.output_format)
        except Exception:
            path.unlink(missing_ok=True)
            raise

        self._logger.debug(f"Staged image {name} ({image.size[0]}x{image.size[1]})")
        return StagedImage(
            name=name,
            path=path,
            mime_type=FORMAT_MIME_TYPES[self.output_format],
            size=image.size,
            received_at=datetime.now(timezone.utc).isoformat(),
        )

    def _fit(self, image: Image.Image) -> Image.Image:
        """Downscale into the resize box keeping aspect ratio; never upscale."""
        max_width, max_height = self.resize
        w, h = image.size
        scale_ratio = min(max_width / w, max_height / h)
        if scale_ratio >= 1.0:
            return image

        new_size = (max(1, int(w * scale_ratio)), max(1, int(h * scale_ratio)))
        self._logger.info(f"Resized image from {w}x{h} to {new_size[0]}x{new_size[1]}")
        return image.resize(new_size, Image.Resampling.LANCZOS)

    def encode(self, staged: StagedImage) -> Dict[str, str]:
        """
        Base64-encode a staged image for the vision client.

        JPEG quality and then image size are reduced until the encoded data is
        within max_size_mb.

        Raises:
            ValueError: If the image cannot be brought under the limit
        """
        limit_bytes = self.max_size_mb * 1024 * 1024
        data = base64.b64encode(staged.path.read_bytes()).decode("utf-8")
        if len(data) <= limit_bytes:
            return self._image_info(staged, data, staged.mime_type)

        self._logger.warning(
            f"Image {staged.name} encodes to {len(data) / (1024 * 1024):.2f}MB, "
            f"exceeds {self.max_size_mb}MB limit. Compressing...")

        with Image.open(staged.path) as opened:
            image = opened.convert("RGB")

        for factor in (1.0, 0.85, 0.7, 0.55, 0.4):
            candidate = image if factor == 1.0 else image.resize(
                (max(1, int(image.width * factor)), max(1, int(image.height * factor))),
                Image.Resampling.LANCZOS)
            for quality in (85, 70, 55):
                buffer = io.BytesIO()
                candidate.save(buffer, format="JPEG", quality=quality, optimize=True)
                data = base64.b64encode(buffer.getvalue()).decode("utf-8")
                if len(data) <= limit_bytes:
                    self._logger.info(f"Compressed {staged.name}: scale={factor}, quality={quality}")
                    return self._image_info(staged, data, "image/jpeg")

        raise ValueError(f"Image {staged.name} still exceeds {self.max_size_mb}MB after compression")

    @staticmethod
    def _image_info(staged: StagedImage, data: str, mime_type: str) -> Dict[str, str]:
        return {
            "name": staged.name,
            "data": data,
            "mime_type": mime_type,
            "timestamp": staged.received_at,
        }

    def persist(self, staged: StagedImage) -> str:
        """Copy a staged image into the artifact directory and return its name."""
        shutil.copyfile(staged.path, self.image_dir / staged.name)
        return staged.name

    def release(self, staged: StagedImage) -> None:
        """Delete a staged file. Failures are logged, not raised."""
        try:
            staged.path.unlink(missing_ok=True)
            self._logger.debug(f"Released staged image {staged.name}")
        except OSError as e:
            self._logger.error(f"Failed to delete staged image {staged.path}: {e}")

    def discard(self, name: str) -> None:
        """Delete a stored artifact that never made it into a record."""
        path = self.artifact_path(name)
        if path is None:
            return
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            self._logger.error(f"Failed to delete image artifact {path}: {e}")

    def artifact_path(self, name: str) -> Optional[Path]:
        """Resolve a stored artifact by name; None if absent or outside image_dir."""
        if not name or Path(name).name != name:
            return None
        path = self.image_dir / name
        return path if path.is_file() else None
