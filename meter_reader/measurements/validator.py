"""
Input checks for measurement submissions and confirmations.

The checks never raise on bad input: they return ``None`` when the input is
acceptable, or a ``ValidationFailure`` naming the first rule that failed.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from .models import MeasureType
from ..tools.image_codec import DEFAULT_IMAGE_MIME_TYPES, decode_image_payload


@dataclass(frozen=True)
class ValidationFailure:
    rule: str
    description: str


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp into a UTC-aware datetime.

    Naive values are taken as UTC. Returns None when the value is not a
    string or is not a valid calendar instant.
    """
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text[-1] in "zZ":
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    try:
        return parsed.astimezone(timezone.utc)
    except OverflowError:
        # The offset pushes the instant outside the datetime range
        return None


def validate_upload(
    image: Any,
    customer_code: Any,
    measure_datetime: Any,
    measure_type: Any,
    allowed_mime_types: Iterable[str] = DEFAULT_IMAGE_MIME_TYPES,
) -> Optional[ValidationFailure]:
    """Check an upload request; the first failing rule wins."""
    if not isinstance(customer_code, str) or not customer_code.strip():
        return ValidationFailure(
            "customer_code", "Invalid customer code. Expected a non-empty string.")

    if parse_timestamp(measure_datetime) is None:
        return ValidationFailure(
            "measure_datetime", "Invalid measure date and time. Expected an ISO-8601 date string.")

    if MeasureType.parse(measure_type) is None:
        return ValidationFailure(
            "measure_type", 'Invalid measure type. Expected "WATER" or "GAS".')

    if decode_image_payload(image, allowed_mime_types) is None:
        return ValidationFailure(
            "image", "Invalid image data. Make sure the image is Base64 encoded.")

    return None


def is_real_number(value: Any) -> bool:
    # bool is an int subclass but is not a meter value
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        return False


def validate_confirmation(measure_uuid: Any, confirmed_value: Any) -> Optional[ValidationFailure]:
    """Check a confirmation request before any lookup happens."""
    if not isinstance(measure_uuid, str) or not measure_uuid:
        return ValidationFailure(
            "measure_uuid", "Invalid measure_uuid. Expected a string.")

    if not is_real_number(confirmed_value):
        return ValidationFailure(
            "confirmed_value", "Invalid confirmed_value. Expected a number.")

    return None
