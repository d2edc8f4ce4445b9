from datetime import datetime, timezone
from typing import Any, List, Optional

from pydantic import BaseModel

from ..measurements import MeasureSummary


# Field checks happen in the measurement validator; every rejection is INVALID_DATA.
class UploadRequest(BaseModel):
    image: Optional[Any] = None
    customer_code: Optional[Any] = None
    measure_datetime: Optional[Any] = None
    measure_type: Optional[Any] = None


class ConfirmRequest(BaseModel):
    measure_uuid: Optional[Any] = None
    confirmed_value: Optional[Any] = None


class UploadResponse(BaseModel):
    image_url: str
    measure_value: float
    measure_uuid: str


class ConfirmResponse(BaseModel):
    success: bool = True


class MeasureItem(BaseModel):
    measure_uuid: str
    measure_datetime: str
    measure_type: str
    has_confirmed: bool
    image_url: str

    @classmethod
    def from_summary(cls, summary: MeasureSummary) -> "MeasureItem":
        return cls(
            measure_uuid=summary.measure_uuid,
            measure_datetime=format_timestamp(summary.measure_datetime),
            measure_type=summary.measure_type.value,
            has_confirmed=summary.has_confirmed,
            image_url=summary.image_url,
        )


class MeasureListResponse(BaseModel):
    customer_code: str
    measures: List[MeasureItem]


class ErrorResponse(BaseModel):
    error_code: str
    error_description: str


class HealthResponse(BaseModel):
    status: str
    service: str
    version: str
    measures: int


def format_timestamp(value: datetime) -> str:
    """UTC ISO-8601 with a Z suffix."""
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")
