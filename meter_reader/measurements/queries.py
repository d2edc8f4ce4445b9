from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, List, Optional

from .errors import InvalidType, MeasuresNotFound
from .models import MeasureType
from .store import MeasurementStore


@dataclass(frozen=True)
class MeasureSummary:
    """What a listing exposes about a measure: identity and metadata, no values."""
    measure_uuid: str
    measure_datetime: datetime
    measure_type: MeasureType
    has_confirmed: bool
    image_url: str


class QueryService:

    def __init__(self, store: MeasurementStore):
        self.store = store

    def list_by_customer(self, customer_code: str, measure_type: Optional[Any] = None) -> List[MeasureSummary]:
        """
        Measures of one customer in insertion order, optionally of one type.

        An empty measure_type is treated as no filter.

        Raises:
            InvalidType: measure_type is not WATER or GAS
            MeasuresNotFound: Nothing matches
        """
        wanted = None
        if measure_type is not None and measure_type != "":
            wanted = MeasureType.parse(measure_type)
            if wanted is None:
                raise InvalidType()

        records = self.store.find_all(
            lambda record: record.customer_code == customer_code
            and (wanted is None or record.reading_type == wanted)
        )
        if not records:
            raise MeasuresNotFound()

        return [
            MeasureSummary(
                measure_uuid=record.id,
                measure_datetime=record.reading_timestamp,
                measure_type=record.reading_type,
                has_confirmed=record.confirmed,
                image_url=record.artifact_reference,
            )
            for record in records
        ]
