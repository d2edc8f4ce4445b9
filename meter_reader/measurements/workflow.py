from __future__ import annotations

import logging
from typing import Any

from .errors import InvalidData
from .models import Measurement
from .store import MeasurementStore
from .validator import validate_confirmation


class ConfirmationWorkflow:
    """
    One-time confirmation of a recognised reading.

    A record starts pending and can be confirmed exactly once; confirmed is
    terminal. The check-and-set runs atomically inside the store.
    """

    def __init__(self, store: MeasurementStore):
        self.store = store
        self.logger = logging.getLogger(__name__)

    def confirm(self, measure_uuid: Any, confirmed_value: Any) -> Measurement:
        """
        Confirm a measure with the value a person read from the image.

        Raises:
            InvalidData: Malformed id or non-numeric value (checked before lookup)
            MeasureNotFound: Unknown id
            ConfirmationDuplicate: Measure already confirmed
        """
        failure = validate_confirmation(measure_uuid, confirmed_value)
        if failure is not None:
            raise InvalidData(failure.description)

        record = self.store.confirm(measure_uuid, float(confirmed_value))
        self.logger.info(
            f"Confirmed measure {record.id}: recognised {record.recognized_value}, "
            f"confirmed {record.confirmed_value}")
        return record
