"""
Measurement lifecycle orchestration.

Upload: validate, pre-check duplicates, stage the image, recognise it,
store the image artifact and insert the record (re-checking duplicates
atomically). Staged files are released on every path.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any, List, Optional

from .errors import DuplicateReport, InvalidData, RecognitionError
from .guard import DuplicateGuard
from .models import Measurement, MeasureType
from .queries import MeasureSummary, QueryService
from .store import MeasurementStore
from .validator import parse_timestamp, validate_upload
from .workflow import ConfirmationWorkflow
from ..config import ConfigManager
from ..tools.image_codec import ImageCodec, ImageDecodeError
from ..tools.meter_recognizer import MeterRecognizer


class MeasurementService:

    def __init__(self, store: MeasurementStore, codec: ImageCodec, recognizer,
                 guard: Optional[DuplicateGuard] = None, public_base_url: str = ""):
        """
        Args:
            store: Shared measurement store
            codec: Image staging and artifact storage
            recognizer: Object with ``async recognize(staged) -> RecognitionResult``
            guard: Duplicate report policy
            public_base_url: Prefix for the image URLs handed back to clients
        """
        self.store = store
        self.codec = codec
        self.recognizer = recognizer
        self.guard = guard or DuplicateGuard()
        self.public_base_url = public_base_url.rstrip("/")
        self.confirmations = ConfirmationWorkflow(store)
        self.queries = QueryService(store)
        self.logger = logging.getLogger(__name__)

    @classmethod
    def from_config(cls, config_manager: ConfigManager, recognizer=None,
                    store: Optional[MeasurementStore] = None) -> 'MeasurementService':
        codec = ImageCodec.from_config(config_manager)
        if recognizer is None:
            recognizer = MeterRecognizer.from_config(config_manager, codec)

        return cls(
            store=store or MeasurementStore(),
            codec=codec,
            recognizer=recognizer,
            public_base_url=config_manager.get_server_config().get("public_base_url", ""),
        )

    def image_url(self, artifact_name: str) -> str:
        return f"{self.public_base_url}/images/{artifact_name}"

    async def upload(self, image: Any, customer_code: Any, measure_datetime: Any,
                     measure_type: Any) -> Measurement:
        """
        Register a new meter reading from a base64 image.

        Raises:
            InvalidData: Bad input, or the payload is not a readable image
            DuplicateReport: A record with the same instant and type exists
            RecognitionError: The model could not produce a reading
        """
        failure = validate_upload(image, customer_code, measure_datetime, measure_type,
                                  self.codec.allowed_mime_types)
        if failure is not None:
            self.logger.info(f"Rejected upload ({failure.rule}): {failure.description}")
            raise InvalidData(failure.description)

        reading_timestamp = parse_timestamp(measure_datetime)
        reading_type = MeasureType.parse(measure_type)

        # Fast rejection; the authoritative check happens inside store.create
        self.guard.check(self.store, reading_timestamp, reading_type)

        staged = None
        try:
            try:
                staged = await asyncio.to_thread(self.codec.stage, image)
            except ImageDecodeError as e:
                self.logger.info(f"Rejected upload for {customer_code}: {e}")
                raise InvalidData("Invalid image data. The payload could not be decoded as an image.") from e

            result = await self.recognizer.recognize(staged)
            if not result.ok:
                self.logger.error(
                    f"Recognition failed for {customer_code} ({reading_type.value}): "
                    f"{result.failure.value} {result.detail}")
                raise RecognitionError()

            artifact_name = await asyncio.to_thread(self.codec.persist, staged)
            record = Measurement(
                id=str(uuid.uuid4()),
                customer_code=customer_code,
                reading_timestamp=reading_timestamp,
                reading_type=reading_type,
                recognized_value=result.value,
                artifact_reference=self.image_url(artifact_name),
            )
            try:
                self.store.create(record, self.guard)
            except DuplicateReport:
                self.logger.info(
                    f"Concurrent duplicate for {reading_type.value} at {reading_timestamp.isoformat()}")
                self.codec.discard(artifact_name)
                raise
            except Exception:
                self.codec.discard(artifact_name)
                raise
        finally:
            if staged is not None:
                self.codec.release(staged)

        self.logger.info(
            f"Created measure {record.id} for {customer_code}: "
            f"{reading_type.value} {record.recognized_value}")
        self.logger.debug(f"Measure record: {record.to_dict()}")
        return record

    def confirm(self, measure_uuid: Any, confirmed_value: Any) -> Measurement:
        return self.confirmations.confirm(measure_uuid, confirmed_value)

    def list_measures(self, customer_code: str, measure_type: Optional[Any] = None) -> List[MeasureSummary]:
        return self.queries.list_by_customer(customer_code, measure_type)
