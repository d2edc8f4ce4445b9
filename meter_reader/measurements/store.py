from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from datetime import datetime
from typing import Callable, Dict, List, Optional

from .errors import ConfirmationDuplicate, DuplicateReport, MeasureNotFound
from .guard import DuplicateGuard
from .models import Measurement


class MeasurementStore:
    """
    In-memory measurement records.

    Records are kept in insertion order, keyed by id, with a secondary index on
    reading_timestamp for duplicate lookups. All reads and writes happen under
    one lock; nothing awaits while holding it. Reads return copies.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self._lock = threading.Lock()
        self._records: "OrderedDict[str, Measurement]" = OrderedDict()
        self._by_timestamp: Dict[datetime, List[str]] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def create(self, record: Measurement, guard: Optional[DuplicateGuard] = None) -> str:
        """
        Insert a record, checking for duplicates in the same critical section.

        Args:
            record: New measurement; its id must be unused
            guard: Duplicate policy to apply atomically with the insert

        Returns:
            The record id

        Raises:
            DuplicateReport: If the guard finds a conflicting record
            ValueError: If the id is already taken
        """
        with self._lock:
            if guard is not None:
                same_instant = self._same_instant(record.reading_timestamp)
                if guard.find_conflict(same_instant, record.reading_type) is not None:
                    raise DuplicateReport()
            if record.id in self._records:
                raise ValueError(f"Measure id already in use: {record.id}")

            self._records[record.id] = record.copy()
            self._by_timestamp.setdefault(record.reading_timestamp, []).append(record.id)

        self.logger.debug(f"Stored measure {record.id}")
        return record.id

    def find_by_id(self, measure_id: str) -> Optional[Measurement]:
        with self._lock:
            record = self._records.get(measure_id)
            return record.copy() if record else None

    def find_by_timestamp(self, reading_timestamp: datetime) -> List[Measurement]:
        with self._lock:
            return [record.copy() for record in self._same_instant(reading_timestamp)]

    def find_all(self, predicate: Optional[Callable[[Measurement], bool]] = None) -> List[Measurement]:
        """All records matching the predicate, in insertion order."""
        with self._lock:
            return [
                record.copy() for record in self._records.values()
                if predicate is None or predicate(record)
            ]

    def confirm(self, measure_id: str, value: float) -> Measurement:
        """
        Move a pending record to confirmed, once.

        Raises:
            MeasureNotFound: No record with this id
            ConfirmationDuplicate: The record is already confirmed
        """
        with self._lock:
            record = self._records.get(measure_id)
            if record is None:
                raise MeasureNotFound()
            if record.confirmed:
                raise ConfirmationDuplicate()
            record.confirmed_value = value
            record.confirmed = True
            return record.copy()

    def _same_instant(self, reading_timestamp: datetime) -> List[Measurement]:
        return [self._records[measure_id] for measure_id in self._by_timestamp.get(reading_timestamp, [])]
