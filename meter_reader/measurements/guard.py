from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, Optional

from .errors import DuplicateReport
from .models import Measurement, MeasureType


class DuplicateGuard:
    """
    Rejects a submission that repeats an existing (timestamp, type) report.

    The key is the exact reading instant plus the reading type. It is not
    scoped to a customer or to a calendar month.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def find_conflict(self, same_instant: Iterable[Measurement],
                      reading_type: MeasureType) -> Optional[Measurement]:
        """
        Return the record that blocks the candidate, if any.

        Args:
            same_instant: Existing records whose reading_timestamp equals the candidate's
            reading_type: Candidate reading type

        Returns:
            The conflicting record, or None when the candidate may proceed
        """
        for existing in same_instant:
            if existing.reading_type == reading_type:
                return existing
        # A different type at the same instant is allowed through
        return None

    def check(self, store, reading_timestamp: datetime, reading_type: MeasureType) -> None:
        """Raise DuplicateReport if the store already holds this key."""
        conflict = self.find_conflict(store.find_by_timestamp(reading_timestamp), reading_type)
        if conflict is not None:
            self.logger.info(
                f"Duplicate report for {reading_type.value} at {reading_timestamp.isoformat()} "
                f"(existing measure {conflict.id})")
            raise DuplicateReport()
