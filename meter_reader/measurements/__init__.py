from .models import Measurement, MeasureType
from .errors import (
    MeasureError, InvalidData, DuplicateReport, MeasureNotFound, ConfirmationDuplicate,
    InvalidType, MeasuresNotFound, ImageNotFound, RecognitionError,
)
from .validator import ValidationFailure, parse_timestamp, validate_upload, validate_confirmation
from .guard import DuplicateGuard
from .store import MeasurementStore
from .workflow import ConfirmationWorkflow
from .queries import MeasureSummary, QueryService
from .service import MeasurementService

__all__ = [
    'Measurement', 'MeasureType',
    'MeasureError', 'InvalidData', 'DuplicateReport', 'MeasureNotFound', 'ConfirmationDuplicate',
    'InvalidType', 'MeasuresNotFound', 'ImageNotFound', 'RecognitionError',
    'ValidationFailure', 'parse_timestamp', 'validate_upload', 'validate_confirmation',
    'DuplicateGuard', 'MeasurementStore', 'ConfirmationWorkflow',
    'MeasureSummary', 'QueryService', 'MeasurementService',
]
