"""Error taxonomy for the measurement lifecycle.

Every error carries the wire ``error_code`` and HTTP status it maps to, so
the API layer renders them without a lookup table.
"""


class MeasureError(Exception):
    error_code = "INTERNAL_ERROR"
    status_code = 500
    default_description = "Unexpected internal error."

    def __init__(self, description: str = None):
        self.description = description or self.default_description
        super().__init__(self.description)

    def to_dict(self) -> dict:
        return {"error_code": self.error_code, "error_description": self.description}


class InvalidData(MeasureError):
    error_code = "INVALID_DATA"
    status_code = 400
    default_description = "Request data is invalid."


class DuplicateReport(MeasureError):
    error_code = "DOUBLE_REPORT"
    status_code = 409
    default_description = "Reading already reported for this period and type."


class MeasureNotFound(MeasureError):
    error_code = "MEASURE_NOT_FOUND"
    status_code = 404
    default_description = "Measure not found."


class ConfirmationDuplicate(MeasureError):
    error_code = "CONFIRMATION_DUPLICATE"
    status_code = 409
    default_description = "Measure already confirmed."


class InvalidType(MeasureError):
    error_code = "INVALID_TYPE"
    status_code = 400
    default_description = "Measure type not allowed. Valid values are WATER or GAS."


class MeasuresNotFound(MeasureError):
    error_code = "MEASURES_NOT_FOUND"
    status_code = 404
    default_description = "No readings found."


class ImageNotFound(MeasureError):
    error_code = "IMAGE_NOT_FOUND"
    status_code = 404
    default_description = "Image not found."


class RecognitionError(MeasureError):
    """Recognition could not produce a numeric reading."""
    default_description = "Failed to retrieve the measure value from the recognition service."
