from .image_codec import ImageCodec, ImageDecodeError, StagedImage
from .meter_recognizer import MeterRecognizer, RecognitionFailure, RecognitionResult

__all__ = [
    "ImageCodec", "ImageDecodeError", "StagedImage",
    "MeterRecognizer", "RecognitionFailure", "RecognitionResult",
]
