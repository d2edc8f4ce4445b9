import base64
import io
import os
import sys

import pytest
from PIL import Image

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from meter_reader.measurements import MeasurementService, MeasurementStore
from meter_reader.tools import ImageCodec, RecognitionFailure, RecognitionResult


class FakeRecognizer:
    """Stands in for the vision model: returns queued results, then a default."""

    def __init__(self, value: float = 1234.5):
        self.value = value
        self.queued = []
        self.calls = []

    def fail_next(self, failure: RecognitionFailure = RecognitionFailure.UNPARSEABLE):
        self.queued.append(RecognitionResult.failed(failure, "fake failure"))

    async def recognize(self, staged):
        self.calls.append(staged)
        assert staged.path.exists()
        if self.queued:
            return self.queued.pop(0)
        return RecognitionResult.success(self.value, str(self.value))


def make_image_b64(fmt: str = "PNG", size=(24, 16), color=(200, 30, 30)) -> str:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format=fmt)
    return base64.b64encode(buffer.getvalue()).decode("ascii")


@pytest.fixture(scope="session")
def png_b64() -> str:
    return make_image_b64("PNG")


@pytest.fixture(scope="session")
def jpeg_data_uri() -> str:
    return "data:image/jpeg;base64," + make_image_b64("JPEG")


@pytest.fixture
def codec(tmp_path) -> ImageCodec:
    return ImageCodec(staging_dir=str(tmp_path / "staging"), image_dir=str(tmp_path / "images"))


@pytest.fixture
def recognizer() -> FakeRecognizer:
    return FakeRecognizer()


@pytest.fixture
def store() -> MeasurementStore:
    return MeasurementStore()


@pytest.fixture
def service(store, codec, recognizer) -> MeasurementService:
    return MeasurementService(store, codec, recognizer, public_base_url="http://testserver")
