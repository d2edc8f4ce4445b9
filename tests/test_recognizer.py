import asyncio
import threading
import time

import pytest

from meter_reader.clients import VisionClient
from meter_reader.tools import MeterRecognizer, RecognitionFailure
from meter_reader.tools.meter_recognizer import coerce_reading

PROMPT = {"main_prompt": "Read the meter.", "system_prompt": "You read meters.", "response_key": "reading"}


class ScriptedClient(VisionClient):
    """Answers every call with the same text, or raises the given error."""

    def __init__(self, text="", error=None, delay=0.0):
        self.text = text
        self.error = error
        self.delay = delay
        self.calls = []
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    def invoke_model(self, prompt, max_tokens=300, temperature=0.0, images=None, system_prompt=None):
        with self._lock:
            self.calls.append({"prompt": prompt, "max_tokens": max_tokens, "images": images,
                               "system_prompt": system_prompt})
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            time.sleep(self.delay)
            if self.error:
                raise self.error
            return {"text": self.text, "input_tokens": 10, "output_tokens": 2, "total_cost": 0.0}
        finally:
            with self._lock:
                self.active -= 1


def recognize(codec, png_b64, client, **kwargs):
    recognizer = MeterRecognizer(client, codec, PROMPT, {"max_tokens": 50}, **kwargs)
    staged = codec.stage(png_b64)
    return asyncio.run(recognizer.recognize(staged))


@pytest.mark.parametrize("text, expected", [
    ('{"reading": 4521.7}', 4521.7),
    ('Sure! ```json\n{"reading": "00123"}\n```', 123.0),
    ("The meter shows 00123,5 m3", 123.5),
    ('{"reading": 12}', 12.0),
])
def test_successful_reading(codec, png_b64, text, expected):
    client = ScriptedClient(text)
    result = recognize(codec, png_b64, client)

    assert result.ok
    assert result.value == expected
    assert result.raw_text == text.strip()

    call = client.calls[0]
    assert call["prompt"] == "Read the meter."
    assert call["system_prompt"] == "You read meters."
    assert call["max_tokens"] == 50
    assert call["images"][0]["mime_type"] == "image/jpeg"


@pytest.mark.parametrize("text", ['{"reading": null}', "I cannot see a meter", '{"reading": true}'])
def test_unparseable_reading(codec, png_b64, text):
    result = recognize(codec, png_b64, ScriptedClient(text))
    assert not result.ok
    assert result.failure is RecognitionFailure.UNPARSEABLE
    assert result.value is None


@pytest.mark.parametrize("text", ["", "   \n"])
def test_empty_response(codec, png_b64, text):
    result = recognize(codec, png_b64, ScriptedClient(text))
    assert result.failure is RecognitionFailure.EMPTY_RESPONSE


def test_client_error_is_reported(codec, png_b64):
    result = recognize(codec, png_b64, ScriptedClient(error=RuntimeError("throttled")))
    assert result.failure is RecognitionFailure.CLIENT_ERROR
    assert "throttled" in result.detail


def test_concurrency_is_bounded(codec, png_b64):
    client = ScriptedClient('{"reading": 1}', delay=0.05)
    recognizer = MeterRecognizer(client, codec, PROMPT, max_concurrent_requests=2)
    staged = [codec.stage(png_b64) for _ in range(5)]

    async def run_all():
        return await asyncio.gather(*(recognizer.recognize(s) for s in staged))

    results = asyncio.run(run_all())
    assert all(r.ok for r in results)
    assert len(client.calls) == 5
    assert client.max_active <= 2


@pytest.mark.parametrize("value, expected", [
    (7, 7.0),
    (3.25, 3.25),
    ("1 234,5", 1234.5),
    ("-12", -12.0),
    (True, None),
    (None, None),
    ("n/a", None),
    ([1], None),
])
def test_coerce_reading(value, expected):
    assert coerce_reading(value) == expected


def test_encoding_runs_off_the_event_loop(codec, png_b64, monkeypatch):
    encode_threads = []
    original_encode = codec.encode

    def recording_encode(staged):
        encode_threads.append(threading.get_ident())
        return original_encode(staged)

    monkeypatch.setattr(codec, "encode", recording_encode)
    recognizer = MeterRecognizer(ScriptedClient('{"reading": 3}'), codec, PROMPT)
    staged = codec.stage(png_b64)

    async def run():
        loop_thread = threading.get_ident()
        result = await recognizer.recognize(staged)
        return loop_thread, result

    loop_thread, result = asyncio.run(run())
    assert result.ok
    assert encode_threads and encode_threads[0] != loop_thread
