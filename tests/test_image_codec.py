import base64
import io

import pytest
from PIL import Image

from meter_reader.tools import ImageCodec, ImageDecodeError
from meter_reader.tools.image_codec import decode_image_payload, split_data_uri


def encode(image: Image.Image, fmt: str = "PNG", **save_kwargs) -> str:
    buffer = io.BytesIO()
    image.save(buffer, format=fmt, **save_kwargs)
    return base64.b64encode(buffer.getvalue()).decode("ascii")


def test_split_data_uri():
    assert split_data_uri("data:image/PNG;base64,AAAA") == ("image/png", "AAAA")
    assert split_data_uri("data:text/plain;base64,AAAA") == (None, "data:text/plain;base64,AAAA")
    assert split_data_uri("AAAA") == (None, "AAAA")


@pytest.mark.parametrize("payload", [None, "", 42, "abc", "a b c d", "====", "data:text/plain;base64,aGk="])
def test_decode_rejects_malformed(payload):
    assert decode_image_payload(payload) is None


def test_decode_accepts_data_uri(jpeg_data_uri):
    raw = decode_image_payload(jpeg_data_uri)
    assert raw is not None and raw[:2] == b"\xff\xd8"


def test_stage_writes_jpeg(codec, png_b64):
    staged = codec.stage(png_b64)

    assert staged.path.parent == codec.staging_dir
    assert staged.name.endswith(".jpg")
    assert staged.mime_type == "image/jpeg"
    assert staged.size == (24, 16)
    with Image.open(staged.path) as image:
        assert image.format == "JPEG"


def test_stage_converts_transparency(codec):
    staged = codec.stage(encode(Image.new("RGBA", (10, 10), (0, 0, 255, 128))))
    with Image.open(staged.path) as image:
        assert image.mode == "RGB"


def test_stage_downscales_large_images(tmp_path):
    codec = ImageCodec(str(tmp_path / "s"), str(tmp_path / "i"), resize=(100, 100))

    staged = codec.stage(encode(Image.new("RGB", (400, 200))))
    assert staged.size == (100, 50)

    staged = codec.stage(encode(Image.new("RGB", (40, 20))))
    assert staged.size == (40, 20)


def test_stage_applies_exif_orientation(codec):
    image = Image.new("RGB", (40, 20), (10, 200, 10))
    exif = image.getexif()
    exif[0x0112] = 6
    staged = codec.stage(encode(image, "JPEG", exif=exif.tobytes()))

    assert staged.size == (20, 40)


def test_stage_rejects_non_images(codec):
    with pytest.raises(ImageDecodeError):
        codec.stage(base64.b64encode(b"definitely not an image").decode("ascii"))
    with pytest.raises(ImageDecodeError):
        codec.stage("%%%%")
    assert list(codec.staging_dir.iterdir()) == []


def test_unsupported_output_format(tmp_path):
    with pytest.raises(ValueError):
        ImageCodec(str(tmp_path / "s"), str(tmp_path / "i"), output_format="TIFF")


def test_encode_returns_staged_bytes(codec, png_b64):
    staged = codec.stage(png_b64)
    info = codec.encode(staged)

    assert info["name"] == staged.name
    assert info["mime_type"] == "image/jpeg"
    assert info["timestamp"] == staged.received_at
    assert base64.b64decode(info["data"]) == staged.path.read_bytes()


def test_encode_over_limit_raises(tmp_path, png_b64):
    codec = ImageCodec(str(tmp_path / "s"), str(tmp_path / "i"), max_size_mb=0.00001)
    staged = codec.stage(png_b64)
    with pytest.raises(ValueError):
        codec.encode(staged)


def test_persist_release_discard(codec, png_b64):
    staged = codec.stage(png_b64)
    name = codec.persist(staged)
    codec.release(staged)

    assert not staged.path.exists()
    assert codec.artifact_path(name) == codec.image_dir / name

    codec.release(staged)
    codec.discard(name)
    assert codec.artifact_path(name) is None
    codec.discard(name)


@pytest.mark.parametrize("name", ["", "../secret.jpg", "sub/file.jpg", "missing.jpg"])
def test_artifact_path_rejects(codec, name):
    assert codec.artifact_path(name) is None
