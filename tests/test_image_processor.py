import io

import numpy as np
import pytest
from PIL import Image

from core import image_processor
from core.image_processor import (
    DecodeError,
    EncodeError,
    ImageProcessingError,
    InvalidImageError,
    compress_to_target,
    encode_webp,
    format_bytes,
    is_image_file,
    process_image,
    quality_steps,
    reduction_percentage,
    save_result,
    to_grayscale,
)


def make_rgba(pixels):
    return Image.fromarray(np.array(pixels, dtype=np.uint8), "RGBA")


# --- Luma transform ---

def test_grayscale_pure_channels_use_luma_weights():
    img = make_rgba([[[255, 0, 0, 255], [0, 255, 0, 255], [0, 0, 255, 255], [255, 255, 255, 255]]])
    out = np.array(to_grayscale(img))

    assert out[0, 0, :3].tolist() == [54, 54, 54]
    assert out[0, 1, :3].tolist() == [182, 182, 182]
    assert out[0, 2, :3].tolist() == [18, 18, 18]
    assert out[0, 3, :3].tolist() == [255, 255, 255]


def test_grayscale_preserves_alpha():
    img = make_rgba([[[10, 20, 30, 77], [200, 100, 50, 0], [1, 2, 3, 255]]])
    out = np.array(to_grayscale(img))

    assert out[0, :, 3].tolist() == [77, 0, 255]


def test_grayscale_every_pixel_has_equal_channels():
    rng = np.random.default_rng(7)
    pixels = rng.integers(0, 256, size=(32, 48, 4), dtype=np.uint8)
    out = np.array(to_grayscale(Image.fromarray(pixels, "RGBA")))

    assert out.shape == (32, 48, 4)
    assert np.array_equal(out[:, :, 0], out[:, :, 1])
    assert np.array_equal(out[:, :, 1], out[:, :, 2])
    assert np.array_equal(out[:, :, 3], pixels[:, :, 3])


def test_grayscale_accepts_rgb_input():
    img = Image.new("RGB", (4, 4), (100, 150, 200))
    out = to_grayscale(img)

    assert out.mode == "RGBA"
    # 0.2126*100 + 0.7152*150 + 0.0722*200 = 142.98
    assert out.getpixel((0, 0)) == (143, 143, 143, 255)


# --- Quality ladder ---

def test_quality_steps_default_ladder():
    steps = quality_steps()
    assert steps == pytest.approx([0.8, 0.7, 0.6, 0.5, 0.4, 0.3, 0.2, 0.1])


def test_quality_steps_never_below_floor():
    for step in quality_steps(0.8, 0.1, 0.1):
        assert step >= 0.1
    assert min(quality_steps(0.95, 0.2, 0.1)) >= 0.1
    assert quality_steps(0.95, 0.2, 0.1) == pytest.approx([0.95, 0.75, 0.55, 0.35, 0.15])


def test_quality_steps_single_step_when_floor_equals_initial():
    assert quality_steps(0.5, 0.1, 0.5) == [0.5]


@pytest.mark.parametrize("initial,step,floor", [
    (0.8, 0.0, 0.1),
    (0.8, -0.1, 0.1),
    (0.2, 0.1, 0.5),
    (1.5, 0.1, 0.1),
    (0.8, 0.1, 0.0),
    (0.8, 0.004, 0.1),
])
def test_quality_steps_rejects_bad_parameters(initial, step, floor):
    with pytest.raises(ValueError):
        quality_steps(initial, step, floor)


# --- Compression loop ---

def test_compress_stops_at_first_encode_under_target(monkeypatch):
    sizes = {0.8: 500, 0.7: 300, 0.6: 90}
    calls = []

    def fake_encode(img, quality):
        calls.append(quality)
        return b"x" * sizes.get(round(quality, 2), 10)

    monkeypatch.setattr(image_processor, "encode_webp", fake_encode)
    data, quality = compress_to_target(Image.new("RGBA", (2, 2)), target_size=100)

    assert quality == pytest.approx(0.6)
    assert len(data) == 90
    assert calls == pytest.approx([0.8, 0.7, 0.6])


def test_compress_size_equal_to_target_keeps_going(monkeypatch):
    calls = []

    def fake_encode(img, quality):
        calls.append(quality)
        return b"x" * (100 if len(calls) == 1 else 99)

    monkeypatch.setattr(image_processor, "encode_webp", fake_encode)
    data, quality = compress_to_target(Image.new("RGBA", (2, 2)), target_size=100)

    assert len(calls) == 2
    assert quality == pytest.approx(0.7)


def test_compress_stops_at_floor_when_target_unreachable(monkeypatch):
    calls = []

    def fake_encode(img, quality):
        calls.append(quality)
        return b"x" * 1000

    monkeypatch.setattr(image_processor, "encode_webp", fake_encode)
    data, quality = compress_to_target(Image.new("RGBA", (2, 2)), target_size=10)

    assert len(calls) == 8
    assert min(calls) == pytest.approx(0.1)
    assert quality == pytest.approx(0.1)
    assert len(data) == 1000


def test_compress_first_attempt_is_enough_for_generous_target():
    img = Image.new("RGBA", (16, 16), (80, 80, 80, 255))
    data, quality = compress_to_target(img, target_size=10_000_000)

    assert quality == pytest.approx(0.8)
    assert data[:4] == b"RIFF"
    assert data[8:12] == b"WEBP"


def test_encode_webp_wraps_encoder_failure(monkeypatch):
    img = Image.new("RGBA", (4, 4))

    def broken_save(*args, **kwargs):
        raise OSError("encoder missing")

    monkeypatch.setattr(img, "save", broken_save)
    with pytest.raises(EncodeError):
        encode_webp(img, 0.8)


# --- End to end ---

def test_process_image_shrinks_colorful_png(noisy_png):
    result = process_image(noisy_png)

    assert result.original_size == noisy_png.stat().st_size
    assert result.processed_size == len(result.processed_data)
    assert result.processed_size < result.original_size
    assert result.reduction_percentage > 0
    assert result.reduction_percentage == pytest.approx(
        (result.original_size - result.processed_size) / result.original_size * 100
    )
    assert 0.1 <= result.quality <= 0.8
    assert (result.width, result.height) == (128, 128)
    assert result.format == "webp"
    assert result.download_name == "monopixel-output.webp"


def test_process_image_output_decodes_as_webp(noisy_png):
    result = process_image(noisy_png)

    with Image.open(io.BytesIO(result.processed_data)) as out:
        assert out.format == "WEBP"
        assert out.size == (128, 128)


def test_process_image_respects_custom_settings(noisy_png):
    result = process_image(noisy_png, {"initial_quality": 0.5, "quality_step": 0.2, "min_quality": 0.1})
    assert result.quality == pytest.approx(0.5)


def test_process_image_rejects_non_image(text_file):
    with pytest.raises(InvalidImageError):
        process_image(text_file)


def test_process_image_rejects_unidentifiable_image(tmp_path):
    path = tmp_path / "broken.png"
    path.write_bytes(b"this is not really a png")

    with pytest.raises(InvalidImageError):
        process_image(path)


def test_process_image_truncated_file_is_a_processing_error(tmp_path, noisy_png):
    data = noisy_png.read_bytes()
    path = tmp_path / "truncated.png"
    path.write_bytes(data[: len(data) // 2])

    with pytest.raises(ImageProcessingError) as exc_info:
        process_image(path)
    assert isinstance(exc_info.value, (DecodeError, InvalidImageError))


def test_save_result_writes_encoded_bytes(tmp_path, noisy_png):
    result = process_image(noisy_png)
    out = tmp_path / result.download_name

    save_result(result, out)

    assert out.read_bytes() == result.processed_data


# --- Helpers ---

@pytest.mark.parametrize("num_bytes,expected", [
    (0, "0 Bytes"),
    (1, "1 Bytes"),
    (500, "500 Bytes"),
    (1024, "1 KB"),
    (1536, "1.5 KB"),
    (1048576, "1 MB"),
    (1234567, "1.18 MB"),
    (1073741824, "1 GB"),
])
def test_format_bytes(num_bytes, expected):
    assert format_bytes(num_bytes) == expected


def test_format_bytes_rounds_half_up():
    # 1152 / 1024 = 1.125 exactly
    assert format_bytes(1152) == "1.13 KB"
    assert format_bytes(2560, decimals=0) == "3 KB"
    assert format_bytes(1280, decimals=1) == "1.3 KB"


def test_format_bytes_decimals():
    assert format_bytes(1600, decimals=0) == "2 KB"
    assert format_bytes(1600, decimals=-3) == "2 KB"
    assert format_bytes(1234567, decimals=3) == "1.177 MB"


def test_reduction_percentage():
    assert reduction_percentage(1000, 250) == pytest.approx(75.0)
    assert reduction_percentage(1000, 1000) == 0
    assert reduction_percentage(1000, 1200) == pytest.approx(-20.0)
    assert reduction_percentage(0, 10) == 0.0


@pytest.mark.parametrize("name,expected", [
    ("photo.png", True),
    ("photo.JPG", True),
    ("photo.webp", True),
    ("notes.txt", False),
    ("archive.zip", False),
    ("no_extension", False),
])
def test_is_image_file(tmp_path, name, expected):
    assert is_image_file(tmp_path / name) is expected


def test_process_image_applies_exif_orientation(tmp_path):
    # Left half red, right half white; Orientation=6 means "rotate 90 clockwise to display"
    pixels = np.full((20, 40, 3), 255, dtype=np.uint8)
    pixels[:, :20] = (255, 0, 0)
    exif = Image.Exif()
    exif[0x0112] = 6
    path = tmp_path / "phone.jpg"
    Image.fromarray(pixels, "RGB").save(path, exif=exif.tobytes(), quality=95)

    result = process_image(path)

    assert (result.width, result.height) == (20, 40)
    with Image.open(io.BytesIO(result.processed_data)) as out:
        out = out.convert("RGBA")
        # The red half ends up on top after rotation
        assert out.getpixel((10, 5))[0] < 120
        assert out.getpixel((10, 35))[0] > 200
