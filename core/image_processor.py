"""
Grayscale conversion and WebP re-compression.

The image is reduced to luma only, then re-encoded at decreasing quality
until it is smaller than the source file (or the quality floor is hit).
"""
import io
import logging
import mimetypes
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from pathlib import Path
from typing import List, Optional, Tuple

import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

logger = logging.getLogger(__name__)

# Not registered by default on older Pythons
mimetypes.add_type("image/webp", ".webp")

OUTPUT_FORMAT = "webp"
OUTPUT_BASENAME = "monopixel-output"

# Rec. 709 luma coefficients
LUMA_R = 0.2126
LUMA_G = 0.7152
LUMA_B = 0.0722

DEFAULT_SETTINGS = {
    "initial_quality": 0.8,
    "quality_step": 0.1,
    "min_quality": 0.1,
}

INVALID_FILE_MESSAGE = "Please upload an image file (PNG, JPG, etc.)"


class ImageProcessingError(Exception):
    """Base error for anything that goes wrong while converting an image."""


class InvalidImageError(ImageProcessingError):
    """The selected file is not an image."""


class DecodeError(ImageProcessingError):
    """The image could not be decoded."""


class EncodeError(ImageProcessingError):
    """The output image could not be encoded."""


@dataclass
class ProcessedImageResult:
    original_path: Path
    original_size: int
    processed_data: bytes
    processed_size: int
    reduction_percentage: float
    quality: float
    width: int
    height: int
    format: str = OUTPUT_FORMAT

    @property
    def download_name(self) -> str:
        return f"{OUTPUT_BASENAME}.{self.format}"


def format_bytes(num_bytes: int, decimals: int = 2) -> str:
    """Format a byte count as a human readable string (base 1024)."""
    if not num_bytes:
        return "0 Bytes"
    if num_bytes < 0:
        return "-" + format_bytes(-num_bytes, decimals)

    k = 1024
    dm = max(0, decimals)
    sizes = ["Bytes", "KB", "MB", "GB", "TB"]

    i = 0
    while i < len(sizes) - 1 and num_bytes >= k ** (i + 1):
        i += 1

    # Half-up on the exact binary value, then drop trailing zeros: 1.50 -> 1.5
    value = Decimal(num_bytes / (k ** i)).quantize(Decimal(1).scaleb(-dm), rounding=ROUND_HALF_UP)
    text = format(value, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return f"{text} {sizes[i]}"


def reduction_percentage(original_size: int, processed_size: int) -> float:
    """Percentage of the original size that was saved."""
    if original_size <= 0:
        return 0.0
    return (original_size - processed_size) / original_size * 100


def is_image_file(path: Path) -> bool:
    """Check the guessed MIME type of a file."""
    mime, _ = mimetypes.guess_type(str(path))
    return bool(mime) and mime.startswith("image/")


def validate_image_file(path: Path):
    """Raise InvalidImageError unless path looks like an image file."""
    if not path.is_file() or not is_image_file(path):
        raise InvalidImageError(INVALID_FILE_MESSAGE)


def load_image(path: Path) -> Image.Image:
    """Open and fully decode an image as RGBA."""
    try:
        with Image.open(path) as img:
            img.load()
            # Honor the EXIF orientation tag (phone photos)
            return ImageOps.exif_transpose(img).convert("RGBA")
    except UnidentifiedImageError as e:
        raise InvalidImageError(INVALID_FILE_MESSAGE) from e
    except (OSError, SyntaxError, ValueError) as e:
        raise DecodeError(f"Failed to load image: {path.name}") from e


def to_grayscale(img: Image.Image) -> Image.Image:
    """Replace R, G and B of every pixel with its luma; alpha is kept."""
    arr = np.array(img.convert("RGBA"), dtype=np.uint8)
    rgb = arr[:, :, :3].astype(np.float64)

    luma = LUMA_R * rgb[:, :, 0] + LUMA_G * rgb[:, :, 1] + LUMA_B * rgb[:, :, 2]
    # Same as storing into a clamped 8-bit buffer: round half to even, then clamp
    luma = np.clip(np.rint(luma), 0, 255).astype(np.uint8)

    arr[:, :, 0] = luma
    arr[:, :, 1] = luma
    arr[:, :, 2] = luma
    return Image.fromarray(arr, "RGBA")


def quality_steps(initial: float = 0.8, step: float = 0.1, floor: float = 0.1) -> List[float]:
    """
    Build the descending quality ladder, e.g. 0.8, 0.7, ... 0.1.

    Works in whole percent so repeated subtraction can never land
    a hair below the floor.
    """
    if not (0 < floor <= 1 and 0 < initial <= 1):
        raise ValueError("Quality values must be in (0, 1]")
    if floor > initial:
        raise ValueError("Minimum quality cannot exceed initial quality")
    delta = round(step * 100)
    if delta < 1:
        raise ValueError("Quality step must be at least 0.01")

    start = round(initial * 100)
    stop = round(floor * 100)

    steps = []
    q = start
    while q >= stop:
        steps.append(q / 100)
        q -= delta
    return steps


def encode_webp(img: Image.Image, quality: float) -> bytes:
    """Encode an image as WebP at the given quality (0.0 - 1.0)."""
    buf = io.BytesIO()
    try:
        img.save(buf, format="WEBP", quality=int(round(quality * 100)))
    except (OSError, ValueError, KeyError) as e:
        raise EncodeError("Conversion failed") from e
    data = buf.getvalue()
    if not data:
        raise EncodeError("Conversion failed")
    return data


def compress_to_target(img: Image.Image, target_size: int,
                       initial_quality: float = 0.8,
                       quality_step: float = 0.1,
                       min_quality: float = 0.1) -> Tuple[bytes, float]:
    """
    Encode at decreasing quality until the output is smaller than target_size.

    Returns the last encoded bytes and the quality used. If even the
    minimum quality is not small enough, that encode is returned anyway.
    """
    data = b""
    quality = initial_quality

    for quality in quality_steps(initial_quality, quality_step, min_quality):
        data = encode_webp(img, quality)
        logger.debug("quality=%.2f -> %d bytes (target < %d)", quality, len(data), target_size)
        if len(data) < target_size:
            break

    return data, quality


def process_image(input_path: Path, settings: Optional[dict] = None) -> ProcessedImageResult:
    """Convert one image to grayscale WebP and measure the savings."""
    settings = {**DEFAULT_SETTINGS, **(settings or {})}
    input_path = Path(input_path)

    validate_image_file(input_path)
    original_size = input_path.stat().st_size

    # Step 1: Decode
    img = load_image(input_path)
    logger.info("Loaded %s (%dx%d, %d bytes)", input_path.name, img.width, img.height, original_size)

    # Step 2: Strip color
    gray = to_grayscale(img)

    # Step 3: Find a quality that beats the original size
    data, quality = compress_to_target(
        gray,
        original_size,
        initial_quality=settings["initial_quality"],
        quality_step=settings["quality_step"],
        min_quality=settings["min_quality"],
    )

    processed_size = len(data)
    reduction = reduction_percentage(original_size, processed_size)
    logger.info(
        "Encoded %s at quality %.1f: %d -> %d bytes (%.1f%%)",
        input_path.name, quality, original_size, processed_size, reduction
    )

    return ProcessedImageResult(
        original_path=input_path,
        original_size=original_size,
        processed_data=data,
        processed_size=processed_size,
        reduction_percentage=reduction,
        quality=quality,
        width=gray.width,
        height=gray.height,
    )


def save_result(result: ProcessedImageResult, output_path: Path):
    """Write the encoded image to disk."""
    output_path = Path(output_path)
    with open(output_path, "wb") as f:
        f.write(result.processed_data)
    logger.info("Saved %s (%d bytes)", output_path, result.processed_size)
