"""Image decoding, encoding and resampling utilities for the thumbnail pipeline."""

import io
import mimetypes
import os
from typing import Optional

from PIL import Image, UnidentifiedImageError

from .exceptions import DecodeError, EncodeError
from .models import DecodedImage

SUPPORTED_FORMATS = ("JPEG", "PNG", "GIF")

EXTENSION_FORMATS = {
    ".jpg": "JPEG",
    ".jpeg": "JPEG",
    ".png": "PNG",
    ".gif": "GIF",
}

TRANSPARENT = (0, 0, 0, 0)

WIDE_INTEGER_MODES = ("I", "I;16", "I;16B", "I;16L", "I;16N")


def decode_image(image_bytes: bytes) -> DecodedImage:
    """
    Decode image bytes into an RGBA raster.

    Only the first frame of animated GIFs is kept.

    Args:
        image_bytes: Encoded JPEG, PNG or GIF data

    Returns:
        DecodedImage holding the RGBA image and its source format

    Raises:
        DecodeError: If the bytes are not a supported, valid image
    """
    try:
        with Image.open(io.BytesIO(image_bytes)) as image:
            source_format = image.format or ""
            if source_format not in SUPPORTED_FORMATS:
                raise DecodeError(f"Unsupported image format: {source_format or 'unknown'}")
            image.seek(0)
            image.load()
            rgba = _to_rgba(image)
    except DecodeError:
        raise
    except (
        UnidentifiedImageError,
        Image.DecompressionBombError,
        OSError,
        SyntaxError,
        ValueError,
    ) as exc:
        raise DecodeError(f"Failed to decode image: {exc}") from exc

    return DecodedImage(image=rgba, format=source_format)


def _to_rgba(image: Image.Image) -> Image.Image:
    # 16-bit grayscale is scaled down to 8 bits; a plain convert clips at 255
    if image.mode in WIDE_INTEGER_MODES:
        image = image.convert("I").point(lambda v: v * (1 / 256)).convert("L")
    return image.convert("RGBA")


def format_for_key(key: str, fallback: Optional[str] = None) -> str:
    """
    Choose the output format from the extension of ``key``.

    Args:
        key: Object key whose extension decides the format
        fallback: Format used when the extension is not recognised

    Raises:
        EncodeError: If neither the extension nor the fallback is supported
    """
    extension = os.path.splitext(key)[1].lower()
    image_format = EXTENSION_FORMATS.get(extension, fallback)
    if image_format not in SUPPORTED_FORMATS:
        raise EncodeError(f"No supported output format for {key!r}", key=key)
    return image_format


def content_type_for_key(key: str) -> str:
    """Guess the Content-Type to store ``key`` with."""
    content_type, _ = mimetypes.guess_type(key)
    return content_type or "application/octet-stream"


def encode_image(image: Image.Image, image_format: str, quality: int = 95) -> bytes:
    """
    Encode an RGBA raster into ``image_format``.

    JPEG has no alpha channel, so transparent areas come out black.

    Raises:
        EncodeError: If the format is unsupported or encoding fails
    """
    image_format = image_format.upper()
    if image_format not in SUPPORTED_FORMATS:
        raise EncodeError(f"Unsupported output format: {image_format}")

    output_stream = io.BytesIO()
    try:
        if image_format == "JPEG":
            image.convert("RGB").save(output_stream, format="JPEG", quality=quality)
        else:
            image.save(output_stream, format=image_format)
    except (OSError, ValueError, KeyError) as exc:
        raise EncodeError(f"Failed to encode {image_format} image: {exc}") from exc

    return output_stream.getvalue()


def resample(image: Image.Image, size: int) -> Image.Image:
    """
    Fit ``image`` into a ``size`` x ``size`` transparent square.

    The image is scaled down proportionally with a bicubic (Catmull-Rom)
    filter until it fits the box, never enlarged, and pasted at the top-left
    corner. The rest of the canvas stays fully transparent.

    Args:
        image: Source raster
        size: Square edge in pixels

    Returns:
        New RGBA image of exactly ``size`` x ``size``
    """
    if size <= 0:
        raise ValueError(f"Thumbnail size must be positive, got {size}")

    # convert() always returns a new image, so the source is left untouched
    thumb = image.convert("RGBA")
    thumb.thumbnail((size, size), Image.Resampling.BICUBIC, reducing_gap=None)

    canvas = Image.new("RGBA", (size, size), TRANSPARENT)
    canvas.paste(thumb, (0, 0))
    return canvas
