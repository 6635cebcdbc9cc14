"""Image payload decoding and text encoding.

A delivered payload (file path or ``file://`` URI) is decoded into a Pillow
image, re-encoded as lossless PNG and then base64 encoded. Pixel data
round-trips; the original file's compression format does not.
"""
from __future__ import annotations

import base64
import logging
from io import BytesIO
from pathlib import Path
from typing import Union
from urllib.parse import unquote, urlparse
from urllib.request import url2pathname

from PIL import Image, UnidentifiedImageError

from capture_bridge.core.errors import ImageDecodeError

logger = logging.getLogger(__name__)

# Modes PNG can store directly; everything else is converted first.
_PNG_MODES = {"1", "L", "LA", "P", "RGB", "RGBA", "I", "I;16"}


def resolve_payload(payload: Union[str, Path]) -> Path:
    """Turn a path or file URI into a filesystem path."""
    if isinstance(payload, Path):
        return payload
    parsed = urlparse(payload)
    if parsed.scheme == "file":
        return Path(url2pathname(unquote(parsed.path)))
    if parsed.scheme and len(parsed.scheme) > 1:
        raise ImageDecodeError(f"Unsupported payload scheme: {parsed.scheme}")
    return Path(payload)


def load_image(payload: Union[str, Path]) -> Image.Image:
    """Decode a payload into an in-memory image."""
    path = resolve_payload(payload)
    try:
        with Image.open(path) as img:
            img.load()
            return img.copy()
    except (OSError, UnidentifiedImageError, ValueError) as e:
        raise ImageDecodeError(f"Cannot decode image {path}: {e}") from e


def to_png_bytes(image: Image.Image) -> bytes:
    """Re-encode an image losslessly as PNG."""
    if image.mode not in _PNG_MODES:
        image = image.convert("RGBA" if "A" in image.getbands() else "RGB")
    buf = BytesIO()
    image.save(buf, format="PNG")
    return buf.getvalue()


def encode_image(payload: Union[str, Path], line_wrap: bool = False) -> str:
    """
    Decode, re-encode and base64 a delivered image payload

    Args:
        payload: File path or file URI of the image
        line_wrap: Break the base64 text into 76-column lines

    Returns:
        str: base64 text of the PNG stream

    Raises:
        ImageDecodeError: payload missing, unreadable or not an image
    """
    png = to_png_bytes(load_image(payload))
    if line_wrap:
        return base64.encodebytes(png).decode("ascii")
    return base64.b64encode(png).decode("ascii")


def decode_image(text: str) -> Image.Image:
    """Inverse of `encode_image`, for listeners that want pixels back."""
    raw = base64.b64decode(text)
    try:
        with Image.open(BytesIO(raw)) as img:
            img.load()
            return img.copy()
    except (OSError, UnidentifiedImageError) as e:
        raise ImageDecodeError(f"Cannot decode image text: {e}") from e
