"""Base64 data URL handling and raster format conversion."""

import base64
import binascii
import io
import re

from PIL import Image, UnidentifiedImageError

from microapis.exceptions import (
    InvalidInputError,
    PayloadTooLargeError,
    UnsupportedImageError,
)
from microapis.utils.logger import get_logger

logger = get_logger(__name__)

_DATA_URL = re.compile(r"^data:([\w.+-]+/[\w.+-]+);base64,(.+)$", re.DOTALL)
_IMAGE_DATA_URL = re.compile(
    r"^data:image/(png|jpeg|jpg);base64,([A-Za-z0-9+/]{4})*"
    r"([A-Za-z0-9+/]{2}==|[A-Za-z0-9+/]{3}=)?$"
)
_LOOSE_IMAGE_DATA_URL = re.compile(r"^data:image/(png|jpeg|jpg);base64,[A-Za-z0-9+/=]+$")
_RAW_BASE64 = re.compile(r"^[A-Za-z0-9+/=]+$")

CONVERTIBLE_FORMATS = {
    "jpeg": ("JPEG", "image/jpeg"),
    "jpg": ("JPEG", "image/jpeg"),
    "png": ("PNG", "image/png"),
    "webp": ("WEBP", "image/webp"),
    "gif": ("GIF", "image/gif"),
    "tiff": ("TIFF", "image/tiff"),
    "bmp": ("BMP", "image/bmp"),
}


def is_image_data_url(value: str) -> bool:
    """Strict check for a PNG/JPEG data URL with well-formed base64."""
    return bool(_IMAGE_DATA_URL.match(value))


def is_image_base64(value: str) -> bool:
    """Accept a PNG/JPEG data URL or bare base64 with valid padding length."""
    if _LOOSE_IMAGE_DATA_URL.match(value):
        return True
    return bool(_RAW_BASE64.match(value)) and len(value) % 4 == 0


def to_data_url(data: bytes, mime_type: str) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def decode_base64(value: str) -> bytes:
    """Decode bare base64 or the payload of a data URL.

    Raises:
        InvalidInputError: If the payload is not valid base64.
    """
    match = _DATA_URL.match(value)
    payload = match.group(2) if match else value
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InvalidInputError("Invalid base64 format") from exc


def parse_data_url(value: str) -> tuple[str, bytes]:
    """Split a data URL into its MIME type and decoded bytes.

    Raises:
        InvalidInputError: If the value is not a base64 data URL.
    """
    match = _DATA_URL.match(value)
    if not match:
        raise InvalidInputError("Invalid base64 format")
    return match.group(1), decode_base64(value)


def convert_format(data: bytes, target: str) -> tuple[bytes, str]:
    """Re-encode an image in another raster format.

    Args:
        data: Encoded source image.
        target: Target format name, e.g. ``"webp"``.

    Returns:
        Encoded bytes and their MIME type.

    Raises:
        InvalidInputError: If the target format is not supported.
        UnsupportedImageError: If the source cannot be decoded.
    """
    key = (target or "").lower()
    if key not in CONVERTIBLE_FORMATS:
        allowed = ", ".join(sorted({k for k in CONVERTIBLE_FORMATS if k != "jpg"}))
        raise InvalidInputError(f"Please provide a valid target_format ({allowed})")
    pil_format, mime_type = CONVERTIBLE_FORMATS[key]

    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            if pil_format == "JPEG" and img.mode not in ("RGB", "L"):
                img = img.convert("RGB")
            buf = io.BytesIO()
            img.save(buf, format=pil_format)
    except Image.DecompressionBombError as exc:
        raise PayloadTooLargeError(f"Image has too many pixels: {exc}") from exc
    except (UnidentifiedImageError, OSError) as exc:
        raise UnsupportedImageError(f"Conversion failed: {exc}") from exc

    logger.info("Converted image to %s (%d bytes)", pil_format, buf.tell())
    return buf.getvalue(), mime_type
