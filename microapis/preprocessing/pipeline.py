"""Image preprocessing stage for the OCR pipeline.

Validates the declared format and dimensions, then normalises the image
(grayscale, bounded resize, contrast, sharpening, denoise). When the primary
transform fails a simpler fallback is tried, and when that fails as well the
original bytes are passed through. The strategy that produced the buffer is
reported on the result.
"""

import io
from dataclasses import dataclass

import cv2
import numpy as np
from PIL import Image, UnidentifiedImageError

from microapis.exceptions import PayloadTooLargeError, UnsupportedImageError
from microapis.utils.config import PreprocessingConfig
from microapis.utils.logger import get_logger

from .denoise import denoise_median, sharpen
from .transforms import adjust_contrast, resize_within, to_gray

logger = get_logger(__name__)

SUPPORTED_FORMATS = frozenset({"PNG", "JPEG"})

STRATEGY_PRIMARY = "primary"
STRATEGY_FALLBACK = "fallback"
STRATEGY_ORIGINAL = "original"

_TRANSFORM_ERRORS = (cv2.error, ValueError, OSError, Image.DecompressionBombError)


@dataclass
class ImageInfo:
    """Declared format and size of an encoded image."""

    format: str
    width: int
    height: int


@dataclass
class PreprocessResult:
    """Buffer handed to the recognizer and the strategy that produced it."""

    buffer: bytes
    strategy: str


def calculate_sharpness(image: np.ndarray) -> float:
    """Calculate image sharpness using Laplacian variance.

    Args:
        image: Grayscale input image.

    Returns:
        Sharpness score (higher means sharper).
    """
    return float(cv2.Laplacian(image, cv2.CV_64F).var())


def calculate_contrast(image: np.ndarray) -> float:
    """Calculate contrast as the standard deviation of pixel intensities."""
    return float(image.std())


def inspect_image(buffer: bytes) -> ImageInfo:
    """Read the format and dimensions of an encoded image.

    Args:
        buffer: Encoded image bytes.

    Returns:
        Image format and size.

    Raises:
        UnsupportedImageError: If the bytes are not a PNG or JPEG image
            with positive dimensions.
        PayloadTooLargeError: If the pixel count exceeds Pillow's limit.
    """
    try:
        with Image.open(io.BytesIO(buffer)) as img:
            info = ImageInfo(format=img.format or "", width=img.width, height=img.height)
    except Image.DecompressionBombError as exc:
        raise PayloadTooLargeError(f"Image has too many pixels: {exc}") from exc
    except (UnidentifiedImageError, OSError) as exc:
        raise UnsupportedImageError(f"Unreadable image data: {exc}") from exc

    if info.width <= 0 or info.height <= 0:
        raise UnsupportedImageError(
            f"Invalid image dimensions: {info.width}x{info.height}"
        )
    if info.format not in SUPPORTED_FORMATS:
        raise UnsupportedImageError(f"Unsupported image format: {info.format or 'unknown'}")
    return info


def decode_image(buffer: bytes) -> np.ndarray:
    """Decode image bytes into an RGB or grayscale numpy array."""
    with Image.open(io.BytesIO(buffer)) as img:
        if img.mode not in ("RGB", "L"):
            img = img.convert("RGB")
        return np.array(img)


def encode_png(image: np.ndarray) -> bytes:
    ok, encoded = cv2.imencode(".png", image)
    if not ok:
        raise ValueError("PNG encoding failed")
    return encoded.tobytes()


class PreprocessingPipeline:
    """Normalises uploaded images before recognition.

    Args:
        config: Preprocessing configuration (size cap, gains, filters).
    """

    def __init__(self, config: PreprocessingConfig) -> None:
        self.config = config

    def process(self, buffer: bytes) -> PreprocessResult:
        """Run the preprocessing stage with its fallbacks.

        Args:
            buffer: Encoded PNG or JPEG bytes.

        Returns:
            The buffer to recognise and the strategy that produced it.

        Raises:
            UnsupportedImageError: If the format or dimensions are rejected.
        """
        info = inspect_image(buffer)
        logger.info("Input image: %dx%d, format: %s", info.width, info.height, info.format)

        try:
            processed = self._primary(buffer)
            if len(processed) < self.config.min_output_bytes:
                raise ValueError(
                    f"Preprocessed buffer suspiciously small ({len(processed)} bytes)"
                )
            logger.info("Primary preprocessing completed, output %.2fKB", len(processed) / 1024)
            return PreprocessResult(processed, STRATEGY_PRIMARY)
        except _TRANSFORM_ERRORS as exc:
            logger.warning("Primary preprocessing failed: %s", exc)

        try:
            processed = self._fallback(buffer)
            logger.warning(
                "Fallback preprocessing applied, output %.2fKB", len(processed) / 1024
            )
            return PreprocessResult(processed, STRATEGY_FALLBACK)
        except _TRANSFORM_ERRORS as exc:
            logger.error("Fallback preprocessing failed: %s", exc)

        logger.warning("Using original buffer without preprocessing")
        return PreprocessResult(buffer, STRATEGY_ORIGINAL)

    def _primary(self, buffer: bytes) -> bytes:
        cfg = self.config
        gray = to_gray(decode_image(buffer))
        sharpness_before = calculate_sharpness(gray)
        contrast_before = calculate_contrast(gray)

        result = resize_within(gray, cfg.max_dimension, cfg.max_dimension)
        result = adjust_contrast(result, cfg.contrast_gain)
        result = sharpen(result, sigma=cfg.sharpen_sigma)
        result = denoise_median(result, cfg.median_kernel)

        logger.debug(
            "Preprocessing metrics: sharpness %.1f->%.1f, contrast %.1f->%.1f",
            sharpness_before,
            calculate_sharpness(result),
            contrast_before,
            calculate_contrast(result),
        )
        return encode_png(result)

    def _fallback(self, buffer: bytes) -> bytes:
        cfg = self.config
        gray = to_gray(decode_image(buffer))
        result = resize_within(gray, cfg.max_dimension)
        result = adjust_contrast(result, cfg.fallback_contrast_gain)
        return encode_png(result)
