"""Geometric and tonal transforms for OCR input images.

Provides grayscale conversion, bounded downscaling, and linear contrast
adjustment on numpy image arrays.
"""

import cv2
import numpy as np

from microapis.utils.logger import get_logger

logger = get_logger(__name__)


def to_gray(image: np.ndarray) -> np.ndarray:
    """Convert an image to grayscale if it has color channels.

    Args:
        image: Input image (RGB, RGBA or grayscale).

    Returns:
        Grayscale image.
    """
    if image.ndim == 3 and image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_RGBA2GRAY)
    if image.ndim == 3:
        return cv2.cvtColor(image, cv2.COLOR_RGB2GRAY)
    return image


def resize_within(
    image: np.ndarray,
    max_width: int,
    max_height: int | None = None,
) -> np.ndarray:
    """Downscale an image to fit a bounding box, keeping aspect ratio.

    Images already inside the box are returned unchanged; this never
    upscales.

    Args:
        image: Input image.
        max_width: Maximum output width in pixels.
        max_height: Maximum output height in pixels, unbounded if ``None``.

    Returns:
        Image no larger than the bounding box.
    """
    h, w = image.shape[:2]
    scale = max_width / w
    if max_height is not None:
        scale = min(scale, max_height / h)
    if scale >= 1.0:
        return image

    new_size = (max(1, round(w * scale)), max(1, round(h * scale)))
    logger.debug("Resizing %dx%d -> %dx%d", w, h, new_size[0], new_size[1])
    return cv2.resize(image, new_size, interpolation=cv2.INTER_AREA)


def adjust_contrast(image: np.ndarray, gain: float, offset: float = 0.0) -> np.ndarray:
    """Apply ``gain * pixel + offset`` with saturation to 8-bit range.

    Args:
        image: Input image.
        gain: Multiplicative contrast factor.
        offset: Additive brightness offset.

    Returns:
        Contrast-adjusted image.
    """
    result = cv2.convertScaleAbs(image, alpha=gain, beta=offset)
    logger.debug("Applied linear contrast (gain=%.2f, offset=%.1f)", gain, offset)
    return result
