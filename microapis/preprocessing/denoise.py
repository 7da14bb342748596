"""Noise reduction and sharpening filters for document images.

Provides median filtering to remove speckle noise and unsharp masking to
restore stroke edges after downscaling.
"""

import cv2
import numpy as np

from microapis.utils.logger import get_logger

logger = get_logger(__name__)


def denoise_median(image: np.ndarray, kernel_size: int = 3) -> np.ndarray:
    """Apply a median filter to remove salt-and-pepper noise.

    Args:
        image: Input image as a numpy array.
        kernel_size: Aperture size; must be odd and greater than 1.

    Returns:
        Denoised image.

    Raises:
        ValueError: If the kernel size is not an odd number above 1.
    """
    if kernel_size < 3 or kernel_size % 2 == 0:
        raise ValueError(f"Median kernel must be odd and >= 3, got {kernel_size}")
    result = cv2.medianBlur(image, kernel_size)
    logger.debug("Applied median denoise with kernel_size=%d", kernel_size)
    return result


def sharpen(image: np.ndarray, sigma: float = 1.0, amount: float = 1.0) -> np.ndarray:
    """Sharpen an image with an unsharp mask.

    Args:
        image: Input image as a numpy array.
        sigma: Standard deviation of the Gaussian blur used as the mask.
        amount: Strength of the sharpening.

    Returns:
        Sharpened image with the same shape and dtype as input.
    """
    blurred = cv2.GaussianBlur(image, (0, 0), sigma)
    result = cv2.addWeighted(image, 1.0 + amount, blurred, -amount, 0)
    logger.debug("Applied unsharp mask (sigma=%.1f, amount=%.1f)", sigma, amount)
    return result
