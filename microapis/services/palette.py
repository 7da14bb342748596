"""Colour palette generation from seed colours.

Hue rotations are done in HLS space and lightness shifts in CIE Lab, both
through OpenCV's floating-point colour conversions. Multi-colour scales are
linear interpolations in RGB between anchor colours.
"""

import re
from dataclasses import dataclass

import cv2
import numpy as np

from microapis.exceptions import InvalidInputError
from microapis.utils.logger import get_logger

logger = get_logger(__name__)

PALETTE_TYPES = ("analogous", "complementary", "monochromatic", "triadic")
PALETTE_ERROR = (
    "Palette generation failed. Use valid hex colors and types: "
    "analogous, complementary, monochromatic, triadic."
)

_HEX = re.compile(r"^#?([0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")
_LAB_STEP = 18.0


@dataclass
class Palette:
    """Colours derived from one seed."""

    seed: str
    palette: list[str]


def parse_hex(value: str) -> np.ndarray:
    """Parse ``#rgb`` or ``#rrggbb`` into an RGB float array in [0, 1].

    Raises:
        ValueError: If the value is not a hex colour.
    """
    match = _HEX.match(value.strip())
    if not match:
        raise ValueError(f"Invalid hex colour: {value!r}")
    digits = match.group(1)
    if len(digits) == 3:
        digits = "".join(ch * 2 for ch in digits)
    rgb = [int(digits[i : i + 2], 16) for i in (0, 2, 4)]
    return np.array(rgb, dtype=np.float32) / 255.0


def to_hex(rgb: np.ndarray) -> str:
    channels = np.clip(np.rint(np.asarray(rgb) * 255.0), 0, 255).astype(int)
    return "#{:02x}{:02x}{:02x}".format(*channels)


def _convert(rgb: np.ndarray, code: int) -> np.ndarray:
    pixel = np.asarray(rgb, dtype=np.float32).reshape(1, 1, 3)
    return cv2.cvtColor(pixel, code).reshape(3)


def rotate_hue(rgb: np.ndarray, degrees: float) -> np.ndarray:
    """Rotate the HSL hue of an RGB colour by ``degrees``."""
    hls = _convert(rgb, cv2.COLOR_RGB2HLS)
    hls[0] = (hls[0] + degrees) % 360.0
    return np.clip(_convert(hls, cv2.COLOR_HLS2RGB), 0.0, 1.0)


def shift_lightness(rgb: np.ndarray, amount: float) -> np.ndarray:
    """Shift Lab lightness by ``amount`` (negative darkens)."""
    lab = _convert(rgb, cv2.COLOR_RGB2Lab)
    lab[0] = np.clip(lab[0] + amount, 0.0, 100.0)
    return np.clip(_convert(lab, cv2.COLOR_Lab2RGB), 0.0, 1.0)


def scale(anchors: list[np.ndarray], count: int) -> list[str]:
    """Sample ``count`` evenly spaced colours along a piecewise RGB scale."""
    stops = np.linspace(0.0, 1.0, len(anchors))
    points = np.linspace(0.0, 1.0, count)
    matrix = np.stack(anchors)
    colors = [
        np.array([np.interp(p, stops, matrix[:, c]) for c in range(3)])
        for p in points
    ]
    return [to_hex(c) for c in colors]


def build_palette(palette_type: str, seed: str) -> list[str]:
    """Derive the colours of one palette.

    Args:
        palette_type: One of :data:`PALETTE_TYPES`.
        seed: Seed colour as hex.

    Returns:
        Hex colours, seed-relative ordering preserved.

    Raises:
        ValueError: On an unknown type or invalid seed.
    """
    base = parse_hex(seed)

    if palette_type == "analogous":
        return scale([rotate_hue(base, -30), base, rotate_hue(base, 30)], 5)
    if palette_type == "complementary":
        return [seed, to_hex(rotate_hue(base, 180))]
    if palette_type == "monochromatic":
        return scale(
            [shift_lightness(base, -_LAB_STEP), shift_lightness(base, _LAB_STEP)], 5
        )
    if palette_type == "triadic":
        return [seed, to_hex(rotate_hue(base, 120)), to_hex(rotate_hue(base, 240))]
    raise ValueError(f"Invalid palette type: {palette_type!r}")


def generate_palettes(palette_type: str, seeds: list[str]) -> list[Palette]:
    """Build one palette per seed.

    Raises:
        InvalidInputError: If the type or any seed is invalid.
    """
    if palette_type not in PALETTE_TYPES:
        logger.info("Palette request rejected: unknown type %r", palette_type)
        raise InvalidInputError(PALETTE_ERROR)
    try:
        return [Palette(seed=seed, palette=build_palette(palette_type, seed)) for seed in seeds]
    except ValueError as exc:
        logger.info("Palette request rejected: %s", exc)
        raise InvalidInputError(PALETTE_ERROR) from exc
