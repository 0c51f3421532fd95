"""Colour-space conversion and the distance metric used for matching.

Tiles and blocks are both summarised by :func:`mean_color` of their pixels
after :func:`to_color_space`, and compared with :func:`distance`. Using the
same space and the same summary on both sides keeps matches comparable.
"""

from __future__ import annotations

import numpy as np
from skimage.color import rgb2lab

COLOR_SPACES = ("lab", "oklab", "rgb")

Color = tuple[float, float, float]

# https://bottosson.github.io/posts/oklab/
_OKLAB_M1 = np.array([
    [0.4122214708, 0.5363325363, 0.0514459929],
    [0.2119034982, 0.6806995451, 0.1073969566],
    [0.0883024619, 0.2817188376, 0.6299787005],
])
_OKLAB_M2 = np.array([
    [0.2104542553, 0.7936177850, -0.0040720468],
    [1.9779984951, -2.4285922050, 0.4505937099],
    [0.0259040371, 0.7827717662, -0.8086757660],
])


def rgb_to_lab(rgb: np.ndarray) -> np.ndarray:
    """Convert (..., 3) uint8 RGB → (..., 3) float64 CIELAB."""
    rgb = np.asarray(rgb)
    flat = rgb.astype(np.float64).reshape(1, -1, 3) / 255.0
    return rgb2lab(flat).reshape(rgb.shape)


def srgb_to_linear(rgb: np.ndarray) -> np.ndarray:
    """Undo the sRGB transfer curve; (..., 3) uint8 → float64 in [0, 1]."""
    c = np.asarray(rgb, dtype=np.float64) / 255.0
    return np.where(c <= 0.04045, c / 12.92, ((c + 0.055) / 1.055) ** 2.4)


def rgb_to_oklab(rgb: np.ndarray) -> np.ndarray:
    """Convert (..., 3) uint8 RGB → (..., 3) float64 Oklab."""
    lms = np.cbrt(srgb_to_linear(rgb) @ _OKLAB_M1.T)
    return lms @ _OKLAB_M2.T


def to_color_space(rgb: np.ndarray, color_space: str = "lab") -> np.ndarray:
    """Convert uint8 RGB pixels of any leading shape into *color_space*.

    Args:
        rgb: (..., 3) uint8.
        color_space: ``"lab"``, ``"oklab"`` or ``"rgb"``.

    Returns:
        (..., 3) float64.
    """
    if color_space == "lab":
        return rgb_to_lab(rgb)
    if color_space == "oklab":
        return rgb_to_oklab(rgb)
    if color_space == "rgb":
        return np.asarray(rgb, dtype=np.float64)
    raise ValueError(f"Unknown colour space {color_space!r}")


def mean_color(pixels: np.ndarray) -> Color:
    """Arithmetic mean of (..., 3) converted pixels as an immutable Color."""
    m = np.asarray(pixels, dtype=np.float64).reshape(-1, 3).mean(axis=0)
    return (float(m[0]), float(m[1]), float(m[2]))


def squared_distances(colors: np.ndarray, query: np.ndarray) -> np.ndarray:
    """Squared Euclidean distance from every row of *colors* to *query*.

    Broadcasts, so ``colors`` of shape (M, k, 3) against ``query`` of shape
    (M, 1, 3) gives (M, k).
    """
    diff = np.asarray(colors, dtype=np.float64) - np.asarray(query, dtype=np.float64)
    return np.sum(diff * diff, axis=-1)


def distance(a: Color | np.ndarray, b: Color | np.ndarray) -> float:
    """Euclidean distance between two colours in the same space."""
    return float(np.sqrt(squared_distances(np.asarray(a), np.asarray(b))))


def nearest_linear(colors: np.ndarray, query: Color | np.ndarray) -> int:
    """Reference nearest-neighbour scan; ties go to the lowest index."""
    d2 = squared_distances(colors, np.asarray(query))
    return int(np.flatnonzero(d2 == d2.min())[0])
