"""Centralised configuration via a frozen dataclass."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from tessera.color_utils import COLOR_SPACES
from tessera.errors import ConfigError


@dataclass(frozen=True)
class MosaicConfig:
    """All tuneable parameters for a mosaic run.

    Attributes:
        palette_dir:       Folder scanned recursively for tile images.
        input_path:        Source image to render as a mosaic.
        output_path:       Destination; the format follows the extension.
        tile_size:         Width and height of every tile, in pixels.
        color_space:       Comparison space - "lab", "oklab" or "rgb".
        dither:            Floyd-Steinberg error diffusion across the block grid.
        workers:           Thread pool size (None = one per CPU).
        max_canvas_pixels: Refuse canvases larger than this (None = no limit).
    """

    # Paths
    palette_dir: Path = field(default_factory=lambda: Path("tiles"))
    input_path: Path = field(default_factory=lambda: Path("input.png"))
    output_path: Path = field(default_factory=lambda: Path("mosaic.png"))

    # Tiling
    tile_size: int = 32
    color_space: str = "lab"
    dither: bool = False

    # Resources
    workers: int | None = None
    max_canvas_pixels: int | None = None

    SUPPORTED_EXTENSIONS: frozenset[str] = frozenset(
        {".jpg", ".jpeg", ".png", ".bmp", ".tiff", ".tif", ".webp", ".jfif", ".avif"}
    )

    def __post_init__(self) -> None:
        if isinstance(self.tile_size, bool) or not isinstance(self.tile_size, int):
            raise ConfigError(f"tile size must be an integer, got {self.tile_size!r}")
        if self.tile_size < 1:
            raise ConfigError(f"tile size must be positive, got {self.tile_size}")
        if self.color_space not in COLOR_SPACES:
            raise ConfigError(
                f"unknown colour space {self.color_space!r} "
                f"(expected one of {', '.join(COLOR_SPACES)})"
            )
        if self.workers is not None and self.workers < 1:
            raise ConfigError(f"workers must be at least 1, got {self.workers}")
        if self.max_canvas_pixels is not None and self.max_canvas_pixels < 1:
            raise ConfigError(
                f"max canvas pixels must be positive, got {self.max_canvas_pixels}"
            )
