"""
Tessera
=======

Turn a source image into a mosaic of small tile images. Every tile-sized
block of the source is replaced by the palette tile whose mean colour is
closest to the block's mean colour.

- **Palette index**: tiles resized to a square, summarised by mean colour,
  searched through a k-d tree
- **Block grid**: edge blocks average only in-bounds pixels; the output is
  padded up to whole tiles
- **Optional dithering**: Floyd-Steinberg error diffusion between blocks
"""

__version__ = "0.2.0"

from tessera.color_utils import distance, to_color_space
from tessera.compositor import allocate_canvas, place, place_region
from tessera.config import MosaicConfig
from tessera.errors import (
    CanvasAllocationFailed,
    ConfigError,
    EmptyPalette,
    EncodeFailure,
    MosaicError,
    UnreadableImage,
    UnreadableInput,
    WriteFailure,
)
from tessera.matcher import ColorMatcher
from tessera.palette import Palette, Tile, build_palette, load_palette
from tessera.pipeline import MosaicResult, render_mosaic, run
from tessera.sampler import Block, Grid, iter_blocks, sample_grid
from tessera.search import SearchIndex

__all__ = [
    "Block",
    "CanvasAllocationFailed",
    "ColorMatcher",
    "ConfigError",
    "EmptyPalette",
    "EncodeFailure",
    "Grid",
    "MosaicConfig",
    "MosaicError",
    "MosaicResult",
    "Palette",
    "SearchIndex",
    "Tile",
    "UnreadableImage",
    "UnreadableInput",
    "WriteFailure",
    "allocate_canvas",
    "build_palette",
    "distance",
    "iter_blocks",
    "load_palette",
    "place",
    "place_region",
    "render_mosaic",
    "run",
    "sample_grid",
    "to_color_space",
]
