"""Palette index: tile bitmaps, their representative colours and a search index."""

from __future__ import annotations

import logging
import time
from collections.abc import Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path

import numpy as np
from PIL import Image

from tessera.color_utils import Color, mean_color, to_color_space
from tessera.errors import (
    EmptyPalette,
    PaletteDirectoryError,
    StageResult,
    UnreadableImage,
)
from tessera.image_io import collect_images, flatten_alpha, load_rgba, resize_square
from tessera.search import SearchIndex

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class Tile:
    """One palette entry.

    ``id`` is the position among usable tiles in discovery order and doubles
    as the tie-break key when two tiles are equally close to a colour.
    """

    id: int
    bitmap: np.ndarray  # (tile_size, tile_size, 3) uint8, read-only
    color: Color
    source: str


@dataclass(frozen=True, eq=False)
class Palette:
    """Immutable, non-empty set of tiles shared read-only by all matchers."""

    tiles: tuple[Tile, ...]
    tile_size: int
    color_space: str
    bitmaps: np.ndarray  # (N, tile_size, tile_size, 3) uint8, read-only
    index: SearchIndex
    skipped: tuple[UnreadableImage, ...] = ()

    def __len__(self) -> int:
        return len(self.tiles)

    def __getitem__(self, tile_id: int) -> Tile:
        return self.tiles[tile_id]

    @property
    def colors(self) -> np.ndarray:
        """(N, 3) float64 representative colours, row = tile id."""
        return self.index.colors


def prepare_tile(
    source: str | Path,
    img: Image.Image,
    tile_size: int,
) -> StageResult[np.ndarray]:
    """Resize a decoded candidate and flatten it onto black.

    Returns:
        ``OK`` with a (tile_size, tile_size, 3) uint8 bitmap, or ``SKIPPED``
        carrying an :class:`UnreadableImage` when Pillow rejects the image.
    """
    try:
        resized = resize_square(img.convert("RGBA"), tile_size)
        bitmap = flatten_alpha(np.array(resized, dtype=np.uint8))
    except (OSError, ValueError) as exc:
        return StageResult.skipped(UnreadableImage(source, str(exc)))
    return StageResult.ok(bitmap)


def load_tile(path: str | Path, tile_size: int) -> StageResult[np.ndarray]:
    """Decode and prepare one candidate file."""
    try:
        img = load_rgba(path)
    except UnreadableImage as exc:
        return StageResult.skipped(exc)
    return prepare_tile(path, img, tile_size)


def _assemble(
    results: Iterable[tuple[str, StageResult[np.ndarray]]],
    tile_size: int,
    color_space: str,
) -> Palette:
    bitmaps: list[np.ndarray] = []
    sources: list[str] = []
    skipped: list[UnreadableImage] = []

    for source, result in results:
        if result.is_ok:
            bitmaps.append(result.value)
            sources.append(source)
        else:
            logger.warning("Skipping tile: %s", result.error)
            skipped.append(result.error)

    if not bitmaps:
        raise EmptyPalette(
            f"no usable tile images ({len(skipped)} unreadable candidate(s) skipped)"
        )

    stack = np.stack(bitmaps)
    stack.flags.writeable = False
    colors = [mean_color(to_color_space(b, color_space)) for b in stack]

    tiles = tuple(
        Tile(id=i, bitmap=stack[i], color=c, source=s)
        for i, (c, s) in enumerate(zip(colors, sources, strict=True))
    )
    return Palette(
        tiles=tiles,
        tile_size=tile_size,
        color_space=color_space,
        bitmaps=stack,
        index=SearchIndex.from_colors(np.array(colors)),
        skipped=tuple(skipped),
    )


def build_palette(
    tile_images: Sequence[tuple[str | Path, Image.Image]],
    tile_size: int,
    color_space: str = "lab",
) -> Palette:
    """Build a palette from already decoded ``(source, image)`` pairs.

    Candidates that cannot be resized are skipped with a warning; ids are
    assigned to the remaining ones in input order.

    Raises:
        EmptyPalette: no candidate survived.
    """
    return _assemble(
        ((str(src), prepare_tile(src, img, tile_size)) for src, img in tile_images),
        tile_size,
        color_space,
    )


def load_palette(
    directory: str | Path,
    tile_size: int,
    color_space: str = "lab",
    extensions: Iterable[str] = (".png", ".jpg", ".jpeg", ".webp", ".avif"),
    workers: int | None = None,
) -> Palette:
    """Scan *directory* recursively and build a palette from its images.

    Decoding and resizing fan out over a thread pool; results are consumed
    in discovery order so ids stay deterministic.

    Raises:
        PaletteDirectoryError: *directory* is not a directory.
        EmptyPalette: no image files, or none of them readable.
    """
    directory = Path(directory)
    if not directory.is_dir():
        raise PaletteDirectoryError(f"palette path {directory} is not a directory")

    paths = collect_images(directory, extensions)
    if not paths:
        raise EmptyPalette(f"no image files found in {directory}")

    logger.info("Loading %d palette candidates from %s …", len(paths), directory)
    t0 = time.perf_counter()
    with ThreadPoolExecutor(max_workers=workers) as pool:
        results = list(pool.map(lambda p: load_tile(p, tile_size), paths))

    palette = _assemble(
        ((str(p), r) for p, r in zip(paths, results, strict=True)),
        tile_size,
        color_space,
    )
    logger.info(
        "Palette ready: %d tiles, %d skipped  (%.1f s)",
        len(palette), len(palette.skipped), time.perf_counter() - t0,
    )
    return palette
