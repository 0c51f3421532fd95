"""Image discovery, decoding, resizing and atomic saving."""

from __future__ import annotations

import contextlib
import logging
import os
import tempfile
from collections.abc import Iterable
from pathlib import Path

import numpy as np
from PIL import Image

from tessera.errors import (
    EncodeFailure,
    UnreadableImage,
    UnreadableInput,
    WriteFailure,
)

logger = logging.getLogger(__name__)

# Anything Pillow raises for a missing, truncated or hostile file.
_DECODE_ERRORS = (OSError, ValueError, SyntaxError, Image.DecompressionBombError)


def collect_images(folder: str | Path, extensions: Iterable[str]) -> list[Path]:
    """Recursively list files under *folder* with a supported extension.

    The result is sorted so the discovery order (and therefore tile ids)
    does not depend on the filesystem.
    """
    folder = Path(folder)
    exts = {e.lower() for e in extensions}
    return sorted(
        f for f in folder.rglob("*")
        if f.is_file() and f.suffix.lower() in exts
    )


def load_rgb(path: str | Path) -> np.ndarray:
    """Decode the source image.

    Returns:
        (H, W, 3) uint8 array.

    Raises:
        UnreadableInput: the file is missing or cannot be decoded.
    """
    try:
        with Image.open(path) as img:
            rgb = img.convert("RGB")
    except _DECODE_ERRORS as exc:
        raise UnreadableInput(f"cannot read input image {path}: {exc}") from exc
    return np.array(rgb, dtype=np.uint8)


def load_rgba(path: str | Path) -> Image.Image:
    """Decode a palette candidate into a fully loaded RGBA image."""
    try:
        with Image.open(path) as img:
            return img.convert("RGBA")
    except _DECODE_ERRORS as exc:
        raise UnreadableImage(path, str(exc)) from exc


def resize_square(img: Image.Image, size: int) -> Image.Image:
    """Resize to exactly *size* x *size* with bilinear sampling."""
    return img.resize((size, size), Image.BILINEAR)


def flatten_alpha(rgba: np.ndarray) -> np.ndarray:
    """Composite (H, W, 4) uint8 RGBA over black → (H, W, 3) uint8 RGB.

    The mosaic is opaque, so translucent tile pixels are scaled by their
    alpha (truncating) as if drawn on a black background.
    """
    rgb = rgba[..., :3].astype(np.float64)
    alpha = rgba[..., 3:4].astype(np.float64) / 255.0
    return (rgb * alpha).astype(np.uint8)


def output_format(path: str | Path) -> str:
    """Pillow format name for *path*'s extension.

    Raises:
        EncodeFailure: the extension is not one Pillow can write.
    """
    suffix = Path(path).suffix.lower()
    fmt = Image.registered_extensions().get(suffix)
    if fmt is None or fmt not in Image.SAVE:
        raise EncodeFailure(f"unsupported output format {suffix or '(none)'!r} for {path}")
    return fmt


def _output_mode(path: Path) -> int:
    """Permission bits for *path*: kept when overwriting, else 0666 minus umask."""
    try:
        return path.stat().st_mode & 0o7777
    except FileNotFoundError:
        umask = os.umask(0)
        os.umask(umask)
        return 0o666 & ~umask


def save_canvas(canvas: np.ndarray, path: str | Path) -> None:
    """Encode *canvas* to *path*, never leaving a partial file behind.

    Missing parent folders are created. The image is written to a temporary
    sibling first and moved into place with :func:`os.replace` once fully
    encoded; an existing file keeps its permission bits, a new one gets
    0666 minus the umask.
    """
    path = Path(path)
    fmt = output_format(path)
    img = Image.fromarray(np.ascontiguousarray(canvas, dtype=np.uint8))

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{path.stem}.", suffix=path.suffix, dir=path.parent,
        )
    except OSError as exc:
        raise WriteFailure(f"cannot create output in {path.parent}: {exc}") from exc

    tmp = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as fh:
            try:
                img.save(fh, format=fmt)
            except (KeyError, ValueError) as exc:
                raise EncodeFailure(f"cannot encode {path.name} as {fmt}: {exc}") from exc
            except OSError as exc:
                raise WriteFailure(f"cannot write {path}: {exc}") from exc
        # mkstemp creates 0600; give the result the mode a plain open() would.
        os.chmod(tmp, _output_mode(path))
        os.replace(tmp, path)
    except OSError as exc:
        raise WriteFailure(f"cannot write {path}: {exc}") from exc
    finally:
        if tmp.exists():
            with contextlib.suppress(OSError):
                tmp.unlink()

    logger.debug("Saved %dx%d canvas to %s", img.width, img.height, path)
