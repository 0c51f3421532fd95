"""Smoke tests for the Typer CLI."""

from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest
from PIL import Image
from typer.testing import CliRunner

from tessera.cli import app

runner = CliRunner()


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    tiles = tmp_path / "tiles"
    tiles.mkdir()
    for name, rgb in [("red", (255, 0, 0)), ("blue", (0, 0, 255)), ("grey", (128, 128, 128))]:
        Image.new("RGB", (6, 6), rgb).save(tiles / f"{name}.png")
    rng = np.random.default_rng(1)
    Image.fromarray(rng.integers(0, 256, (9, 13, 3), dtype=np.uint8)).save(tmp_path / "in.png")
    return tmp_path


def _render(ws: Path, *extra: str, tiles: str = "tiles", out: str = "out/mosaic.png"):
    return runner.invoke(app, [
        "render",
        "-p", str(ws / tiles),
        "-s", "4",
        "-i", str(ws / "in.png"),
        "-o", str(ws / out),
        *extra,
    ])


def test_render(workspace: Path) -> None:
    result = _render(workspace)
    assert result.exit_code == 0, result.output
    out = workspace / "out" / "mosaic.png"
    assert "Dithering: False" in result.output
    assert out.exists()
    assert Image.open(out).size == (16, 12)  # ceil(13/4)*4 x ceil(9/4)*4


def test_render_dithered_jpeg(workspace: Path) -> None:
    result = _render(workspace, "--dither", "--color-space", "oklab", out="m.jpg")
    assert result.exit_code == 0, result.output
    assert Image.open(workspace / "m.jpg").format == "JPEG"


def test_zero_tile_size(workspace: Path) -> None:
    result = runner.invoke(app, [
        "render", "-p", str(workspace / "tiles"), "-s", "0",
        "-i", str(workspace / "in.png"), "-o", str(workspace / "x.png"),
    ])
    assert result.exit_code == 1
    assert not (workspace / "x.png").exists()


def test_empty_palette(workspace: Path) -> None:
    (workspace / "empty").mkdir()
    result = _render(workspace, tiles="empty", out="x.png")
    assert result.exit_code == 1
    assert not (workspace / "x.png").exists()


def test_missing_option(workspace: Path) -> None:
    result = runner.invoke(app, ["render", "-p", str(workspace / "tiles")])
    assert result.exit_code != 0


def test_palette_listing(workspace: Path) -> None:
    (workspace / "tiles" / "broken.png").write_bytes(b"junk")
    result = runner.invoke(app, ["palette", "-p", str(workspace / "tiles"), "-s", "4"])
    assert result.exit_code == 0, result.output
    assert "3 tiles" in result.output
    assert "broken.png" in result.output


def test_failed_render_creates_no_directories(workspace: Path) -> None:
    (workspace / "empty").mkdir()
    result = _render(workspace, tiles="empty", out="new/dir/o.png")
    assert result.exit_code == 1
    assert not (workspace / "new").exists()
