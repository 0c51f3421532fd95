"""Rich command-line interface powered by Typer."""

from __future__ import annotations

import logging
import time
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from tessera.config import MosaicConfig
from tessera.errors import MosaicError
from tessera.palette import load_palette
from tessera.pipeline import run

app = typer.Typer(
    name="tessera",
    help="Build image mosaics out of a folder of tile images.",
    add_completion=False,
    rich_markup_mode="rich",
)
console = Console()


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False, markup=False)],
        force=True,
    )


def _fail(exc: Exception) -> typer.Exit:
    console.print(f"[bold red]error:[/bold red] {escape(str(exc))}", highlight=False, soft_wrap=True)
    return typer.Exit(1)


# Defaults come from MosaicConfig - single source of truth
_DEFAULTS = MosaicConfig()


# -- render command ----------------------------------------------------

@app.command()
def render(
    palette_dir: Path = typer.Option(
        ..., "--palette-dir", "-p", help="Folder of tile images (searched recursively)",
    ),
    tile_size: int = typer.Option(
        ..., "--tile-size", "-s", help="Width and height of each tile, in pixels",
    ),
    input_path: Path = typer.Option(..., "--input", "-i", help="Image to render"),
    output_path: Path = typer.Option(
        ..., "--output", "-o", help="Output image; format follows the extension",
    ),
    dither: bool = typer.Option(
        _DEFAULTS.dither, "--dither/--no-dither", help="Floyd-Steinberg dithering",
    ),
    color_space: str = typer.Option(
        _DEFAULTS.color_space, "--color-space", help="'lab', 'oklab' or 'rgb'",
    ),
    workers: int | None = typer.Option(
        _DEFAULTS.workers, "--workers", "-w", help="Worker threads (default: CPU count)",
    ),
    max_canvas_pixels: int | None = typer.Option(
        _DEFAULTS.max_canvas_pixels, "--max-canvas-pixels",
        help="Refuse outputs larger than this many pixels",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Render INPUT as a mosaic of tiles from PALETTE_DIR and write OUTPUT."""
    _setup_logging(verbose)

    try:
        cfg = MosaicConfig(
            palette_dir=palette_dir,
            input_path=input_path,
            output_path=output_path,
            tile_size=tile_size,
            color_space=color_space,
            dither=dither,
            workers=workers,
            max_canvas_pixels=max_canvas_pixels,
        )
    except MosaicError as exc:
        raise _fail(exc) from exc

    console.print(Panel.fit(
        f"[bold]TESSERA[/bold]\n"
        f"Palette: {cfg.palette_dir}  |  Tile size: {cfg.tile_size}px\n"
        f"Colour space: {cfg.color_space}  |  Dithering: {cfg.dither}",
        border_style="cyan",
    ))

    t0 = time.perf_counter()
    try:
        result = run(cfg)
    except MosaicError as exc:
        raise _fail(exc) from exc

    width, height = result.grid.canvas_size
    console.print(
        f"[green]✓[/green] Saved to {output_path}  "
        f"[dim]{width}x{height} = {result.grid.cols}x{result.grid.rows} tiles  "
        f"palette={len(result.palette)}  time={time.perf_counter() - t0:.1f}s[/dim]"
    )


# -- palette command ---------------------------------------------------

@app.command()
def palette(
    palette_dir: Path = typer.Option(..., "--palette-dir", "-p"),
    tile_size: int = typer.Option(_DEFAULTS.tile_size, "--tile-size", "-s"),
    color_space: str = typer.Option(_DEFAULTS.color_space, "--color-space"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """List the tiles of PALETTE_DIR with their representative colours."""
    _setup_logging(verbose)

    try:
        cfg = MosaicConfig(
            palette_dir=palette_dir, tile_size=tile_size, color_space=color_space,
        )
        pal = load_palette(
            cfg.palette_dir,
            cfg.tile_size,
            color_space=cfg.color_space,
            extensions=cfg.SUPPORTED_EXTENSIONS,
        )
    except MosaicError as exc:
        raise _fail(exc) from exc

    table = Table(title=f"{len(pal)} tiles ({cfg.color_space})")
    table.add_column("id", justify="right")
    table.add_column("colour")
    table.add_column("source", overflow="fold")
    for tile in pal.tiles:
        r, g, b = (int(v) for v in tile.bitmap.reshape(-1, 3).mean(axis=0))
        swatch = f"[on rgb({r},{g},{b})]    [/]"
        coords = ", ".join(f"{v:7.2f}" for v in tile.color)
        table.add_row(str(tile.id), f"{swatch} {coords}", tile.source)
    console.print(table)

    for skipped in pal.skipped:
        console.print(f"[yellow]skipped[/yellow] {escape(str(skipped))}", highlight=False, soft_wrap=True)


if __name__ == "__main__":
    app()
