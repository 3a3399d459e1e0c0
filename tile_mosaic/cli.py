"""Rich command-line interface powered by Typer."""

from __future__ import annotations

import logging
import time
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from tile_mosaic.config import EditorConfig
from tile_mosaic.editor import Editor
from tile_mosaic.image_io import compute_target_size, load_image, save_layout
from tile_mosaic.palette import PaletteRegistry, format_quantity, load_palette_file
from tile_mosaic.project_io import ProjectFormatError, load_project
from tile_mosaic.stats import UsageReport, usage_report

app = typer.Typer(
    name="tile-mosaic",
    help="Plan tile mosaics from a limited colour inventory.",
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
        handlers=[RichHandler(console=console, show_path=False, markup=True)],
    )


def _swatch(token: str) -> str:
    if token.startswith("#"):
        return f"[on {token}]    [/on {token}] {token}"
    return token


def _usage_table(report: UsageReport) -> Table:
    table = Table(title="Tile count", show_lines=False)
    table.add_column("Colour")
    table.add_column("Name")
    table.add_column("Used", justify="right")
    table.add_column("Available", justify="right")
    table.add_column("")
    for u in report.colors:
        flag = ""
        if u.over_limit:
            flag = f"[red]short {u.used - int(u.available)}[/red]"
        elif u.approaching_limit:
            flag = "[yellow]low[/yellow]"
        table.add_row(
            _swatch(u.key.to_token()),
            u.name or "",
            str(u.used),
            str(format_quantity(u.available)),
            flag,
        )
    table.caption = (
        f"Total {report.total_cells} / {report.total_available}  |  "
        f"coloured {report.colored_cells}  |  "
        f"colours used {report.colors_used} of {report.palette_colors}"
    )
    return table


def _open_palette(path: Path) -> PaletteRegistry:
    try:
        return load_palette_file(path)
    except (OSError, ValueError) as exc:
        console.print(f"[red]Could not load palette {path}:[/red] {exc}")
        raise typer.Exit(1) from exc


# Defaults come from EditorConfig - single source of truth
_DEFAULTS = EditorConfig()


# -- convert command ---------------------------------------------------

@app.command()
def convert(
    image: Path = typer.Argument(..., help="Image to convert into a tile layout"),
    palette_file: Path = typer.Option(
        ..., "--palette", "-p", help="Palette file (JSON or name,quantity,hex text)",
    ),
    output: Path = typer.Option(
        _DEFAULTS.output_dir / "layout.json", "--output", "-o", help="Project file to write",
    ),
    rows: int | None = typer.Option(None, "--rows", help="Grid rows"),
    cols: int | None = typer.Option(None, "--cols", help="Grid columns"),
    fit_supply: bool = typer.Option(
        True, "--fit-supply/--no-fit-supply",
        help="Size the grid to use ~85% of the finite tile supply",
    ),
    max_side: int = typer.Option(
        32, "--max-side", "-m",
        help="Longest side when neither --rows/--cols nor the supply decide",
    ),
    max_rounds: int = typer.Option(
        _DEFAULTS.max_rounds, "--max-rounds", help="Rationing round cap",
    ),
    preview: Path | None = typer.Option(None, "--preview", help="Also save a PNG preview"),
    upscale: int = typer.Option(
        _DEFAULTS.pixel_upscale, "--upscale", "-u", help="Pixel upscale factor",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Convert IMAGE into a tile layout that respects the palette quantities."""
    _setup_logging(verbose)
    logger = logging.getLogger("tile_mosaic")
    t0 = time.perf_counter()

    if image.suffix.lower() not in _DEFAULTS.SUPPORTED_EXTENSIONS:
        console.print(f"[red]Unsupported image type:[/red] {image.suffix or image.name}")
        raise typer.Exit(1)

    palette = _open_palette(palette_file)
    try:
        img = load_image(image)
    except OSError as exc:
        console.print(f"[red]Could not open image {image}:[/red] {exc}")
        raise typer.Exit(1) from exc

    use_supply = fit_supply and rows is None and cols is None and palette.total_supply() > 0
    if rows is None and cols is None:
        cols, rows = compute_target_size(img.width, img.height, max_side)
    elif cols is None:
        cols = max(1, round(rows * img.width / img.height))
    elif rows is None:
        rows = max(1, round(cols * img.height / img.width))

    cfg = EditorConfig(initial_rows=rows, initial_cols=cols, max_rounds=max_rounds)
    editor = Editor(cfg, palette=palette)

    console.print(Panel.fit(
        f"[bold]TILE MOSAIC[/bold]\n"
        f"Image: {image.name}  |  Palette: {len(palette.color_entries())} colours\n"
        f"Supply: {palette.total_supply()} finite tiles  |  "
        f"Sizing: {'supply' if use_supply else f'{rows}x{cols}'}",
        border_style="cyan",
    ))

    result = editor.import_image(img, fit_to_supply=use_supply)
    logger.info("Grid: %dx%d", editor.grid.rows, editor.grid.cols)

    output.parent.mkdir(parents=True, exist_ok=True)
    editor.save_project(output)
    if preview is not None:
        preview.parent.mkdir(parents=True, exist_ok=True)
        save_layout(editor.grid.cells, preview, upscale)

    console.print(_usage_table(editor.usage()))
    if result.oversubscribed:
        console.print(
            f"[yellow]{len(result.oversubscribed)} cells exceed the available supply "
            f"and use their closest colour anyway.[/yellow]"
        )
    console.print(
        f"[green]✓[/green] {output}  "
        f"[dim]{editor.grid.rows}x{editor.grid.cols}  rounds={result.rounds}"
        f"  time={time.perf_counter() - t0:.1f}s[/dim]"
    )


# -- stats command -----------------------------------------------------

@app.command()
def stats(
    project: Path = typer.Argument(..., help="Project file"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Show how many tiles of each colour a layout needs."""
    _setup_logging(verbose)
    try:
        loaded = load_project(project)
    except ProjectFormatError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(1) from exc

    report = usage_report(
        loaded.cells, PaletteRegistry(loaded.palette), _DEFAULTS.approaching_margin,
    )
    console.print(_usage_table(report))
    if report.has_warnings:
        short = ", ".join(u.key.to_token() for u in report.shortages)
        console.print(f"[red]Not enough tiles for:[/red] {short}")
        raise typer.Exit(2)


# -- palette command ---------------------------------------------------

@app.command()
def palette(
    palette_file: Path = typer.Argument(..., help="Palette file to inspect"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Parse a palette file and list its entries in import order."""
    _setup_logging(verbose)
    registry = _open_palette(palette_file)

    table = Table(title=palette_file.name)
    table.add_column("Colour")
    table.add_column("Name")
    table.add_column("Quantity", justify="right")
    for entry in registry:
        table.add_row(
            _swatch(entry.key.to_token()),
            entry.name or "",
            str(format_quantity(entry.quantity)),
        )
    console.print(table)
    console.print(f"[dim]{registry.total_supply()} finite tiles in total[/dim]")


# -- render command ----------------------------------------------------

@app.command()
def render(
    project: Path = typer.Argument(..., help="Project file"),
    output: Path = typer.Option(Path("output/layout.png"), "--output", "-o"),
    upscale: int = typer.Option(_DEFAULTS.pixel_upscale, "--upscale", "-u"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Render a project file to an upscaled PNG."""
    _setup_logging(verbose)
    try:
        loaded = load_project(project)
    except ProjectFormatError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(1) from exc

    output.parent.mkdir(parents=True, exist_ok=True)
    save_layout(loaded.cells, output, upscale)
    console.print(
        f"[green]✓[/green] Saved to {output}  "
        f"[dim]{loaded.rows}x{loaded.columns}[/dim]"
    )


if __name__ == "__main__":
    app()
