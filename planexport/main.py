from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional, Tuple

import typer
from pydantic import ValidationError

from . import config
from .errors import ExportError, PermissionDenied
from .models import ExportOptions, StrategicPlanData, reset_engine
from .pipeline.assemble import ensure_can_export
from .pipeline.export import export_strategic_plan_to_pdf, export_to_pdf
from .pipeline.raster import FileRasterSource, PdfRasterSource, RasterSource
from .storage import list_exports, store_export

app = typer.Typer(help="Strategic plan PDF export")
logger = logging.getLogger(__name__)


def load_plan(path: Path) -> StrategicPlanData:
    if not path.exists():
        raise FileNotFoundError(f"Plan file not found: {path}")
    with path.open("r", encoding="utf-8") as handle:
        return StrategicPlanData.model_validate(json.load(handle))


def source_for(source: str) -> Tuple[RasterSource, str]:
    """'chart.png' -> image file; 'plan.pdf#2' or 'plan.pdf#2:x0,y0,x1,y1' -> PDF region."""
    path_part, _, region = source.partition("#")
    path = Path(path_part)
    if path.suffix.lower() == ".pdf":
        return PdfRasterSource(path), region or "1"
    return FileRasterSource(), str(path)


def _build_options(mode: str, **kwargs) -> ExportOptions:
    try:
        return ExportOptions.for_export_mode(mode, **kwargs)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--mode")


def _check_permission(options: ExportOptions) -> None:
    try:
        ensure_can_export(options)
    except PermissionDenied as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=2)


def _use_out_dir(out: Optional[Path]) -> None:
    if out:
        config.set_out_dir(out)
        reset_engine()


@app.command()
def export(
    plan: Path = typer.Argument(..., help="Plan JSON file"),
    out: Optional[Path] = typer.Option(None, "--out", help="Output directory"),
    filename: Optional[str] = typer.Option(None, "--filename", help="Output file name"),
    title: Optional[str] = typer.Option(None, "--title"),
    subtitle: Optional[str] = typer.Option(None, "--subtitle"),
    landscape: bool = typer.Option(False, "--landscape", help="Landscape A4"),
    mode: str = typer.Option("standard", "--mode", help="none | watermark | standard | premium"),
    watermark_text: Optional[str] = typer.Option(None, "--watermark-text"),
    logo: Optional[Path] = typer.Option(None, "--logo", help="Company logo image"),
    assets: Optional[Path] = typer.Option(None, "--assets", help="Directory holding chart captures"),
) -> None:
    _use_out_dir(out)
    extra = {"watermark_text": watermark_text} if watermark_text else {}
    options = _build_options(
        mode,
        filename=filename,
        title=title,
        subtitle=subtitle,
        orientation="landscape" if landscape else "portrait",
        company_logo_ref=str(logo.resolve()) if logo else None,
        raster_source=FileRasterSource(assets or plan.parent),
        **extra,
    )
    _check_permission(options)

    try:
        data = load_plan(plan)
    except (FileNotFoundError, json.JSONDecodeError, ValidationError) as exc:
        typer.echo(f"Invalid plan {plan}: {exc}", err=True)
        raise typer.Exit(code=1)

    try:
        document = export_strategic_plan_to_pdf(data, options)
    except ExportError as exc:
        logger.exception("Export failed for %s", data.company.name)
        typer.echo(f"Export failed: {exc}", err=True)
        raise typer.Exit(code=1)

    path, _ = store_export(document, data.company.name, mode)
    typer.echo(f"Wrote {path} ({document.page_count} pages)")


@app.command()
def capture(
    source: str = typer.Argument(..., help="Image file, or file.pdf#page[:x0,y0,x1,y1]"),
    out: Optional[Path] = typer.Option(None, "--out", help="Output directory"),
    filename: Optional[str] = typer.Option(None, "--filename"),
    title: Optional[str] = typer.Option(None, "--title"),
    subtitle: Optional[str] = typer.Option(None, "--subtitle"),
    landscape: bool = typer.Option(False, "--landscape"),
    mode: str = typer.Option("standard", "--mode"),
) -> None:
    _use_out_dir(out)
    raster_source, ref = source_for(source)
    options = _build_options(
        mode,
        filename=filename,
        title=title,
        subtitle=subtitle,
        orientation="landscape" if landscape else "portrait",
        raster_source=raster_source,
    )
    _check_permission(options)

    try:
        document = export_to_pdf(ref, options)
    except ExportError as exc:
        logger.exception("Capture export failed for %s", source)
        typer.echo(f"Export failed: {exc}", err=True)
        raise typer.Exit(code=1)

    path, _ = store_export(document, document.title, mode)
    typer.echo(f"Wrote {path} ({document.page_count} pages)")


@app.command()
def history(
    out: Optional[Path] = typer.Option(None, "--out", help="Output directory"),
    company: Optional[str] = typer.Option(None, "--company"),
) -> None:
    _use_out_dir(out)
    records = list_exports(company)
    if not records:
        typer.echo("No exports recorded")
        return
    for record in records:
        flag = " [watermark]" if record.watermark else ""
        typer.echo(f"{record.created_at:%Y-%m-%d %H:%M} {record.company}: {record.filename} ({record.page_count} pages){flag}")


if __name__ == "__main__":
    app()
