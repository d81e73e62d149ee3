from __future__ import annotations

from pathlib import Path

import fitz  # PyMuPDF
import pytest

from planexport.errors import AssetResolutionFailure, RasterCaptureFailure, SourceNotFound
from planexport.pipeline.raster import (
    FileRasterSource,
    PdfRasterSource,
    RasterImage,
    capture,
    load_asset,
)


def write_chart_pdf(path: Path) -> Path:
    doc = fitz.open()
    page = doc.new_page(width=200, height=100)
    page.insert_text((20, 50), "Receita por trimestre")
    doc.save(str(path))
    doc.close()
    return path


def test_file_source_reads_dimensions(png_file, tmp_path) -> None:
    png_file("chart.png", 64, 32)
    image = capture(FileRasterSource(tmp_path), "chart.png")
    assert (image.width, image.height) == (64, 32)
    assert image.ref == "chart.png"


def test_unknown_ref_is_not_wrapped(tmp_path) -> None:
    with pytest.raises(SourceNotFound):
        capture(FileRasterSource(tmp_path), "missing.png")


def test_capture_without_source() -> None:
    with pytest.raises(SourceNotFound):
        capture(None, "chart.png")


def test_capture_errors_are_wrapped() -> None:
    def broken(ref: str) -> RasterImage:
        raise RuntimeError("canvas tainted")

    with pytest.raises(RasterCaptureFailure) as excinfo:
        capture(broken, "chart")
    assert isinstance(excinfo.value.__cause__, RuntimeError)
    assert "canvas tainted" in str(excinfo.value)


def test_empty_capture_fails() -> None:
    with pytest.raises(RasterCaptureFailure):
        capture(lambda ref: RasterImage(ref=ref, data=b"", width=0, height=0), "chart")


def test_pdf_source_renders_page(tmp_path) -> None:
    source = PdfRasterSource(write_chart_pdf(tmp_path / "plan.pdf"))
    page = capture(source, "1")
    assert (page.width, page.height) == (1600, 800)
    region = capture(source, "1:0,0,100,100")
    assert (region.width, region.height) == (800, 800)


def test_pdf_source_rejects_bad_refs(tmp_path) -> None:
    source = PdfRasterSource(write_chart_pdf(tmp_path / "plan.pdf"))
    for ref in ("2", "0", "abc", "1:0,0,10", "1:500,500,600,600"):
        with pytest.raises(SourceNotFound):
            capture(source, ref)
    with pytest.raises(SourceNotFound):
        capture(PdfRasterSource(tmp_path / "absent.pdf"), "1")


def test_load_asset_wraps_lookup_errors(tmp_path) -> None:
    with pytest.raises(AssetResolutionFailure):
        load_asset("logo.png", FileRasterSource(tmp_path))
