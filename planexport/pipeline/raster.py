from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Tuple

import fitz  # PyMuPDF
from reportlab.lib.utils import ImageReader

from ..errors import AssetResolutionFailure, RasterCaptureFailure, SourceNotFound

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RasterImage:
    ref: str
    data: bytes
    width: int
    height: int

    @classmethod
    def from_bytes(cls, ref: str, data: bytes) -> "RasterImage":
        width, height = ImageReader(io.BytesIO(data)).getSize()
        return cls(ref=ref, data=data, width=int(width), height=int(height))

    def reader(self) -> ImageReader:
        return ImageReader(io.BytesIO(self.data))


# capture(ref) -> RasterImage; raises SourceNotFound for unknown refs
RasterSource = Callable[[str], RasterImage]


class FileRasterSource:
    """Image files (PNG/JPEG) on disk, refs relative to base_dir."""

    def __init__(self, base_dir: Optional[Path] = None) -> None:
        self.base_dir = base_dir

    def _resolve(self, ref: str) -> Path:
        path = Path(ref)
        if not path.is_absolute() and self.base_dir is not None:
            path = self.base_dir / path
        return path

    def __call__(self, ref: str) -> RasterImage:
        path = self._resolve(ref)
        if not path.is_file():
            raise SourceNotFound(ref)
        return RasterImage.from_bytes(ref, path.read_bytes())


def _parse_region(ref: str) -> Tuple[int, Optional[Tuple[float, float, float, float]]]:
    """'3' -> page 3; '3:x0,y0,x1,y1' -> clip rect in points on page 3."""
    page_part, _, clip_part = ref.partition(":")
    page_no = int(page_part)
    if not clip_part:
        return page_no, None
    values = [float(v) for v in clip_part.split(",")]
    if len(values) != 4:
        raise ValueError(f"Clip needs four values: {clip_part}")
    return page_no, (values[0], values[1], values[2], values[3])


class PdfRasterSource:
    """
    Rasterizes pages, or clipped regions of pages, of an already rendered PDF.

    The zoom is chosen so the short side of the capture lands near `min_px`,
    never below 2x.
    """

    def __init__(self, pdf_path: Path, min_px: int = 1600, max_zoom: float = 8.0) -> None:
        self.pdf_path = Path(pdf_path)
        self.min_px = min_px
        self.max_zoom = max_zoom

    def __call__(self, ref: str) -> RasterImage:
        try:
            page_no, clip = _parse_region(ref)
        except ValueError:
            raise SourceNotFound(ref) from None
        if not self.pdf_path.is_file():
            raise SourceNotFound(str(self.pdf_path))

        with fitz.open(self.pdf_path) as doc:
            if not 1 <= page_no <= doc.page_count:
                raise SourceNotFound(ref)
            page = doc.load_page(page_no - 1)
            rect = fitz.Rect(clip) if clip else fitz.Rect(page.rect)
            rect.intersect(page.rect)
            if rect.is_empty:
                raise SourceNotFound(ref)

            short_side = min(rect.width, rect.height)
            zoom = min(self.max_zoom, max(2.0, self.min_px / float(short_side)))
            pix = page.get_pixmap(matrix=fitz.Matrix(zoom, zoom), clip=rect, alpha=False)
            return RasterImage(ref=ref, data=pix.tobytes("png"), width=pix.width, height=pix.height)


def capture(source: Optional[RasterSource], ref: str) -> RasterImage:
    if source is None:
        raise SourceNotFound(ref)
    try:
        image = source(ref)
    except SourceNotFound:
        raise
    except Exception as exc:
        logger.error("Raster capture failed for %s", ref)
        raise RasterCaptureFailure(ref, str(exc)) from exc
    if image.width <= 0 or image.height <= 0:
        raise RasterCaptureFailure(ref, "empty capture")
    return image


def load_asset(ref: str, source: Optional[RasterSource] = None) -> RasterImage:
    loader = source if source is not None else FileRasterSource()
    try:
        return loader(ref)
    except Exception as exc:
        raise AssetResolutionFailure(ref, str(exc)) from exc
