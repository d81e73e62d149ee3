from __future__ import annotations

import io
import logging
from typing import Callable, Dict, List, Mapping, Sequence

from reportlab.lib import colors
from reportlab.pdfgen import canvas

from ..config import PRODUCT_ATTRIBUTION
from ..errors import SourceNotFound
from .layout import DrawOp, ImageOp, Page, PageGeometry, RuleOp, TextOp, missing_glyphs
from .raster import RasterImage

logger = logging.getLogger(__name__)


def _hex(value: str, default=colors.black) -> colors.Color:
    if not value:
        return default
    try:
        return colors.HexColor("#" + str(value).lstrip("#"))
    except ValueError:
        return default


# ops carry top-down y; reportlab wants bottom-up
def _draw_text(canv: canvas.Canvas, op: TextOp, page_h: float, images: Mapping[str, RasterImage]) -> None:
    canv.saveState()
    canv.setFillColor(_hex(op.color))
    if op.opacity < 1.0:
        canv.setFillAlpha(op.opacity)
    canv.setFont(op.font, op.size)
    canv.translate(op.x, page_h - op.y)
    if op.angle:
        canv.rotate(op.angle)
    if op.align == "center":
        canv.drawCentredString(0, 0, op.text)
    elif op.align == "right":
        canv.drawRightString(0, 0, op.text)
    else:
        canv.drawString(0, 0, op.text)
    canv.restoreState()


def _draw_rule(canv: canvas.Canvas, op: RuleOp, page_h: float, images: Mapping[str, RasterImage]) -> None:
    canv.saveState()
    canv.setStrokeColor(_hex(op.color))
    canv.setLineWidth(op.width)
    canv.line(op.x1, page_h - op.y1, op.x2, page_h - op.y2)
    canv.restoreState()


def _draw_image(canv: canvas.Canvas, op: ImageOp, page_h: float, images: Mapping[str, RasterImage]) -> None:
    image = images.get(op.ref)
    if image is None:
        raise SourceNotFound(op.ref)
    canv.saveState()
    if op.opacity < 1.0:
        canv.setFillAlpha(op.opacity)
    if op.cropped:
        # show only the strip; the full image is drawn shifted up by crop_top
        clip = canv.beginPath()
        clip.rect(op.x, page_h - op.y - op.visible_height, op.w, op.visible_height)
        canv.clipPath(clip, stroke=0, fill=0)
    image_top = op.y - op.crop_top
    canv.drawImage(image.reader(), op.x, page_h - image_top - op.h, width=op.w, height=op.h, mask="auto")
    canv.restoreState()


def warn_missing_glyphs(pages: Sequence[Page]) -> Dict[str, str]:
    """Log, once per font, the characters that will print as placeholder boxes."""
    missing: Dict[str, List[str]] = {}
    for page in pages:
        for op in page.ops:
            if not isinstance(op, TextOp):
                continue
            chars = missing.setdefault(op.font, [])
            chars.extend(c for c in missing_glyphs(op.text, op.font) if c not in chars)
    report = {font: "".join(chars) for font, chars in missing.items() if chars}
    for font, chars in report.items():
        logger.warning("Font %s has no glyphs for %r; set font_file in the style to a TrueType font that does", font, chars)
    return report


DRAWERS: Dict[type, Callable[[canvas.Canvas, DrawOp, float, Mapping[str, RasterImage]], None]] = {
    TextOp: _draw_text,
    RuleOp: _draw_rule,
    ImageOp: _draw_image,
}


def write_pdf(
    pages: Sequence[Page],
    geometry: PageGeometry,
    images: Mapping[str, RasterImage],
    title: str = "",
    author: str = "",
) -> bytes:
    buffer = io.BytesIO()
    # invariant=1: no timestamps or random ids in the output
    canv = canvas.Canvas(buffer, pagesize=(geometry.width, geometry.height), invariant=1)
    canv.setTitle(title)
    canv.setAuthor(author)
    canv.setCreator(PRODUCT_ATTRIBUTION)
    warn_missing_glyphs(pages)

    for page in pages:
        for op in page.ops:
            DRAWERS[type(op)](canv, op, geometry.height, images)
        canv.showPage()

    canv.save()
    return buffer.getvalue()
