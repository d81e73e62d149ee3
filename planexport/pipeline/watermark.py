from __future__ import annotations

import logging
import math
from typing import List, Optional

from ..errors import AssetResolutionFailure
from ..models import ExportOptions
from .layout import DrawOp, ImageOp, Page, PageGeometry, TextOp, fit_font, scaled_height
from .raster import RasterImage, load_asset

logger = logging.getLogger(__name__)

WATERMARK_ANGLE = 45.0


def resolve_logo(options: ExportOptions) -> Optional[RasterImage]:
    if not options.company_logo_ref:
        return None
    try:
        return load_asset(options.company_logo_ref, options.raster_source)
    except AssetResolutionFailure as exc:
        logger.warning("%s; using text-only branding", exc)
        return None


def watermark_ops(
    options: ExportOptions,
    geometry: PageGeometry,
    style: dict,
    logo: Optional[RasterImage] = None,
) -> List[DrawOp]:
    opacity = float(style.get("watermark_opacity", 0.15))
    color = str(style.get("watermark_color", "#808080"))
    bold = str(style.get("font_bold", "Helvetica-Bold"))
    cx, cy = geometry.width / 2, geometry.height / 2

    ops: List[DrawOp] = []
    if logo is not None:
        logo_w = geometry.content_width * 0.5
        logo_h = scaled_height(logo.width, logo.height, logo_w)
        ops.append(ImageOp(cx - logo_w / 2, cy - logo_h / 2, logo_w, logo_h, logo.ref, opacity=opacity))

    # the diagonal is the usable width for rotated text
    diagonal = math.hypot(geometry.content_width, geometry.content_height) * 0.8
    size = fit_font(options.watermark_text, bold, float(style.get("watermark_size", 56)), diagonal, min_size=12)
    ops.append(
        TextOp(
            cx,
            cy,
            options.watermark_text,
            bold,
            size,
            color,
            align="center",
            angle=WATERMARK_ANGLE,
            opacity=opacity,
        )
    )
    return ops


def stamp(
    page: Page,
    options: ExportOptions,
    geometry: PageGeometry,
    style: dict,
    logo: Optional[RasterImage] = None,
) -> Page:
    """Return the page with the watermark appended; committed ops are left untouched."""
    if not options.watermark or any(is_watermark(op) for op in page.ops):
        return page
    return page.with_ops(watermark_ops(options, geometry, style, logo))


def is_watermark(op: DrawOp) -> bool:
    return isinstance(op, TextOp) and op.angle == WATERMARK_ANGLE and op.opacity < 1.0
