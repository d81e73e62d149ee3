from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date
from typing import Dict

from slugify import slugify

from ..config import DEFAULT_TITLE
from ..models import ExportOptions, StrategicPlanData
from .assemble import Document, DocumentAssembler, assemble, ensure_can_export
from .content import build_sections, raster_refs, raster_region
from .raster import RasterImage, capture
from .render import format_date_pt_br, render_raster, render_title_banner

logger = logging.getLogger(__name__)


def default_filename(company_name: str = "") -> str:
    slug = slugify(company_name or "")
    return f"plano-estrategico-{slug}.pdf" if slug else "plano-estrategico.pdf"


def export_strategic_plan_to_pdf(data: StrategicPlanData, options: ExportOptions) -> Document:
    ensure_can_export(options)
    if not options.filename:
        options = replace(options, filename=default_filename(data.company.name))

    sections = build_sections(data)
    # every capture happens before the first page exists
    images: Dict[str, RasterImage] = {ref: capture(options.raster_source, ref) for ref in raster_refs(sections)}
    logger.info(
        "Exporting plan for %s: %d sections, %d captures",
        data.company.name,
        len(sections),
        len(images),
    )
    return assemble(sections, options, images)


def export_to_pdf(content_ref: str, options: ExportOptions) -> Document:
    """Single-region mode: one captured region flowed under a title banner."""
    ensure_can_export(options)
    if not options.filename:
        options = replace(options, filename=default_filename())

    image = capture(options.raster_source, content_ref)
    images = {content_ref: image}

    assembler = DocumentAssembler(options)
    title = options.title or DEFAULT_TITLE
    subtitle = options.subtitle or format_date_pt_br(options.generated_on or date.today())
    banner = render_title_banner(title, subtitle, assembler.geometry, assembler.style)
    region = render_raster(raster_region(content_ref), assembler.geometry, assembler.style, images)
    return assembler.assemble_flow([banner, region], title, images)
