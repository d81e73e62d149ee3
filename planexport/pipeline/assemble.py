from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Dict, List, Mapping, Optional, Sequence

from ..config import DEFAULT_TITLE, FOOTER_OFFSET, PRODUCT_ATTRIBUTION, load_style_preset
from ..errors import PermissionDenied
from ..models import ExportOptions
from .content import BlockKind, Section, SectionKind
from .layout import DrawOp, Page, PageGeometry, Paginator, RenderedBlock, TextOp, register_style_fonts
from .pdf_backend import write_pdf
from .raster import RasterImage
from .render import format_date_pt_br, render_cover, render_section
from .watermark import resolve_logo, stamp

logger = logging.getLogger(__name__)


class ExportState(str, Enum):
    IDLE = "idle"
    BUILDING_SECTIONS = "building_sections"
    PAGINATING = "paginating"
    WATERMARKING = "watermarking"
    FINALIZING = "finalizing"
    DONE = "done"


@dataclass
class Document:
    pages: List[Page]
    geometry: PageGeometry
    pdf: bytes
    title: str
    filename: Optional[str] = None
    images: Dict[str, RasterImage] = field(default_factory=dict)

    @property
    def page_count(self) -> int:
        return len(self.pages)


def ensure_can_export(options: ExportOptions) -> None:
    if not options.can_export:
        raise PermissionDenied()


def footer_ops(index: int, total: int, geometry: PageGeometry, style: dict) -> List[DrawOp]:
    font = str(style.get("font_name", "Helvetica"))
    size = float(style.get("footer_size", 8))
    color = str(style.get("footer_color", "#969696"))
    y = geometry.height - FOOTER_OFFSET
    return [
        TextOp(geometry.width / 2, y, f"{index} / {total}", font, size, color, align="center"),
        TextOp(geometry.width - geometry.margin_right, y, PRODUCT_ATTRIBUTION, font, size, color, align="right"),
    ]


def apply_footers(pages: Sequence[Page], geometry: PageGeometry, style: dict) -> List[Page]:
    """Second pass: N is only known once every page exists."""
    total = len(pages)
    return [page.with_ops(footer_ops(page.index, total, geometry, style)) for page in pages]


class DocumentAssembler:
    """
    Turns sections into a finished document.

    Idle -> BuildingSections -> Paginating -> Watermarking -> Finalizing -> Done.
    Any exception aborts the run; no partial document is returned.
    """

    def __init__(self, options: ExportOptions, style: Optional[dict] = None) -> None:
        self.options = options
        self.style = register_style_fonts(copy.deepcopy(style) if style is not None else load_style_preset())
        self.geometry = PageGeometry.a4(options.orientation)
        self.state = ExportState.IDLE

    def _enter(self, state: ExportState) -> None:
        logger.debug("export %s -> %s", self.state.value, state.value)
        self.state = state

    def _title(self, company: str) -> str:
        if self.options.title:
            return self.options.title
        return f"{DEFAULT_TITLE} - {company}" if company else DEFAULT_TITLE

    def _finish(self, pages: List[Page], title: str, images: Mapping[str, RasterImage], logo: Optional[RasterImage]) -> Document:
        self._enter(ExportState.WATERMARKING)
        if self.options.watermark:
            pages = [stamp(page, self.options, self.geometry, self.style, logo) for page in pages]

        self._enter(ExportState.FINALIZING)
        pages = apply_footers(pages, self.geometry, self.style)
        registry: Dict[str, RasterImage] = dict(images)
        if logo is not None:
            registry[logo.ref] = logo
        pdf = write_pdf(pages, self.geometry, registry, title=title, author=PRODUCT_ATTRIBUTION)

        self._enter(ExportState.DONE)
        logger.info("Assembled %s: %d pages, watermark=%s", title, len(pages), self.options.watermark)
        return Document(
            pages=pages,
            geometry=self.geometry,
            pdf=pdf,
            title=title,
            filename=self.options.filename,
            images=registry,
        )

    def assemble(
        self,
        sections: Sequence[Section],
        images: Optional[Mapping[str, RasterImage]] = None,
    ) -> Document:
        ensure_can_export(self.options)
        images = images or {}
        self._enter(ExportState.BUILDING_SECTIONS)
        cover = next((s for s in sections if s.kind == SectionKind.COVER), None)
        body = [s for s in sections if s.kind != SectionKind.COVER]
        company = ""
        if cover is not None:
            company = next((b.text for b in cover.blocks if b.kind == BlockKind.HEADING), "")
        title = self._title(company)
        subtitle = self.options.subtitle or company
        logo = resolve_logo(self.options)

        self._enter(ExportState.PAGINATING)
        generated_on = self.options.generated_on or date.today()
        cover_blocks = cover.blocks if cover is not None else ()
        if not self.options.subtitle:
            # company name already printed as the subtitle
            cover_blocks = cover_blocks[1:]
        cover_page = render_cover(
            title,
            subtitle,
            format_date_pt_br(generated_on),
            cover_blocks,
            self.geometry,
            self.style,
            logo=logo,
        )
        paginator = Paginator(self.geometry, pages=[cover_page])
        for section in body:
            paginator.start_page()
            for block in render_section(section, self.geometry, self.style, images):
                paginator.add(block)

        return self._finish(paginator.pages, title, images, logo)

    def assemble_flow(
        self,
        blocks: Sequence[RenderedBlock],
        title: str,
        images: Optional[Mapping[str, RasterImage]] = None,
    ) -> Document:
        """Single flow without a cover: every block streams from page 1."""
        ensure_can_export(self.options)
        self._enter(ExportState.BUILDING_SECTIONS)
        logo = resolve_logo(self.options)

        self._enter(ExportState.PAGINATING)
        paginator = Paginator(self.geometry)
        paginator.start_page()
        for block in blocks:
            paginator.add(block)

        return self._finish(paginator.pages, title, images or {}, logo)


def assemble(
    sections: Sequence[Section],
    options: ExportOptions,
    images: Optional[Mapping[str, RasterImage]] = None,
    style: Optional[dict] = None,
) -> Document:
    return DocumentAssembler(options, style=style).assemble(sections, images)
