from __future__ import annotations

from dataclasses import replace
from datetime import date
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from reportlab.lib.units import mm

from ..config import MONTHS_PT_BR
from ..errors import SourceNotFound
from .content import BlockKind, ContentBlock, Section
from .layout import (
    ImageOp,
    Page,
    PageGeometry,
    RenderedBlock,
    Row,
    RuleOp,
    TextOp,
    fit_font,
    scaled_height,
    wrap_words,
)
from .raster import RasterImage


def _s(style: dict, key: str, default):
    return style.get(key, default)


TONE_COLORS: Dict[str, str] = {
    "success": "#15803D",
    "info": "#1D4ED8",
    "warning": "#A16207",
    "muted": "#4B5563",
}


def format_date_pt_br(value: date) -> str:
    return f"{value.day} de {MONTHS_PT_BR[value.month - 1]} de {value.year}"


def _line_height(style: dict, size: float) -> float:
    return size * float(_s(style, "line_height", 1.4))


def _text_rows(
    lines: Sequence[str],
    x: float,
    font: str,
    size: float,
    color: str,
    style: dict,
    align: str = "left",
) -> List[Row]:
    step = _line_height(style, size)
    return [Row(step, (TextOp(x, size, line, font, size, color, align=align),)) for line in lines]


def _kept(rows: Sequence[Row]) -> Tuple[Row, ...]:
    return tuple(replace(row, keep_with_next=True) for row in rows)


# -------------------- blocks --------------------
def render_heading(block: ContentBlock, geometry: PageGeometry, style: dict, images=None) -> RenderedBlock:
    bold = str(_s(style, "font_bold", "Helvetica-Bold"))
    width = geometry.content_width

    if block.level <= 1:
        size = float(_s(style, "section_size", 16))
        color = str(_s(style, "primary_color", "#2563EB"))
        rows = _text_rows(wrap_words(block.text, bold, size, width), 0, bold, size, color, style)
        grid = str(_s(style, "grid_color", "#C8C8C8"))
        rows.append(Row(10.0, (RuleOp(0, 4, width, 4, color=grid),)))
        return RenderedBlock(BlockKind.HEADING.value, _kept(rows))

    if block.level == 2:
        size = float(_s(style, "subheading_size", 12))
        color = TONE_COLORS.get(block.tone or "", str(_s(style, "text_color", "#1E293B")))
    else:
        size = float(_s(style, "body_size", 10)) + 1
        color = str(_s(style, "secondary_color", "#646464"))
    rows = _text_rows(wrap_words(block.text, bold, size, width), 0, bold, size, color, style)
    return RenderedBlock(BlockKind.HEADING.value, _kept(rows))


def render_paragraph(block: ContentBlock, geometry: PageGeometry, style: dict, images=None) -> RenderedBlock:
    font = str(_s(style, "font_name", "Helvetica"))
    size = float(_s(style, "body_size", 10))
    color = str(_s(style, "text_color", "#1E293B"))
    lines = wrap_words(block.text, font, size, geometry.content_width)
    return RenderedBlock(BlockKind.PARAGRAPH.value, tuple(_text_rows(lines, 0, font, size, color, style)))


def render_bullets(block: ContentBlock, geometry: PageGeometry, style: dict, images=None) -> RenderedBlock:
    font = str(_s(style, "font_name", "Helvetica"))
    indent = float(_s(style, "bullet_indent", 12))
    rows: List[Row] = []
    for text, level in block.items:
        if level <= 1:
            size = float(_s(style, "bullet_size", 10))
            color = str(_s(style, "text_color", "#1E293B"))
            glyph, glyph_x = "•", 0.0
        else:
            size = float(_s(style, "sub_bullet_size", 9))
            color = str(_s(style, "secondary_color", "#646464"))
            glyph, glyph_x = "-", indent * (level - 1)
        text_x = glyph_x + indent
        step = _line_height(style, size)
        lines = wrap_words(text, font, size, geometry.content_width - text_x)
        for index, line in enumerate(lines):
            ops = [TextOp(text_x, size, line, font, size, color)]
            if index == 0:
                ops.insert(0, TextOp(glyph_x, size, glyph, font, size, color))
            rows.append(Row(step, tuple(ops)))
    return RenderedBlock(BlockKind.BULLET_LIST.value, tuple(rows))


def render_key_values(block: ContentBlock, geometry: PageGeometry, style: dict, images=None) -> RenderedBlock:
    font = str(_s(style, "font_name", "Helvetica"))
    bold = str(_s(style, "font_bold", "Helvetica-Bold"))
    size = float(_s(style, "body_size", 10))
    text_color = str(_s(style, "text_color", "#1E293B"))
    key_color = str(_s(style, "secondary_color", "#646464"))
    key_w = min(float(_s(style, "key_width", 150)), geometry.content_width / 2)
    step = _line_height(style, size)

    rows: List[Row] = []
    for key, value in block.pairs:
        key_lines = wrap_words(key, bold, size, key_w - 6)
        value_lines = wrap_words(value, font, size, geometry.content_width - key_w)
        for index in range(max(len(key_lines), len(value_lines))):
            ops = []
            if index < len(key_lines):
                ops.append(TextOp(0, size, key_lines[index], bold, size, key_color))
            if index < len(value_lines):
                ops.append(TextOp(key_w, size, value_lines[index], font, size, text_color))
            rows.append(Row(step, tuple(ops)))
    return RenderedBlock(BlockKind.KEY_VALUE.value, tuple(rows))


def render_raster(
    block: ContentBlock,
    geometry: PageGeometry,
    style: dict,
    images: Optional[Mapping[str, RasterImage]] = None,
) -> RenderedBlock:
    ref = block.ref or ""
    image = (images or {}).get(ref)
    if image is None:
        raise SourceNotFound(ref)
    rows: List[Row] = []
    if block.caption:
        font = str(_s(style, "font_name", "Helvetica"))
        size = float(_s(style, "sub_bullet_size", 9))
        color = str(_s(style, "secondary_color", "#646464"))
        lines = wrap_words(block.caption, font, size, geometry.content_width)
        rows.extend(_text_rows(lines, 0, font, size, color, style))
    width = geometry.content_width
    height = scaled_height(image.width, image.height, width)
    rows.append(Row(height, (ImageOp(0, 0, width, height, ref),), splittable=True))
    return RenderedBlock(BlockKind.RASTER_REGION.value, tuple(rows))


BLOCK_RENDERERS: Dict[BlockKind, Callable[..., RenderedBlock]] = {
    BlockKind.HEADING: render_heading,
    BlockKind.PARAGRAPH: render_paragraph,
    BlockKind.BULLET_LIST: render_bullets,
    BlockKind.KEY_VALUE: render_key_values,
    BlockKind.RASTER_REGION: render_raster,
}


def render_block(
    block: ContentBlock,
    geometry: PageGeometry,
    style: dict,
    images: Optional[Mapping[str, RasterImage]] = None,
) -> RenderedBlock:
    return BLOCK_RENDERERS[block.kind](block, geometry, style, images)


def render_section(
    section: Section,
    geometry: PageGeometry,
    style: dict,
    images: Optional[Mapping[str, RasterImage]] = None,
) -> List[RenderedBlock]:
    """Headings are merged into the block that follows them so they never end a page alone."""
    out: List[RenderedBlock] = []
    pending: List[Row] = []
    for block in section.blocks:
        rendered = render_block(block, geometry, style, images)
        if block.kind == BlockKind.HEADING:
            pending.extend(rendered.rows)
            continue
        if pending:
            rendered = RenderedBlock(rendered.kind, tuple(pending) + rendered.rows)
            pending = []
        out.append(rendered)
    if pending:
        out.append(RenderedBlock(BlockKind.HEADING.value, tuple(pending)))
    return out


# -------------------- cover & banner --------------------
def render_cover(
    title: str,
    subtitle: str,
    date_text: str,
    blocks: Sequence[ContentBlock],
    geometry: PageGeometry,
    style: dict,
    logo: Optional[RasterImage] = None,
) -> Page:
    """Cover page; laid out on its own, outside the body paginator."""
    font = str(_s(style, "font_name", "Helvetica"))
    bold = str(_s(style, "font_bold", "Helvetica-Bold"))
    primary = str(_s(style, "primary_color", "#2563EB"))
    secondary = str(_s(style, "secondary_color", "#646464"))
    text_color = str(_s(style, "text_color", "#1E293B"))
    grid = str(_s(style, "grid_color", "#C8C8C8"))

    cx = geometry.width / 2
    width = geometry.content_width
    ops: List = []
    y = 50 * mm

    if logo is not None:
        logo_w = min(50 * mm, width)
        logo_h = scaled_height(logo.width, logo.height, logo_w)
        if logo_h > 30 * mm:
            logo_w = logo_w * (30 * mm) / logo_h
            logo_h = 30 * mm
        ops.append(ImageOp(cx - logo_w / 2, 20 * mm, logo_w, logo_h, logo.ref))
        y = 20 * mm + logo_h + 18 * mm

    title_size = fit_font(title, bold, float(_s(style, "cover_title_size", 28)), width, min_size=18)
    for line in wrap_words(title, bold, title_size, width):
        ops.append(TextOp(cx, y, line, bold, title_size, primary, align="center"))
        y += _line_height(style, title_size)

    sub_size = float(_s(style, "cover_subtitle_size", 14))
    y += 4
    for line in wrap_words(subtitle, font, sub_size, width):
        ops.append(TextOp(cx, y, line, font, sub_size, secondary, align="center"))
        y += _line_height(style, sub_size)
    ops.append(TextOp(cx, y, date_text, font, 12, secondary, align="center"))
    y += 12 * mm

    ops.append(RuleOp(geometry.margin_left, y, geometry.width - geometry.margin_right, y, color=grid))
    y += 16 * mm

    for block in blocks:
        if block.kind == BlockKind.HEADING:
            size = 18.0
            lines, face, color = wrap_words(block.text, bold, size, width), bold, text_color
        else:
            size = 11.0
            lines, face, color = wrap_words(block.text, font, size, width), font, secondary
        for line in lines:
            ops.append(TextOp(cx, y, line, face, size, color, align="center"))
            y += _line_height(style, size)
        y += 6

    return Page(index=1, cursor=y, ops=ops)


def render_title_banner(title: str, subtitle: str, geometry: PageGeometry, style: dict) -> RenderedBlock:
    font = str(_s(style, "font_name", "Helvetica"))
    bold = str(_s(style, "font_bold", "Helvetica-Bold"))
    width = geometry.content_width
    center = width / 2

    title_size = fit_font(title, bold, float(_s(style, "title_size", 24)), width, min_size=16)
    rows = _text_rows(
        wrap_words(title, bold, title_size, width),
        center,
        bold,
        title_size,
        str(_s(style, "primary_color", "#2563EB")),
        style,
        align="center",
    )
    if subtitle:
        rows.extend(
            _text_rows(
                wrap_words(subtitle, font, 12, width),
                center,
                font,
                12,
                str(_s(style, "secondary_color", "#646464")),
                style,
                align="center",
            )
        )
    rows.append(Row(12.0, (RuleOp(0, 6, width, 6, color=str(_s(style, "grid_color", "#C8C8C8"))),)))
    return RenderedBlock("banner", tuple(rows))
