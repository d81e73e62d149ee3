from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import List, Optional, Tuple, Union

from reportlab.lib.pagesizes import A4, landscape, portrait
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfbase.ttfonts import TTFError, TTFont

from ..config import (
    BLOCK_SPACING,
    MIN_STRIP_HEIGHT,
    PAGE_MARGIN_BOTTOM,
    PAGE_MARGIN_TOP,
    PAGE_MARGIN_X,
)

logger = logging.getLogger(__name__)

EPSILON = 1e-6


# -------------------- geometry --------------------
@dataclass(frozen=True)
class PageGeometry:
    """Fixed page size and margins. All y values are measured from the page top."""

    width: float
    height: float
    margin_left: float = PAGE_MARGIN_X
    margin_right: float = PAGE_MARGIN_X
    margin_top: float = PAGE_MARGIN_TOP
    margin_bottom: float = PAGE_MARGIN_BOTTOM
    block_spacing: float = BLOCK_SPACING

    @classmethod
    def a4(cls, orientation: str = "portrait") -> "PageGeometry":
        if orientation == "portrait":
            width, height = portrait(A4)
        elif orientation == "landscape":
            width, height = landscape(A4)
        else:
            raise ValueError(f"Unsupported orientation: {orientation}")
        return cls(width=width, height=height)

    @property
    def content_top(self) -> float:
        return self.margin_top

    @property
    def content_bottom(self) -> float:
        return self.height - self.margin_bottom

    @property
    def content_width(self) -> float:
        return self.width - self.margin_left - self.margin_right

    @property
    def content_height(self) -> float:
        return self.content_bottom - self.content_top


# -------------------- draw operations --------------------
@dataclass(frozen=True)
class TextOp:
    x: float
    y: float  # baseline
    text: str
    font: str
    size: float
    color: str
    align: str = "left"  # left | center | right
    angle: float = 0.0
    opacity: float = 1.0

    def moved(self, dx: float, dy: float) -> "TextOp":
        return replace(self, x=self.x + dx, y=self.y + dy)


@dataclass(frozen=True)
class RuleOp:
    x1: float
    y1: float
    x2: float
    y2: float
    color: str = "#C8C8C8"
    width: float = 1.0

    def moved(self, dx: float, dy: float) -> "RuleOp":
        return replace(self, x1=self.x1 + dx, y1=self.y1 + dy, x2=self.x2 + dx, y2=self.y2 + dy)


@dataclass(frozen=True)
class ImageOp:
    """
    Draws the image `ref` scaled to w x h with its top at y.

    crop_top/crop_height select the vertical strip that is actually shown;
    the strip's top edge lands on y.
    """

    x: float
    y: float
    w: float
    h: float
    ref: str
    crop_top: float = 0.0
    crop_height: Optional[float] = None
    opacity: float = 1.0

    @property
    def visible_height(self) -> float:
        if self.crop_height is None:
            return self.h - self.crop_top
        return self.crop_height

    @property
    def cropped(self) -> bool:
        return self.crop_top > 0 or self.crop_height is not None

    def moved(self, dx: float, dy: float) -> "ImageOp":
        return replace(self, x=self.x + dx, y=self.y + dy)


DrawOp = Union[TextOp, RuleOp, ImageOp]


# -------------------- measured content --------------------
@dataclass(frozen=True)
class Row:
    """One unbreakable line of a block, ops relative to the row's top-left."""

    height: float
    ops: Tuple[DrawOp, ...] = ()
    splittable: bool = False
    keep_with_next: bool = False  # never the last row on a page

    def split(self, at: float) -> Tuple["Row", "Row"]:
        image = self.ops[0]
        if not isinstance(image, ImageOp):
            raise TypeError("Only image rows can be split")
        head = Row(at, (replace(image, crop_height=at),), splittable=True)
        tail = Row(
            self.height - at,
            (replace(image, crop_top=image.crop_top + at, crop_height=self.height - at),),
            splittable=True,
        )
        return head, tail


@dataclass(frozen=True)
class RenderedBlock:
    kind: str
    rows: Tuple[Row, ...]

    @property
    def height(self) -> float:
        return sum(row.height for row in self.rows)

    def ops_at(self, x: float, y: float) -> List[DrawOp]:
        out: List[DrawOp] = []
        top = y
        for row in self.rows:
            out.extend(op.moved(x, top) for op in row.ops)
            top += row.height
        return out


def split_block(block: RenderedBlock, available: float) -> Tuple[Optional[RenderedBlock], Optional[RenderedBlock]]:
    """
    Cut a block so the head fits in `available`.

    Text rows move whole; an image row is sliced into a strip when at least
    MIN_STRIP_HEIGHT of room is left. Heading rows marked keep_with_next
    follow their body onto the next page.
    """
    taken: List[Row] = []
    rest: List[Row] = []
    used = 0.0
    rows = list(block.rows)
    for index, row in enumerate(rows):
        if used + row.height <= available + EPSILON:
            taken.append(row)
            used += row.height
            continue
        room = available - used
        if row.splittable and room >= MIN_STRIP_HEIGHT:
            head_row, tail_row = row.split(room)
            taken.append(head_row)
            rest = [tail_row] + rows[index + 1:]
        else:
            rest = rows[index:]
        break
    if rest:
        while taken and taken[-1].keep_with_next:
            rest.insert(0, taken.pop())
    head = replace(block, rows=tuple(taken)) if taken else None
    tail = replace(block, rows=tuple(rest)) if rest else None
    return head, tail


# -------------------- cursor & placement --------------------
@dataclass(frozen=True)
class Cursor:
    page: int
    y: float

    def advanced(self, dy: float) -> "Cursor":
        return Cursor(self.page, self.y + dy)


@dataclass(frozen=True)
class Placement:
    starts_new_page: bool
    y: float
    block: RenderedBlock
    cursor: Cursor
    remainder: Optional[RenderedBlock] = None

    @property
    def fits_on_current_page(self) -> bool:
        return not self.starts_new_page


def place(cursor: Cursor, block: RenderedBlock, geometry: PageGeometry) -> Placement:
    height = block.height
    spacing = geometry.block_spacing
    top = geometry.content_top
    bottom = geometry.content_bottom

    if cursor.y + height <= bottom + EPSILON:
        return Placement(False, cursor.y, block, cursor.advanced(height + spacing))

    if height <= geometry.content_height + EPSILON:
        return Placement(True, top, block, Cursor(cursor.page + 1, top + height + spacing))

    # taller than a whole page: fill what is left here, then continue on fresh pages
    at_top = cursor.y <= top + EPSILON
    if not at_top:
        head, tail = split_block(block, bottom - cursor.y)
        if head is not None:
            return Placement(False, cursor.y, head, Cursor(cursor.page, bottom), tail)

    head, tail = split_block(block, geometry.content_height)
    if head is None:
        logger.warning("Row taller than a page (%.1fpt); placing it unsplit", block.rows[0].height)
        head, tail = block, None
    next_y = bottom if tail is not None else top + head.height + spacing
    page = cursor.page if at_top else cursor.page + 1
    return Placement(not at_top, top, head, Cursor(page, next_y), tail)


# -------------------- pages --------------------
@dataclass
class Page:
    index: int
    cursor: float
    ops: List[DrawOp] = field(default_factory=list)

    def commit(self, block: RenderedBlock, x: float, y: float) -> None:
        self.ops.extend(block.ops_at(x, y))
        self.cursor = y + block.height

    def with_ops(self, extra: List[DrawOp]) -> "Page":
        return Page(index=self.index, cursor=self.cursor, ops=list(self.ops) + list(extra))


class Paginator:
    """Streams rendered blocks onto pages, opening pages lazily."""

    def __init__(self, geometry: PageGeometry, pages: Optional[List[Page]] = None) -> None:
        self.geometry = geometry
        self.pages: List[Page] = pages if pages is not None else []
        self.cursor: Optional[Cursor] = None

    @property
    def current(self) -> Page:
        return self.pages[-1]

    def start_page(self) -> Page:
        page = Page(index=len(self.pages) + 1, cursor=self.geometry.content_top)
        self.pages.append(page)
        self.cursor = Cursor(page.index, self.geometry.content_top)
        return page

    def add(self, block: RenderedBlock) -> None:
        if self.cursor is None:
            self.start_page()
        pending: Optional[RenderedBlock] = block
        while pending is not None:
            placement = place(self.cursor, pending, self.geometry)
            if placement.starts_new_page:
                self.start_page()
            self.current.commit(placement.block, self.geometry.margin_left, placement.y)
            self.cursor = placement.cursor
            pending = placement.remainder


# -------------------- text & image metrics --------------------
def wrap_words(text: str, font_name: str, font_size: float, max_width: float) -> List[str]:
    """Word wrap; explicit newlines are kept, an over-long word gets its own line."""
    lines: List[str] = []
    for paragraph in (text or "").splitlines() or [""]:
        words = paragraph.split()
        if not words:
            lines.append("")
            continue
        cur: List[str] = []
        for word in words:
            test = " ".join(cur + [word])
            if stringWidth(test, font_name, font_size) <= max_width:
                cur.append(word)
                continue
            if cur:
                lines.append(" ".join(cur))
                cur = [word]
            else:
                lines.append(word)
        if cur:
            lines.append(" ".join(cur))
    return lines


def fit_font(text: str, font_name: str, base_size: float, max_width: float, min_size: float = 7.0) -> float:
    size = float(base_size)
    while size > min_size:
        if stringWidth(text, font_name, size) <= max_width:
            return size
        size -= 0.5
    return min_size


def scaled_height(src_width: float, src_height: float, target_width: float) -> float:
    if src_width <= 0 or src_height <= 0:
        raise ValueError("Image dimensions must be positive")
    return src_height * target_width / src_width


# -------------------- fonts --------------------
FONT_FILE_KEYS: Tuple[Tuple[str, str], ...] = (
    ("font_name", "font_file"),
    ("font_bold", "font_bold_file"),
)


def register_style_fonts(style: dict) -> dict:
    """Register TrueType files named in the style and point font_name/font_bold at them."""
    for font_key, file_key in FONT_FILE_KEYS:
        path = style.get(file_key)
        if not path:
            continue
        path = Path(path)
        name = path.stem
        if name not in pdfmetrics.getRegisteredFontNames():
            try:
                pdfmetrics.registerFont(TTFont(name, str(path)))
            except (OSError, TTFError) as exc:
                logger.warning("Could not load font %s (%s); keeping %s", path, exc, style.get(font_key))
                continue
        style[font_key] = name
    return style


def _encodes(char: str, encoding: str) -> bool:
    try:
        char.encode(encoding)
    except UnicodeEncodeError:
        return False
    return True


def missing_glyphs(text: str, font_name: str) -> str:
    """Characters of `text` the font cannot draw, substitution fonts included."""
    font = pdfmetrics.getFont(font_name)
    char_map = getattr(getattr(font, "face", None), "charToGlyph", None)
    missing: List[str] = []
    for char in text:
        if char.isspace() or char in missing:
            continue
        if char_map is not None:
            drawable = ord(char) in char_map
        else:
            fonts = [font] + list(getattr(font, "substitutionFonts", []))
            drawable = any(_encodes(char, candidate.encName) for candidate in fonts)
        if not drawable:
            missing.append(char)
    return "".join(missing)
