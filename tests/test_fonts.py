from __future__ import annotations

import logging
from pathlib import Path

import fitz  # PyMuPDF
import reportlab

from planexport.config import load_style_preset
from planexport.pipeline.assemble import assemble
from planexport.pipeline.content import build_sections
from planexport.pipeline.layout import Page, PageGeometry, TextOp, missing_glyphs, register_style_fonts
from planexport.pipeline.pdf_backend import warn_missing_glyphs, write_pdf

VERA = Path(reportlab.__file__).parent / "fonts" / "Vera.ttf"


def insight_page(text: str, font: str = "Helvetica") -> Page:
    return Page(index=1, cursor=0, ops=[TextOp(56, 80, text, font, 10, "#1E293B")])


def test_base_fonts_cover_portuguese_and_symbols() -> None:
    assert missing_glyphs("Exportação concluída: Meta ≥ 20% → ok", "Helvetica") == ""


def test_unencodable_characters_are_reported() -> None:
    missing = missing_glyphs("Meta ≥ 20% → ✓ 中文 中文", "Helvetica")
    assert "中" in missing
    assert "文" in missing
    assert missing.count("中") == 1
    assert "≥" not in missing


def test_write_pdf_warns_about_placeholders(caplog) -> None:
    page = insight_page("Expansão para 中国")
    with caplog.at_level(logging.WARNING, logger="planexport.pipeline.pdf_backend"):
        pdf = write_pdf([page], PageGeometry.a4(), {})
    assert pdf.startswith(b"%PDF")
    assert "Helvetica" in caplog.text
    assert "font_file" in caplog.text
    assert warn_missing_glyphs([insight_page("Tudo certo")]) == {}


def test_truetype_font_from_style(acme_plan, export_options) -> None:
    style = register_style_fonts({**load_style_preset(), "font_file": str(VERA), "font_bold_file": str(VERA)})
    assert style["font_name"] == "Vera"
    assert style["font_bold"] == "Vera"
    assert missing_glyphs("Ação", "Vera") == ""

    document = assemble(build_sections(acme_plan), export_options(), style=style)
    with fitz.open(stream=document.pdf, filetype="pdf") as doc:
        fonts = {font[3] for font in doc.get_page_fonts(0)}
    assert any("Vera" in name for name in fonts)


def test_unreadable_font_file_keeps_base_font(tmp_path, caplog) -> None:
    style = {**load_style_preset(), "font_file": str(tmp_path / "missing.ttf")}
    with caplog.at_level(logging.WARNING, logger="planexport.pipeline.layout"):
        register_style_fonts(style)
    assert style["font_name"] == "Helvetica"
    assert "missing.ttf" in caplog.text
