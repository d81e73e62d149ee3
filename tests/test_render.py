from __future__ import annotations

from datetime import date

from planexport.config import load_style_preset
from planexport.pipeline.content import BlockKind, Section, SectionKind, heading, key_values, paragraph
from planexport.pipeline.layout import PageGeometry, RuleOp, TextOp
from planexport.pipeline.render import format_date_pt_br, render_section


GEOMETRY = PageGeometry.a4()


def objectives_section() -> Section:
    return Section(
        kind=SectionKind.OBJECTIVES,
        title="Objetivos Estratégicos",
        blocks=(
            heading("Objetivos Estratégicos"),
            heading("Grow revenue", level=2),
            paragraph("Expandir vendas"),
            heading("Métricas", level=3),
            key_values([("MRR", "Atual: 10k | Meta: 20k")]),
            heading("Notas", level=2),
        ),
    )


def test_headings_travel_with_following_block() -> None:
    blocks = render_section(objectives_section(), GEOMETRY, load_style_preset())
    assert [block.kind for block in blocks] == ["paragraph", "keyValue", BlockKind.HEADING.value]

    paragraph_block = blocks[0]
    texts = [op.text for row in paragraph_block.rows for op in row.ops if isinstance(op, TextOp)]
    assert texts == ["Objetivos Estratégicos", "Grow revenue", "Expandir vendas"]
    kept = [row.keep_with_next for row in paragraph_block.rows]
    assert kept == [True, True, True, False]
    assert isinstance(paragraph_block.rows[1].ops[0], RuleOp)

    key_block = blocks[1]
    assert key_block.rows[0].keep_with_next
    assert not key_block.rows[-1].keep_with_next


def test_section_heading_style() -> None:
    blocks = render_section(objectives_section(), GEOMETRY, load_style_preset())
    title = blocks[0].rows[0].ops[0]
    assert (title.size, title.color, title.font) == (16.0, "#2563EB", "Helvetica-Bold")


def test_format_date_pt_br() -> None:
    assert format_date_pt_br(date(2026, 3, 5)) == "5 de março de 2026"
