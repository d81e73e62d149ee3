from __future__ import annotations

from planexport.models import StrategicPlanData
from planexport.pipeline.content import (
    CANONICAL_ORDER,
    BlockKind,
    SectionKind,
    build_sections,
    raster_refs,
)

from conftest import section_texts


FULL_PLAN = {
    "company": {"name": "Acme", "segment": "Varejo", "mission": "Servir bem"},
    "ogsm": {
        "objective": "Ser líder regional",
        "goals": [
            {
                "title": "Crescer 20%",
                "strategies": [
                    {"title": "Expandir lojas", "measures": [{"name": "Novas lojas", "target": "5"}]}
                ],
            }
        ],
    },
    "okrs": [{"objective": "Encantar clientes", "key_results": [{"kr": "NPS", "target": "70"}]}],
    "bsc": {"financial": {"covered": True, "items": ["Receita"]}},
    "matriz": {"do_now": [{"title": "Site novo", "impact": "Alto", "effort": "Baixo"}]},
    "pestel": {"political": "Eleições", "threats": ["Inflação"]},
    "wbr": {"mci": "Dobrar vendas online"},
    "objectives": [{"title": "Grow revenue"}],
    "insights": [{"title": "Risco de churn", "insight_type": "risco", "priority": "alta"}],
}


def test_full_plan_follows_canonical_order() -> None:
    sections = build_sections(StrategicPlanData.model_validate(FULL_PLAN))
    assert [section.kind for section in sections] == list(CANONICAL_ORDER)


def test_missing_subtrees_are_omitted() -> None:
    sections = build_sections(StrategicPlanData.model_validate({"company": {"name": "Acme"}}))
    assert [section.kind for section in sections] == [SectionKind.COVER, SectionKind.SUMMARY]


def test_empty_lists_count_as_missing() -> None:
    data = StrategicPlanData.model_validate({"company": {"name": "Acme"}, "okrs": [], "insights": []})
    kinds = [section.kind for section in build_sections(data)]
    assert SectionKind.OKR not in kinds
    assert SectionKind.INSIGHTS not in kinds


def test_subset_keeps_relative_order() -> None:
    data = StrategicPlanData.model_validate(
        {"company": {"name": "Acme"}, "insights": FULL_PLAN["insights"], "pestel": FULL_PLAN["pestel"]}
    )
    kinds = [section.kind for section in build_sections(data)]
    assert kinds == [SectionKind.COVER, SectionKind.SUMMARY, SectionKind.PESTEL, SectionKind.INSIGHTS]


def test_every_body_section_starts_with_heading() -> None:
    for section in build_sections(StrategicPlanData.model_validate(FULL_PLAN))[1:]:
        first = section.blocks[0]
        assert first.kind == BlockKind.HEADING
        assert first.level == 1
        assert first.text == section.title


def test_caller_order_is_preserved() -> None:
    data = StrategicPlanData.model_validate(
        {
            "company": {"name": "Acme"},
            "okrs": [
                {"objective": "Zeta"},
                {"objective": "Alpha"},
                {"objective": "Zeta"},
            ],
        }
    )
    okr = next(s for s in build_sections(data) if s.kind == SectionKind.OKR)
    headings = [b.text for b in okr.blocks if b.kind == BlockKind.HEADING and b.level == 2]
    assert headings == ["Zeta", "Alpha", "Zeta"]


def test_absent_values_render_fallbacks() -> None:
    data = StrategicPlanData.model_validate(
        {
            "company": {"name": "Acme"},
            "objectives": [{"title": "Grow revenue", "metrics": [{"name": "MRR"}]}],
        }
    )
    sections = build_sections(data)
    summary = sections[1]
    assert ("Missão", "N/A") in summary.blocks[1].pairs
    objectives = sections[-1]
    metric_pairs = [pair for block in objectives.blocks for pair in block.pairs if pair[0] == "MRR"]
    assert metric_pairs == [("MRR", "Atual: N/A | Meta: A definir")]
    assert "Nenhuma iniciativa" in section_texts(objectives)


def test_matrix_lists_every_bucket() -> None:
    data = StrategicPlanData.model_validate({"company": {"name": "Acme"}, "matriz": FULL_PLAN["matriz"]})
    matrix = next(s for s in build_sections(data) if s.kind == SectionKind.MATRIX)
    texts = section_texts(matrix)
    assert "Site novo (Impacto: Alto, Esforço: Baixo)" in texts
    assert texts.count("Nenhuma iniciativa") == 3


def test_charts_attach_to_existing_sections_only() -> None:
    data = StrategicPlanData.model_validate(
        {
            **FULL_PLAN,
            "charts": [
                {"section": "okr", "ref": "okr.png", "caption": "Progresso"},
                {"section": "swot", "ref": "swot.png"},
                {"section": "cover", "ref": "cover.png"},
            ],
        }
    )
    sections = build_sections(data)
    okr = next(s for s in sections if s.kind == SectionKind.OKR)
    assert okr.blocks[-1].kind == BlockKind.RASTER_REGION
    assert okr.blocks[-1].caption == "Progresso"
    assert raster_refs(sections) == ["okr.png"]
