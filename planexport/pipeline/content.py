from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from ..config import NO_INITIATIVES, NOT_AVAILABLE, TO_BE_DEFINED
from ..models import (
    BSCData,
    CompanyInfo,
    Insight,
    MatrixInitiative,
    OGSMData,
    OKR,
    ObjectiveSummary,
    PESTELData,
    PriorityMatrix,
    StrategicPlanData,
    WBRData,
)

logger = logging.getLogger(__name__)


class SectionKind(str, Enum):
    COVER = "cover"
    SUMMARY = "summary"
    OGSM = "ogsm"
    OKR = "okr"
    BSC = "bsc"
    MATRIX = "matrix"
    PESTEL = "pestel"
    WBR = "wbr"
    OBJECTIVES = "objectives"
    INSIGHTS = "insights"


CANONICAL_ORDER: Tuple[SectionKind, ...] = tuple(SectionKind)


class BlockKind(str, Enum):
    HEADING = "heading"
    PARAGRAPH = "paragraph"
    BULLET_LIST = "bulletList"
    KEY_VALUE = "keyValue"
    RASTER_REGION = "rasterRegion"


@dataclass(frozen=True)
class ContentBlock:
    kind: BlockKind
    text: str = ""
    level: int = 1
    items: Tuple[Tuple[str, int], ...] = ()   # (text, nesting level)
    pairs: Tuple[Tuple[str, str], ...] = ()
    ref: Optional[str] = None
    caption: Optional[str] = None
    tone: Optional[str] = None


@dataclass(frozen=True)
class Section:
    kind: SectionKind
    title: str
    blocks: Tuple[ContentBlock, ...]


SECTION_TITLES: Dict[SectionKind, str] = {
    SectionKind.COVER: "Capa",
    SectionKind.SUMMARY: "Resumo Executivo",
    SectionKind.OGSM: "OGSM - Objetivo, Metas, Estratégias e Medidas",
    SectionKind.OKR: "OKRs - Objetivos e Resultados-Chave",
    SectionKind.BSC: "Balanced Scorecard",
    SectionKind.MATRIX: "Matriz de Priorização (Impacto x Esforço)",
    SectionKind.PESTEL: "Análise PESTEL",
    SectionKind.WBR: "Plano de Execução (4DX/WBR)",
    SectionKind.OBJECTIVES: "Objetivos Estratégicos",
    SectionKind.INSIGHTS: "Insights de IA",
}


# -------------------- block constructors --------------------
def heading(text: str, level: int = 1, tone: Optional[str] = None) -> ContentBlock:
    return ContentBlock(BlockKind.HEADING, text=text, level=level, tone=tone)


def paragraph(text: str) -> ContentBlock:
    return ContentBlock(BlockKind.PARAGRAPH, text=text)


def bullets(items: Iterable[Tuple[str, int]]) -> ContentBlock:
    return ContentBlock(BlockKind.BULLET_LIST, items=tuple(items))


def key_values(pairs: Iterable[Tuple[str, str]]) -> ContentBlock:
    return ContentBlock(BlockKind.KEY_VALUE, pairs=tuple(pairs))


def raster_region(ref: str, caption: Optional[str] = None) -> ContentBlock:
    return ContentBlock(BlockKind.RASTER_REGION, ref=ref, caption=caption)


def _or(value, fallback: str = NOT_AVAILABLE) -> str:
    if value is None:
        return fallback
    text = str(value).strip()
    return text if text else fallback


# -------------------- per-section builders --------------------
def _cover_blocks(company: CompanyInfo) -> List[ContentBlock]:
    blocks = [heading(company.name)]
    if company.segment:
        blocks.append(paragraph(company.segment))
    return blocks


def _summary_blocks(data: StrategicPlanData) -> List[ContentBlock]:
    company = data.company
    objectives = data.objectives or []
    initiatives = sum(len(obj.initiatives) for obj in objectives)
    metrics = sum(len(obj.metrics) for obj in objectives)
    return [
        heading(SECTION_TITLES[SectionKind.SUMMARY]),
        key_values(
            [
                ("Empresa", _or(company.name)),
                ("Segmento", _or(company.segment)),
                ("Missão", _or(company.mission)),
                ("Visão", _or(company.vision)),
                ("Valores", _or(company.values)),
            ]
        ),
        heading("Visão Geral", level=2),
        key_values(
            [
                ("Total de Objetivos", str(len(objectives))),
                ("Total de Iniciativas", str(initiatives)),
                ("Métricas Acompanhadas", str(metrics)),
                ("Insights", str(len(data.insights or []))),
            ]
        ),
    ]


def _ogsm_blocks(ogsm: OGSMData) -> List[ContentBlock]:
    blocks = [
        heading(SECTION_TITLES[SectionKind.OGSM]),
        heading("Objetivo", level=2),
        paragraph(_or(ogsm.objective, TO_BE_DEFINED)),
    ]
    for index, goal in enumerate(ogsm.goals, start=1):
        blocks.append(heading(f"Meta {index}: {goal.title}", level=2))
        if goal.description:
            blocks.append(paragraph(goal.description))
        if goal.measurable:
            blocks.append(key_values([("Mensurável", goal.measurable)]))
        items: List[Tuple[str, int]] = []
        for strategy in goal.strategies:
            label = strategy.title
            if strategy.description:
                label = f"{label}: {strategy.description}"
            items.append((label, 1))
            for measure in strategy.measures:
                what = f" ({measure.what_to_measure})" if measure.what_to_measure else ""
                items.append((f"{measure.name}{what} - Meta: {_or(measure.target, TO_BE_DEFINED)}", 2))
        if items:
            blocks.append(bullets(items))
    return blocks


def _okr_blocks(okrs: Sequence[OKR]) -> List[ContentBlock]:
    blocks = [heading(SECTION_TITLES[SectionKind.OKR])]
    for okr in okrs:
        blocks.append(heading(okr.objective, level=2))
        if not okr.key_results:
            blocks.append(paragraph(TO_BE_DEFINED))
            continue
        blocks.append(
            key_values(
                (
                    kr.kr,
                    f"Atual: {_or(kr.current_value)} | Meta: {_or(kr.target, TO_BE_DEFINED)}",
                )
                for kr in okr.key_results
            )
        )
    return blocks


BSC_PERSPECTIVES: Tuple[Tuple[str, str], ...] = (
    ("financial", "Finanças"),
    ("customers", "Clientes"),
    ("processes", "Processos Internos"),
    ("learning", "Aprendizado e Crescimento"),
)


def _bsc_blocks(bsc: BSCData) -> List[ContentBlock]:
    blocks = [heading(SECTION_TITLES[SectionKind.BSC])]
    for key, label in BSC_PERSPECTIVES:
        perspective = getattr(bsc, key)
        status = "Coberto" if perspective.covered else "Não coberto"
        blocks.append(heading(f"{label} ({status})", level=2, tone="success" if perspective.covered else "warning"))
        if perspective.items:
            blocks.append(bullets((item, 1) for item in perspective.items))
        else:
            blocks.append(paragraph(NOT_AVAILABLE))
        if perspective.suggestion:
            blocks.append(paragraph(f"Sugestão: {perspective.suggestion}"))
    if bsc.explanation:
        blocks.append(paragraph(bsc.explanation))
    return blocks


MATRIX_BUCKETS: Tuple[Tuple[str, str, str], ...] = (
    ("do_now", "Fazer Agora", "success"),
    ("plan", "Planejar", "info"),
    ("quick_wins", "Oportunidades Rápidas", "warning"),
    ("avoid", "Evitar ou Deixar para Depois", "muted"),
)


def _initiative_items(initiatives: Sequence[MatrixInitiative]) -> List[Tuple[str, int]]:
    items: List[Tuple[str, int]] = []
    for item in initiatives:
        items.append(
            (f"{item.title} (Impacto: {_or(item.impact)}, Esforço: {_or(item.effort)})", 1)
        )
        if item.justification:
            items.append((item.justification, 2))
    return items


def _matrix_blocks(matrix: PriorityMatrix) -> List[ContentBlock]:
    blocks = [heading(SECTION_TITLES[SectionKind.MATRIX])]
    for key, label, tone in MATRIX_BUCKETS:
        initiatives = getattr(matrix, key)
        blocks.append(heading(label, level=2, tone=tone))
        if initiatives:
            blocks.append(bullets(_initiative_items(initiatives)))
        else:
            blocks.append(paragraph(NO_INITIATIVES))
    return blocks


PESTEL_FACTORS: Tuple[Tuple[str, str], ...] = (
    ("political", "Político"),
    ("economic", "Econômico"),
    ("social", "Social"),
    ("technological", "Tecnológico"),
    ("environmental", "Ambiental"),
    ("legal", "Legal"),
)


def _pestel_blocks(pestel: PESTELData) -> List[ContentBlock]:
    blocks = [
        heading(SECTION_TITLES[SectionKind.PESTEL]),
        key_values((label, _or(getattr(pestel, key))) for key, label in PESTEL_FACTORS),
    ]
    for label, values in (
        ("Impactos", pestel.impacts),
        ("Oportunidades", pestel.opportunities),
        ("Ameaças", pestel.threats),
    ):
        if values:
            blocks.append(heading(label, level=2))
            blocks.append(bullets((value, 1) for value in values))
    return blocks


def _wbr_blocks(wbr: WBRData) -> List[ContentBlock]:
    blocks = [
        heading(SECTION_TITLES[SectionKind.WBR]),
        heading("Meta Crucialmente Importante (MCI)", level=2),
        paragraph(_or(wbr.mci, TO_BE_DEFINED)),
    ]
    if wbr.weekly_actions:
        items: List[Tuple[str, int]] = []
        for action in wbr.weekly_actions:
            label = action.title
            if action.description:
                label = f"{label}: {action.description}"
            items.append((label, 1))
            if action.impact_metric:
                items.append((f"Métrica de impacto: {action.impact_metric}", 2))
        blocks.append(heading("Ações Semanais", level=2))
        blocks.append(bullets(items))
    blocks.append(heading("Placar", level=2))
    if wbr.scoreboard.metrics:
        blocks.append(
            key_values(
                (
                    metric.name,
                    f"Meta: {_or(metric.target, TO_BE_DEFINED)} | Frequência: {_or(metric.frequency)}",
                )
                for metric in wbr.scoreboard.metrics
            )
        )
    else:
        blocks.append(paragraph(TO_BE_DEFINED))
    cadence = wbr.cadence
    blocks.append(heading("Cadência de Revisão", level=2))
    blocks.append(
        key_values(
            [
                ("Tipo de reunião", _or(cadence.meeting_type)),
                ("Frequência", _or(cadence.frequency)),
                ("Duração", _or(cadence.duration)),
                ("Participantes", _or(cadence.participants)),
                ("Pauta", _or(cadence.agenda)),
            ]
        )
    )
    return blocks


def _format_score(score: Optional[float]) -> str:
    if score is None:
        return NOT_AVAILABLE
    return f"{score:g}"


def _objective_blocks(objectives: Sequence[ObjectiveSummary]) -> List[ContentBlock]:
    blocks = [heading(SECTION_TITLES[SectionKind.OBJECTIVES])]
    for objective in objectives:
        blocks.append(heading(objective.title, level=2))
        if objective.description:
            blocks.append(paragraph(objective.description))
        blocks.append(
            key_values(
                [
                    ("Perspectiva", _or(objective.perspective)),
                    ("Prioridade", _or(objective.priority)),
                    ("Status", _or(objective.status)),
                ]
            )
        )
        blocks.append(heading("Iniciativas", level=3))
        if objective.initiatives:
            items: List[Tuple[str, int]] = []
            for initiative in objective.initiatives:
                items.append((f"{initiative.title} ({_or(initiative.status)})", 1))
                if initiative.ice_score is not None:
                    items.append((f"ICE: {_format_score(initiative.ice_score)}", 2))
                if initiative.description:
                    items.append((initiative.description, 2))
            blocks.append(bullets(items))
        else:
            blocks.append(paragraph(NO_INITIATIVES))
        blocks.append(heading("Métricas", level=3))
        if objective.metrics:
            pairs = []
            for metric in objective.metrics:
                unit = f" {metric.unit}" if metric.unit else ""
                pairs.append(
                    (
                        metric.name,
                        f"Atual: {_or(metric.current_value)}{unit} | Meta: {_or(metric.target, TO_BE_DEFINED)}{unit}",
                    )
                )
            blocks.append(key_values(pairs))
        else:
            blocks.append(paragraph(NOT_AVAILABLE))
    return blocks


def _insight_blocks(insights: Sequence[Insight]) -> List[ContentBlock]:
    blocks = [heading(SECTION_TITLES[SectionKind.INSIGHTS])]
    for insight in insights:
        blocks.append(heading(insight.title, level=2))
        blocks.append(
            key_values(
                [
                    ("Tipo", _or(insight.insight_type)),
                    ("Prioridade", _or(insight.priority)),
                ]
            )
        )
        blocks.append(paragraph(_or(insight.description)))
    return blocks


def build_sections(data: StrategicPlanData) -> List[Section]:
    """
    Normalize the plan into sections in canonical order.

    Cover and summary always exist; every other section appears only when its
    sub-tree is present (an empty list counts as absent).
    """
    body: Dict[SectionKind, List[ContentBlock]] = {
        SectionKind.COVER: _cover_blocks(data.company),
        SectionKind.SUMMARY: _summary_blocks(data),
    }
    if data.ogsm is not None:
        body[SectionKind.OGSM] = _ogsm_blocks(data.ogsm)
    if data.okrs:
        body[SectionKind.OKR] = _okr_blocks(data.okrs)
    if data.bsc is not None:
        body[SectionKind.BSC] = _bsc_blocks(data.bsc)
    if data.matriz is not None:
        body[SectionKind.MATRIX] = _matrix_blocks(data.matriz)
    if data.pestel is not None:
        body[SectionKind.PESTEL] = _pestel_blocks(data.pestel)
    if data.wbr is not None:
        body[SectionKind.WBR] = _wbr_blocks(data.wbr)
    if data.objectives:
        body[SectionKind.OBJECTIVES] = _objective_blocks(data.objectives)
    if data.insights:
        body[SectionKind.INSIGHTS] = _insight_blocks(data.insights)

    for chart in data.charts:
        try:
            kind = SectionKind(chart.section)
        except ValueError:
            kind = None
        if kind is None or kind == SectionKind.COVER or kind not in body:
            logger.warning("Chart %s targets missing section %r; skipped", chart.ref, chart.section)
            continue
        body[kind].append(raster_region(chart.ref, chart.caption))

    return [
        Section(kind=kind, title=SECTION_TITLES[kind], blocks=tuple(body[kind]))
        for kind in CANONICAL_ORDER
        if kind in body
    ]


def raster_refs(sections: Iterable[Section]) -> List[str]:
    refs: List[str] = []
    for section in sections:
        for block in section.blocks:
            if block.kind == BlockKind.RASTER_REGION and block.ref and block.ref not in refs:
                refs.append(block.ref)
    return refs
