from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Callable, List, Optional

from sqlmodel import Field, Session, SQLModel, create_engine

from . import config


# ---------- Strategic plan input (data models, no tables) ----------
class CompanyInfo(SQLModel):
    name: str
    segment: Optional[str] = None
    mission: Optional[str] = None
    vision: Optional[str] = None
    values: Optional[str] = None


class OGSMMeasure(SQLModel):
    name: str
    what_to_measure: Optional[str] = None
    target: Optional[str] = None


class OGSMStrategy(SQLModel):
    title: str
    description: Optional[str] = None
    measures: List[OGSMMeasure] = Field(default_factory=list)


class OGSMGoal(SQLModel):
    title: str
    description: Optional[str] = None
    measurable: Optional[str] = None
    strategies: List[OGSMStrategy] = Field(default_factory=list)


class OGSMData(SQLModel):
    objective: Optional[str] = None
    goals: List[OGSMGoal] = Field(default_factory=list)


class KeyResult(SQLModel):
    kr: str
    target: Optional[str] = None
    current_value: Optional[str] = None


class OKR(SQLModel):
    objective: str
    key_results: List[KeyResult] = Field(default_factory=list)


class BSCPerspective(SQLModel):
    covered: bool = False
    items: List[str] = Field(default_factory=list)
    suggestion: Optional[str] = None


class BSCData(SQLModel):
    financial: BSCPerspective = Field(default_factory=BSCPerspective)
    customers: BSCPerspective = Field(default_factory=BSCPerspective)
    processes: BSCPerspective = Field(default_factory=BSCPerspective)
    learning: BSCPerspective = Field(default_factory=BSCPerspective)
    explanation: Optional[str] = None


class MatrixInitiative(SQLModel):
    title: str
    impact: Optional[str] = None
    effort: Optional[str] = None
    justification: Optional[str] = None


class PriorityMatrix(SQLModel):
    do_now: List[MatrixInitiative] = Field(default_factory=list)
    plan: List[MatrixInitiative] = Field(default_factory=list)
    quick_wins: List[MatrixInitiative] = Field(default_factory=list)
    avoid: List[MatrixInitiative] = Field(default_factory=list)


class PESTELData(SQLModel):
    political: Optional[str] = None
    economic: Optional[str] = None
    social: Optional[str] = None
    technological: Optional[str] = None
    environmental: Optional[str] = None
    legal: Optional[str] = None
    impacts: List[str] = Field(default_factory=list)
    opportunities: List[str] = Field(default_factory=list)
    threats: List[str] = Field(default_factory=list)


class WeeklyAction(SQLModel):
    title: str
    description: Optional[str] = None
    impact_metric: Optional[str] = None


class ScoreboardMetric(SQLModel):
    name: str
    target: Optional[str] = None
    frequency: Optional[str] = None


class Scoreboard(SQLModel):
    metrics: List[ScoreboardMetric] = Field(default_factory=list)


class ReviewCadence(SQLModel):
    meeting_type: str = "Weekly Business Review"
    frequency: str = "Semanal"
    duration: Optional[str] = "30-45 minutos"
    participants: Optional[str] = "Time de liderança"
    agenda: Optional[str] = "Revisar MCI, discutir ações e métricas"


class WBRData(SQLModel):
    mci: Optional[str] = None
    weekly_actions: List[WeeklyAction] = Field(default_factory=list)
    scoreboard: Scoreboard = Field(default_factory=Scoreboard)
    cadence: ReviewCadence = Field(default_factory=ReviewCadence)


class InitiativeSummary(SQLModel):
    title: str
    status: Optional[str] = None
    ice_score: Optional[float] = None
    description: Optional[str] = None


class MetricSummary(SQLModel):
    name: str
    current_value: Optional[str] = None
    target: Optional[str] = None
    unit: Optional[str] = None


class ObjectiveSummary(SQLModel):
    title: str
    description: Optional[str] = None
    perspective: Optional[str] = None
    priority: Optional[int] = None
    status: Optional[str] = None
    initiatives: List[InitiativeSummary] = Field(default_factory=list)
    metrics: List[MetricSummary] = Field(default_factory=list)


class Insight(SQLModel):
    title: str
    description: Optional[str] = None
    insight_type: Optional[str] = None
    priority: Optional[str] = None


class ChartCapture(SQLModel):
    section: str
    ref: str
    caption: Optional[str] = None


class StrategicPlanData(SQLModel):
    company: CompanyInfo
    ogsm: Optional[OGSMData] = None
    okrs: Optional[List[OKR]] = None
    bsc: Optional[BSCData] = None
    matriz: Optional[PriorityMatrix] = None
    pestel: Optional[PESTELData] = None
    wbr: Optional[WBRData] = None
    objectives: Optional[List[ObjectiveSummary]] = None
    insights: Optional[List[Insight]] = None
    charts: List[ChartCapture] = Field(default_factory=list)


# ---------- Export options ----------
@dataclass(frozen=True)
class ExportOptions:
    """
    Per-call export settings.

    `can_export` is decided by the subscription layer; the core only obeys it.
    `raster_source` is the capture capability used for chart regions, the
    single-region export and logo lookups.
    """

    filename: Optional[str] = None
    title: Optional[str] = None
    subtitle: Optional[str] = None
    orientation: str = "portrait"
    watermark: bool = False
    watermark_text: str = config.DEFAULT_WATERMARK_TEXT
    company_logo_ref: Optional[str] = None
    can_export: bool = False
    raster_source: Optional[Callable[[str], Any]] = field(default=None, compare=False)
    generated_on: Optional[date] = None

    @classmethod
    def for_export_mode(cls, mode: str, **kwargs) -> "ExportOptions":
        """Map a plan's pdf_export_mode (none|watermark|standard|premium) to options."""
        if mode not in config.EXPORT_MODES:
            raise ValueError(f"Unknown export mode: {mode}")
        if mode != "premium":
            # logo branding is premium only
            kwargs.pop("company_logo_ref", None)
        return cls(can_export=mode != "none", watermark=mode == "watermark", **kwargs)


# ---------- Export ledger (caller side) ----------
class ExportRecord(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    company: str = Field(index=True)
    filename: str
    path: str
    page_count: int
    watermark: bool = False
    mode: str = "standard"
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


engine = create_engine(f"sqlite:///{config.DB_PATH}")


def reset_engine() -> None:
    global engine
    engine = create_engine(f"sqlite:///{config.DB_PATH}")


def init_db() -> None:
    config.OUT_DIR.mkdir(parents=True, exist_ok=True)
    SQLModel.metadata.create_all(engine)


def get_session() -> Session:
    return Session(engine, expire_on_commit=False)
