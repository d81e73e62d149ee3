from __future__ import annotations

from pathlib import Path
from typing import List
import json

from reportlab.lib.units import mm


BASE_DIR = Path(__file__).resolve().parents[1]
OUT_DIR = BASE_DIR / "out"
DB_PATH = OUT_DIR / "exports.db"
STYLE_PRESET_PATH = Path(__file__).resolve().parent / "assets" / "style.json"

PRODUCT_ATTRIBUTION = "Gerado por Estratégia IA"
DEFAULT_TITLE = "Plano Estratégico"
DEFAULT_WATERMARK_TEXT = "ESTRATÉGIA IA - VERSÃO GRATUITA"
PERMISSION_DENIED_MESSAGE = (
    "Exportação de PDF não disponível no seu plano. Faça upgrade para desbloquear."
)

# fallback literals for absent values
NOT_AVAILABLE = "N/A"
TO_BE_DEFINED = "A definir"
NO_INITIATIVES = "Nenhuma iniciativa"

# A4 in points, margins in millimetres
PAGE_MARGIN_X = 20 * mm
PAGE_MARGIN_TOP = 20 * mm
PAGE_MARGIN_BOTTOM = 20 * mm
FOOTER_OFFSET = 10 * mm
BLOCK_SPACING = 8.0
MIN_STRIP_HEIGHT = 36.0

EXPORT_MODES = ("none", "watermark", "standard", "premium")

MONTHS_PT_BR: List[str] = [
    "janeiro",
    "fevereiro",
    "março",
    "abril",
    "maio",
    "junho",
    "julho",
    "agosto",
    "setembro",
    "outubro",
    "novembro",
    "dezembro",
]


def load_style_preset() -> dict:
    with STYLE_PRESET_PATH.open("r", encoding="utf-8") as handle:
        return json.load(handle)


def set_out_dir(path: Path) -> None:
    global OUT_DIR, DB_PATH
    OUT_DIR = path
    DB_PATH = OUT_DIR / "exports.db"
