from __future__ import annotations

from datetime import date
from pathlib import Path
from typing import List

import fitz  # PyMuPDF
import pytest

from planexport.models import ExportOptions, StrategicPlanData
from planexport.pipeline.layout import TextOp


ACME_PLAN = {
    "company": {"name": "Acme"},
    "objectives": [
        {
            "title": "Grow revenue",
            "initiatives": [{"title": "Launch X", "status": "ativo"}],
            "metrics": [{"name": "MRR", "current_value": "10k", "target": "20k"}],
        }
    ],
}


def make_png(width: int, height: int, gray: int = 180) -> bytes:
    pix = fitz.Pixmap(fitz.csRGB, fitz.IRect(0, 0, width, height), False)
    pix.clear_with(gray)
    return pix.tobytes("png")


@pytest.fixture
def acme_plan() -> StrategicPlanData:
    return StrategicPlanData.model_validate(ACME_PLAN)


@pytest.fixture
def export_options():
    def _build(**kwargs) -> ExportOptions:
        kwargs.setdefault("can_export", True)
        kwargs.setdefault("generated_on", date(2026, 10, 18))
        return ExportOptions(**kwargs)

    return _build


@pytest.fixture
def png_file(tmp_path: Path):
    def _write(name: str, width: int, height: int) -> Path:
        path = tmp_path / name
        path.write_bytes(make_png(width, height))
        return path

    return _write


@pytest.fixture
def png_bytes():
    return make_png


def page_texts(document, index: int) -> List[str]:
    """Strings drawn on page `index` (1-based)."""
    return [op.text for op in document.pages[index - 1].ops if isinstance(op, TextOp)]


def section_texts(section) -> List[str]:
    out: List[str] = []
    for block in section.blocks:
        if block.text:
            out.append(block.text)
        out.extend(text for text, _ in block.items)
        for key, value in block.pairs:
            out.extend([key, value])
        if block.caption:
            out.append(block.caption)
    return out
