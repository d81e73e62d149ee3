from __future__ import annotations

from pathlib import Path
from typing import List, Tuple

from sqlmodel import select

from . import config
from .models import ExportRecord, get_session, init_db
from .pipeline.assemble import Document

FALLBACK_FILENAME = "plano-estrategico.pdf"


def export_path(filename: str, base_dir: Path | None = None) -> Path:
    if not filename or "/" in filename or "\\" in filename or ".." in filename:
        raise ValueError(f"Invalid export filename: {filename!r}")
    root = base_dir or config.OUT_DIR
    root.mkdir(parents=True, exist_ok=True)
    return root / filename


def save_document(document: Document, base_dir: Path | None = None) -> Path:
    path = export_path(document.filename or FALLBACK_FILENAME, base_dir=base_dir)
    path.write_bytes(document.pdf)
    return path


def record_export(document: Document, company: str, path: Path, mode: str) -> ExportRecord:
    init_db()
    record = ExportRecord(
        company=company,
        filename=path.name,
        path=str(path),
        page_count=document.page_count,
        watermark=mode == "watermark",
        mode=mode,
    )
    with get_session() as session:
        session.add(record)
        session.commit()
        session.refresh(record)
    return record


def discard_record(record: ExportRecord) -> None:
    with get_session() as session:
        stored = session.get(ExportRecord, record.id)
        if stored is not None:
            session.delete(stored)
            session.commit()


def store_export(
    document: Document,
    company: str,
    mode: str,
    base_dir: Path | None = None,
) -> Tuple[Path, ExportRecord]:
    """Record the export, then write the PDF; a ledger failure leaves no file behind."""
    path = export_path(document.filename or FALLBACK_FILENAME, base_dir=base_dir)
    record = record_export(document, company, path, mode)
    try:
        save_document(document, base_dir=path.parent)
    except OSError:
        discard_record(record)
        raise
    return path, record


def list_exports(company: str | None = None) -> List[ExportRecord]:
    init_db()
    with get_session() as session:
        statement = select(ExportRecord)
        if company:
            statement = statement.where(ExportRecord.company == company)
        statement = statement.order_by(ExportRecord.created_at)
        return list(session.exec(statement))
