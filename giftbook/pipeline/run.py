from __future__ import annotations

from dataclasses import asdict, replace
from pathlib import Path
import logging
import shutil
from typing import Iterable, List
import json

from .. import config
from ..config import DEFAULT_TITLE
from ..models import BookStatus, GiftBook, get_session, init_db
from ..storage import artifact_path, record_artifacts
from .ingest import load_records
from .options import BookOptions
from .records import GiftRecord, prepare_records, split_parts
from .render_pdf import render_book_pdf, summary_rows
from .render_preview import render_previews


logger = logging.getLogger(__name__)


def _write_error(slug: str, message: str) -> None:
    error_path = artifact_path(slug, "error", base_dir=config.OUT_DIR)
    error_path.write_text(message, encoding="utf-8")


def _prepare_temp_dir(slug: str) -> Path:
    temp_dir = config.OUT_DIR / f"{slug}.tmp"
    if temp_dir.exists():
        shutil.rmtree(temp_dir)
    temp_dir.mkdir(parents=True, exist_ok=True)
    return temp_dir


def _finalize_artifacts(
    temp_dir: Path,
    final_dir: Path,
    artifacts: List[tuple[str, Path]],
) -> List[tuple[str, Path]]:
    if final_dir.exists():
        shutil.rmtree(final_dir)
    temp_dir.replace(final_dir)
    finalized: List[tuple[str, Path]] = []
    for artifact_type, path in artifacts:
        finalized.append((artifact_type, final_dir / path.relative_to(temp_dir)))
    return finalized


def records_for_book(book: GiftBook, options: BookOptions) -> tuple[List[GiftRecord], BookOptions]:
    """Slice the book's part out of its CSV and stamp the cross-part totals."""
    records = load_records(Path(book.source_csv))
    if not (book.part_index and book.total_parts and book.part_size):
        return records, options
    parts = split_parts(records, book.part_size)
    if book.part_index > len(parts):
        raise ValueError(f"Part {book.part_index} is out of range ({len(parts)} parts)")
    givers = len(records)
    amount = sum(r.amount for r in records if not r.abolished)
    return parts[book.part_index - 1], options.with_part(book.part_index, len(parts), givers, amount)


def _write_summary(slug: str, records: List[GiftRecord], options: BookOptions, temp_dir: Path) -> Path:
    prepared = prepare_records(records, options.items_per_page)
    payload = {
        "slug": slug,
        "title": options.title,
        "part": options.part_index,
        "total_parts": options.total_parts,
        "grand_total": prepared.grand_total,
        "total_items": prepared.total_items,
        "main_page_count": prepared.main_page_count,
        "remark_count": len(prepared.remarks),
        "summary": {kind: asdict(values) for kind, values in prepared.summary.items()},
        "table": [list(row) for row in summary_rows(prepared, options)],
    }
    path = artifact_path(slug, "summary", base_dir=temp_dir, include_slug=False)
    path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
    return path


def process_book(book: GiftBook, options: BookOptions) -> List[tuple[str, Path]]:
    records, book_options = records_for_book(book, options)
    if book_options.title == DEFAULT_TITLE:
        book_options = replace(book_options, title=book.title)

    artifacts: List[tuple[str, Path]] = []
    temp_dir = _prepare_temp_dir(book.slug)
    try:
        pdf_path = render_book_pdf(book.slug, records, book_options, base_dir=temp_dir, include_slug=False)
        artifacts.append(("pdf", pdf_path))

        previews = render_previews(book.slug, pdf_path, base_dir=temp_dir, include_slug=False)
        artifacts.extend(zip(("preview_1", "preview_2", "preview_3"), previews))

        artifacts.append(("summary", _write_summary(book.slug, records, book_options, temp_dir)))
    except Exception:
        shutil.rmtree(temp_dir, ignore_errors=True)
        raise

    final_dir = config.OUT_DIR / book.slug
    return _finalize_artifacts(temp_dir, final_dir, artifacts)


def run_pipeline(books: Iterable[GiftBook], options: BookOptions | None = None) -> dict[str, list[str]]:
    init_db()
    options = options or BookOptions()
    results: dict[str, list[str]] = {"READY": [], "FAILED": []}
    with get_session() as session:
        for book in books:
            artifacts: List[tuple[str, Path]] = []
            try:
                artifacts = process_book(book, options)
                book.status = BookStatus.READY
                book.fail_code = None
                book.fail_detail = None
            except ValueError as exc:
                logger.exception("Invalid input for %s", book.slug)
                book.status = BookStatus.FAILED
                book.fail_code = "INPUT_INVALID"
                book.fail_detail = str(exc)
            except Exception as exc:
                logger.exception("Pipeline error for %s", book.slug)
                book.status = BookStatus.FAILED
                book.fail_code = "PIPELINE_ERROR"
                book.fail_detail = str(exc) or exc.__class__.__name__

            session.add(book)
            session.commit()
            session.refresh(book)

            if book.status == BookStatus.READY:
                record_artifacts(book, artifacts)
                results["READY"].append(book.slug)
            else:
                _write_error(book.slug, book.fail_detail or "Unknown error")
                results["FAILED"].append(book.slug)
    return results
