from __future__ import annotations

import csv
import hashlib
import math
import re
from pathlib import Path
from typing import Iterable, List

from slugify import slugify

from sqlmodel import select

from ..models import BookStatus, GiftBook, get_session, init_db
from .records import GiftRecord, chinese_amount


REQUIRED_COLUMNS = {"name", "amount"}
TRUE_VALUES = {"1", "true", "yes", "y", "是", "作废"}


def load_rows(csv_path: Path) -> List[dict]:
    if not csv_path.exists():
        raise FileNotFoundError(f"CSV not found: {csv_path}")
    with csv_path.open("r", encoding="utf-8-sig") as handle:
        reader = csv.DictReader(handle)
        if reader.fieldnames is None:
            raise ValueError("CSV has no header")
        missing = REQUIRED_COLUMNS - set(reader.fieldnames)
        if missing:
            raise ValueError(f"CSV missing columns: {', '.join(sorted(missing))}")
        rows = [row for row in reader if any((value or "").strip() for value in row.values())]
    if not rows:
        raise ValueError("CSV has no data rows")
    return rows


def _parse_amount(raw: str, line_no: int) -> float:
    try:
        return float(str(raw).replace(",", "").replace("¥", "").strip())
    except ValueError as exc:
        raise ValueError(f"Row {line_no}: invalid amount {raw!r}") from exc


def record_from_row(row: dict, line_no: int) -> GiftRecord:
    name = (row.get("name") or "").strip()
    if not name:
        raise ValueError(f"Row {line_no}: name is required")
    amount = _parse_amount(row.get("amount") or "", line_no)
    amount_text = (row.get("amount_text") or "").strip() or chinese_amount(amount)
    remark = (row.get("remark") or "").strip() or None
    kind = (row.get("type") or "").strip() or None
    abolished = (row.get("abolished") or "").strip().lower() in TRUE_VALUES
    return GiftRecord(
        name=name,
        amount=amount,
        amount_text=amount_text,
        remark=remark,
        abolished=abolished,
        type=kind,
    )


def load_records(csv_path: Path) -> List[GiftRecord]:
    # 헤더가 1행이므로 데이터는 2행부터
    return [record_from_row(row, line_no) for line_no, row in enumerate(load_rows(csv_path), start=2)]


def slug_from_title(title: str) -> str:
    slug = slugify(title)
    slug = re.sub(r"[^a-z0-9-]+", "-", slug.lower()).strip("-")
    if not slug:
        slug = hashlib.md5(title.encode("utf-8")).hexdigest()[:12]
    if ".." in slug or "/" in slug or "\\" in slug:
        raise ValueError("Invalid slug generated from title")
    return slug


def ingest_book(csv_path: Path, title: str, part_size: int | None = None) -> List[GiftBook]:
    """Register one book per part of the CSV; records are re-read at render time."""
    init_db()
    title = (title or "").strip()
    if not title:
        raise ValueError("Book title is required")
    records = load_records(csv_path)
    if part_size is not None and part_size < 1:
        raise ValueError("part_size must be at least 1")

    total_parts = math.ceil(len(records) / part_size) if part_size else 1
    base_slug = slug_from_title(title)
    books: List[GiftBook] = []
    for index in range(1, total_parts + 1):
        multi = total_parts > 1
        books.append(
            GiftBook(
                title=title,
                slug=f"{base_slug}-p{index}" if multi else base_slug,
                source_csv=str(csv_path.resolve()),
                part_index=index if multi else None,
                total_parts=total_parts if multi else None,
                part_size=part_size if multi else None,
                status=BookStatus.DRAFT,
            )
        )
    with get_session() as session:
        session.add_all(books)
        session.commit()
        for book in books:
            session.refresh(book)
    return books


def list_books(statuses: Iterable[BookStatus]) -> List[GiftBook]:
    init_db()
    with get_session() as session:
        statement = select(GiftBook)
        if statuses:
            statement = statement.where(GiftBook.status.in_(list(statuses)))
        return list(session.exec(statement))
