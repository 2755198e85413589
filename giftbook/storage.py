from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterable, List

from sqlalchemy import delete
from sqlmodel import select

from . import config
from .models import Artifact, GiftBook, get_session


# 책 한 권(또는 한 파트)마다 OUT_DIR/<slug>/ 아래 고정 이름으로 저장
ARTIFACT_NAMES = {
    "pdf": "book.pdf",
    "preview_1": "preview_1.png",
    "preview_2": "preview_2.png",
    "preview_3": "preview_3.png",
    "summary": "summary.json",
    "error": "error.log",
}


def book_dir(slug: str, base_dir: Path | None = None, include_slug: bool = True) -> Path:
    root = base_dir or config.OUT_DIR
    if include_slug:
        if not slug or slug in {".", ".."} or "/" in slug or "\\" in slug:
            raise ValueError(f"Unsafe book slug: {slug!r}")
        root = root / slug
    root.mkdir(parents=True, exist_ok=True)
    return root


def artifact_path(
    slug: str,
    artifact_type: str,
    base_dir: Path | None = None,
    include_slug: bool = True,
) -> Path:
    try:
        filename = ARTIFACT_NAMES[artifact_type]
    except KeyError:
        raise ValueError(f"Unknown artifact type: {artifact_type}") from None
    return book_dir(slug, base_dir=base_dir, include_slug=include_slug) / filename


def record_artifacts(book: GiftBook, artifacts: Iterable[tuple[str, Path]]) -> List[Artifact]:
    """Replace the book's artifact rows; a re-rendered book overwrites its directory."""
    rows = [
        Artifact(book_id=book.id, type=artifact_type, path=str(path.relative_to(config.OUT_DIR)))
        for artifact_type, path in artifacts
    ]
    with get_session() as session:
        session.execute(delete(Artifact).where(Artifact.book_id == book.id))
        session.add_all(rows)
        session.commit()
    return rows


def list_artifacts(book: GiftBook) -> Dict[str, Path]:
    with get_session() as session:
        rows = session.exec(select(Artifact).where(Artifact.book_id == book.id))
        return {row.type: config.OUT_DIR / row.path for row in rows}
