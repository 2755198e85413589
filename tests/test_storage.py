from __future__ import annotations

import pytest

from giftbook import config
from giftbook.models import GiftBook, get_session, init_db, reset_engine
from giftbook.storage import artifact_path, list_artifacts, record_artifacts


@pytest.fixture
def out_dir(tmp_path):
    config.set_out_dir(tmp_path / "out")
    reset_engine()
    init_db()
    return config.OUT_DIR


def _saved_book(slug: str = "wedding") -> GiftBook:
    book = GiftBook(title="Wedding", slug=slug, source_csv="gifts.csv")
    with get_session() as session:
        session.add(book)
        session.commit()
        session.refresh(book)
    return book


def test_created_at_is_timezone_aware(out_dir) -> None:
    assert GiftBook(title="Wedding", slug="wedding", source_csv="gifts.csv").created_at.tzinfo is not None
    assert _saved_book().id is not None


def test_artifact_path_uses_fixed_names(out_dir) -> None:
    assert artifact_path("wedding", "pdf") == out_dir / "wedding" / "book.pdf"
    assert artifact_path("x", "summary", base_dir=out_dir / "tmp", include_slug=False) == out_dir / "tmp" / "summary.json"


def test_artifact_path_rejects_unknown_type_and_unsafe_slug(out_dir) -> None:
    with pytest.raises(ValueError):
        artifact_path("wedding", "bundle")
    for slug in ("", "..", "a/b", "a\\b"):
        with pytest.raises(ValueError):
            artifact_path(slug, "pdf")


def test_rerender_replaces_artifact_rows(out_dir) -> None:
    book = _saved_book()
    pdf = artifact_path(book.slug, "pdf")
    summary = artifact_path(book.slug, "summary")
    record_artifacts(book, [("pdf", pdf), ("summary", summary)])
    record_artifacts(book, [("pdf", pdf)])
    assert list_artifacts(book) == {"pdf": pdf}


def test_artifacts_are_kept_per_book(out_dir) -> None:
    first = _saved_book("wedding-p1")
    second = _saved_book("wedding-p2")
    record_artifacts(first, [("pdf", artifact_path(first.slug, "pdf"))])
    record_artifacts(second, [("pdf", artifact_path(second.slug, "pdf"))])
    assert list_artifacts(first)["pdf"] == out_dir / "wedding-p1" / "book.pdf"
    assert list_artifacts(second)["pdf"] == out_dir / "wedding-p2" / "book.pdf"
