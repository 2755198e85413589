from __future__ import annotations

import csv
import tempfile
from pathlib import Path

from giftbook import config
from giftbook.models import reset_engine
from giftbook.pipeline.ingest import ingest_book
from giftbook.pipeline.run import run_pipeline
from giftbook.storage import list_artifacts


def test_pipeline_outputs_expected_artifacts() -> None:
    with tempfile.TemporaryDirectory() as temp_dir:
        out_dir = Path(temp_dir) / "out"
        config.set_out_dir(out_dir)
        reset_engine()
        csv_path = Path(temp_dir) / "gifts.csv"
        with csv_path.open("w", encoding="utf-8", newline="") as handle:
            writer = csv.DictWriter(handle, fieldnames=["name", "amount", "remark", "abolished", "type"])
            writer.writeheader()
            for i in range(30):
                writer.writerow(
                    {
                        "name": f"宾客{i}",
                        "amount": str(100 + i),
                        "remark": "代表全家" if i % 7 == 0 else "",
                        "abolished": "yes" if i == 5 else "",
                        "type": "微信" if i % 2 else "现金",
                    }
                )
        books = ingest_book(csv_path, "Wedding Book", part_size=20)
        results = run_pipeline(books)
        assert results["READY"] == ["wedding-book-p1", "wedding-book-p2"]
        for slug in results["READY"]:
            book_dir = out_dir / slug
            assert (book_dir / "book.pdf").read_bytes().startswith(b"%PDF")
            assert (book_dir / "preview_1.png").exists()
            assert (book_dir / "preview_2.png").exists()
            assert (book_dir / "preview_3.png").exists()
            assert (book_dir / "summary.json").exists()
            assert not (out_dir / f"{slug}.tmp").exists()

        for book in books:
            saved = list_artifacts(book)
            assert sorted(saved) == ["pdf", "preview_1", "preview_2", "preview_3", "summary"]
            assert saved["pdf"] == out_dir / book.slug / "book.pdf"


def test_cli_build_dry_run(tmp_path) -> None:
    from typer.testing import CliRunner

    from giftbook.main import app

    csv_path = tmp_path / "gifts.csv"
    csv_path.write_text("name,amount\n张三,200\n李四,300\n", encoding="utf-8")
    out_dir = tmp_path / "out"
    result = CliRunner().invoke(
        app,
        ["build", "--csv", str(csv_path), "--title", "Birthday", "--out", str(out_dir), "--dry-run-ingest"],
    )
    assert result.exit_code == 0, result.output
    assert "Ingested 1 book part(s)" in result.output
    assert (out_dir / "giftbook.db").exists()
