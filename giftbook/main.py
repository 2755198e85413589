from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer

from . import config
from .models import BookStatus, reset_engine
from .pipeline.ingest import ingest_book, list_books
from .pipeline.options import load_options
from .pipeline.run import run_pipeline

app = typer.Typer(help="Gift book (礼金簿) PDF generator")


def _configure(out: Optional[Path], verbose: bool) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if out:
        config.set_out_dir(out)
        reset_engine()


@app.command()
def build(
    csv: Path = typer.Option(..., "--csv", help="CSV with name/amount[/amount_text/remark/abolished/type]"),
    title: str = typer.Option(config.DEFAULT_TITLE, "--title", help="Book title, also used for the output slug"),
    out: Optional[Path] = typer.Option(None, "--out", help="Output directory"),
    options: Optional[Path] = typer.Option(None, "--options", help="JSON file with book options"),
    part_size: Optional[int] = typer.Option(None, "--part-size", help="Split into parts of this many records"),
    dry_run_ingest: bool = typer.Option(False, "--dry-run-ingest", help="Only ingest CSV"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log progress"),
) -> None:
    _configure(out, verbose)
    book_options = load_options(options)
    books = ingest_book(csv, title, part_size=part_size)
    typer.echo(f"Ingested {len(books)} book part(s)")
    if dry_run_ingest:
        return
    results = run_pipeline(books, book_options)
    typer.echo(f"READY: {len(results['READY'])}")
    typer.echo(f"FAILED: {len(results['FAILED'])}")
    for slug in results["FAILED"]:
        typer.echo(f"FAILED: {slug}")
    if results["FAILED"]:
        raise typer.Exit(code=1)


@app.command()
def retry(
    out: Optional[Path] = typer.Option(None, "--out", help="Output directory"),
    options: Optional[Path] = typer.Option(None, "--options", help="JSON file with book options"),
    failed: bool = typer.Option(True, "--failed/--drafts", help="Retry failed books (or pending drafts)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log progress"),
) -> None:
    _configure(out, verbose)
    statuses = [BookStatus.FAILED] if failed else [BookStatus.DRAFT]
    books = list_books(statuses)
    if not books:
        typer.echo("No books to retry")
        return
    results = run_pipeline(books, load_options(options))
    typer.echo(f"READY: {len(results['READY'])}")
    typer.echo(f"FAILED: {len(results['FAILED'])}")


if __name__ == "__main__":
    app()
