from __future__ import annotations

from pathlib import Path
from typing import List, Tuple

import fitz  # PyMuPDF

from ..storage import artifact_path


PREVIEW_TYPES = ("preview_1", "preview_2", "preview_3")


def pick_preview_pages(page_count: int) -> Tuple[int, int, int]:
    # 첫 장, 가운데, 마지막 장
    if page_count <= 0:
        return 0, 0, 0
    last = page_count - 1
    return 0, last // 2, last


def _render_page_to_png(doc: fitz.Document, page_index: int, out_path: Path, min_px: int = 1600) -> None:
    page = doc.load_page(page_index)

    # 짧은 변이 min_px 이상이 되도록 확대해서 렌더링
    rect = getattr(page, "rect", None)
    zoom = 2.0
    if rect is not None:
        zoom = max(2.0, min_px / float(min(rect.width, rect.height)))
    pix = page.get_pixmap(matrix=fitz.Matrix(zoom, zoom))
    out_path.parent.mkdir(parents=True, exist_ok=True)
    pix.save(str(out_path))


def render_previews(
    slug: str,
    pdf_path: Path,
    base_dir: Path | None = None,
    include_slug: bool = True,
) -> List[Path]:
    paths = [artifact_path(slug, kind, base_dir=base_dir, include_slug=include_slug) for kind in PREVIEW_TYPES]
    with fitz.open(str(pdf_path)) as doc:
        for page_index, path in zip(pick_preview_pages(doc.page_count), paths):
            _render_page_to_png(doc, page_index, path)
    return paths
