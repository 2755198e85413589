from __future__ import annotations

from typing import List, Optional, Tuple

import pytest
from reportlab.lib import colors

from giftbook.pipeline.flow import BORDER_WIDTH, FlowFrame, RemarkTable
from giftbook.pipeline.records import RemarkRow


FRAME = FlowFrame(
    page_width=841.89,
    top=595.28 - 70,
    bottom=45,
    left=60,
    col_widths=(120.0, 160.0, 841.89 - 120 - 280),
)


def _rows(count: int, remark: str = "ok") -> List[RemarkRow]:
    return [RemarkRow(name=f"guest{i}", remark=remark, position=f"第1页第{i + 1}人") for i in range(count)]


def _table(surface, opened: Optional[list] = None) -> RemarkTable:
    return RemarkTable(
        surface,
        "f",
        FRAME,
        border_color=colors.red,
        text_color=colors.black,
        on_new_page=(opened.append if opened is not None else None),
    )


def test_rows_flow_across_pages_without_splitting(surface) -> None:
    cursor = _table(surface).run(_rows(40))
    assert len(cursor.pages) == 3
    assert cursor.rows_per_page == {0: 13, 1: 15, 2: 12}
    assert sum(cursor.rows_per_page.values()) == 40


def test_page_boundaries_follow_last_row(surface) -> None:
    cursor = _table(surface).run(_rows(40))
    first_body_top = FRAME.top - 40 - 28
    next_body_top = FRAME.top - 28
    assert cursor.page_tops == {0: pytest.approx(FRAME.top - 40), 1: FRAME.top, 2: FRAME.top}
    assert cursor.page_boundaries[0] == pytest.approx(first_body_top - 13 * 30)
    assert cursor.page_boundaries[1] == pytest.approx(next_body_top - 15 * 30)
    assert cursor.page_boundaries[2] == pytest.approx(next_body_top - 12 * 30)
    assert all(bottom >= FRAME.bottom for bottom in cursor.page_boundaries.values())


def test_every_row_drawn_once_and_header_repeated(surface) -> None:
    rows = _rows(40)
    cursor = _table(surface).run(rows)
    texts = surface.texts()
    for row in rows:
        assert texts.count(row.name) == 1
    assert texts.count("姓名") == len(cursor.pages)
    assert texts.count("附录：宾客备注") == 1


def test_tall_rows_use_wrapped_height(surface) -> None:
    tall = "\n".join(["line"] * 5)
    cursor = _table(surface).run(_rows(3, remark=tall))
    assert len(cursor.pages) == 1
    row_height = 5 * 15 + 10
    assert cursor.page_boundaries[0] == pytest.approx(FRAME.top - 40 - 28 - 3 * row_height)


def test_new_pages_notify_hook(surface) -> None:
    opened: list = []
    cursor = _table(surface, opened).run(_rows(40))
    assert opened == cursor.pages


def test_finalize_draws_borders_and_footers(surface) -> None:
    calls: List[Tuple[int, str, Optional[str]]] = []
    cursor = _table(surface).run(_rows(20), footer=lambda page, center, right: calls.append((page, center, right)), part_label="P1/P2")
    assert calls == [
        (cursor.pages[0], "附录 第 1 / 2 页", "P1/P2"),
        (cursor.pages[1], "附录 第 2 / 2 页", "P1/P2"),
    ]
    right = FRAME.left + FRAME.table_width
    for idx, page in enumerate(cursor.pages):
        top, bottom = cursor.page_tops[idx], cursor.page_boundaries[idx]
        borders = [
            (op.params["start"], op.params["end"])
            for op in surface.operations("line", page)
            if op.params["thickness"] == BORDER_WIDTH
        ]
        assert ((FRAME.left, top), (FRAME.left, bottom)) in borders
        assert ((right, top), (right, bottom)) in borders
        assert ((FRAME.left, bottom), (right, bottom)) in borders


def test_single_row_stays_on_first_page(surface) -> None:
    cursor = _table(surface).run(_rows(1))
    assert cursor.pages == [0]
    assert cursor.rows_per_page == {0: 1}


def test_oversized_first_token_adds_a_line_to_row_height(surface) -> None:
    table = _table(surface)
    row_height, wrapped = table.measure(_rows(1, remark="x" * 40)[0])
    assert wrapped.lines == ["", "x" * 40]
    assert row_height == 2 * 15 + 10
