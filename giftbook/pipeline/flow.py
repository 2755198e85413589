from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence

from reportlab.lib import colors

from .fitting import WrappedText, wrap_text
from .records import RemarkRow
from .surface import DocumentSurface


HEADERS = ("姓名", "位置索引", "备注信息")
HEADER_HEIGHT = 28.0
HEADER_SIZE = 14.0
TITLE_SIZE = 28.0
TITLE_GAP = 40.0
CELL_SIZE = 11.0
MIN_ROW_HEIGHT = 30.0
ROW_PADDING = 10.0
TEXT_INSET = 5.0
BORDER_WIDTH = 1.2
GRID_WIDTH = 0.8


@dataclass
class PageCursor:
    """Running write position of one flowing table."""

    current_page: int
    cursor_y: float
    pages: List[int] = field(default_factory=list)
    page_tops: Dict[int, float] = field(default_factory=dict)
    page_boundaries: Dict[int, float] = field(default_factory=dict)
    rows_per_page: Dict[int, int] = field(default_factory=dict)

    @property
    def page_index(self) -> int:
        return len(self.pages) - 1


@dataclass(frozen=True)
class FlowFrame:
    page_width: float
    top: float
    bottom: float
    left: float
    col_widths: Sequence[float]

    @property
    def table_width(self) -> float:
        return float(sum(self.col_widths))


PageHook = Callable[[int], None]
FooterHook = Callable[[int, str, Optional[str]], None]


class RemarkTable:
    """
    부록 "宾客备注" 테이블. 행 높이는 줄바꿈 결과로 정하고,
    남은 높이가 모자라면 새 페이지를 열어 헤더를 다시 그린다.
    행은 절대 두 페이지로 나누지 않는다.
    """

    def __init__(
        self,
        surface: DocumentSurface,
        font: str,
        frame: FlowFrame,
        border_color: colors.Color,
        text_color: colors.Color,
        title: str = "附录：宾客备注",
        on_new_page: Optional[PageHook] = None,
    ) -> None:
        self.surface = surface
        self.font = font
        self.frame = frame
        self.border_color = border_color
        self.text_color = text_color
        self.title = title
        self.on_new_page = on_new_page

    def measure(self, row: RemarkRow) -> tuple[float, WrappedText]:
        wrapped = wrap_text(
            self.surface, row.remark, self.font, CELL_SIZE, self.frame.col_widths[2] - 12
        )
        return max(MIN_ROW_HEIGHT, wrapped.total_height + ROW_PADDING), wrapped

    def start(self) -> PageCursor:
        page = self._open_page()
        cursor = PageCursor(current_page=page, cursor_y=self.frame.top, pages=[page])

        title_width = self.surface.text_width(self.title, self.font, TITLE_SIZE)
        self.surface.draw_text(
            page, self.title, (self.frame.page_width - title_width) / 2, cursor.cursor_y,
            self.font, TITLE_SIZE, self.border_color,
        )
        cursor.cursor_y -= TITLE_GAP
        cursor.page_tops[cursor.page_index] = cursor.cursor_y
        cursor.cursor_y -= self._draw_header(page, cursor.cursor_y)
        cursor.rows_per_page[cursor.page_index] = 0
        return cursor

    def place_row(self, cursor: PageCursor, row: RemarkRow) -> PageCursor:
        row_height, wrapped = self.measure(row)
        if cursor.cursor_y - row_height < self.frame.bottom:
            cursor.page_boundaries[cursor.page_index] = cursor.cursor_y
            page = self._open_page()
            cursor.pages.append(page)
            cursor.current_page = page
            cursor.cursor_y = self.frame.top
            cursor.page_tops[cursor.page_index] = cursor.cursor_y
            cursor.cursor_y -= self._draw_header(page, cursor.cursor_y)
            cursor.rows_per_page[cursor.page_index] = 0
        self._draw_row(cursor.current_page, row, cursor.cursor_y, row_height, wrapped.lines)
        cursor.cursor_y -= row_height
        cursor.rows_per_page[cursor.page_index] += 1
        return cursor

    def finish(self, cursor: PageCursor) -> PageCursor:
        cursor.page_boundaries[cursor.page_index] = cursor.cursor_y
        return cursor

    def finalize(self, cursor: PageCursor, footer: Optional[FooterHook], part_label: Optional[str]) -> None:
        total = len(cursor.pages)
        left = self.frame.left
        right = left + self.frame.table_width
        for idx, page in enumerate(cursor.pages):
            if footer is not None:
                footer(page, f"附录 第 {idx + 1} / {total} 页", part_label)
            top = cursor.page_tops[idx]
            bottom = cursor.page_boundaries[idx]
            for start, end in (
                ((left, top), (right, top)),
                ((left, top), (left, bottom)),
                ((right, top), (right, bottom)),
                ((left, bottom), (right, bottom)),
            ):
                self.surface.draw_line(page, start, end, self.border_color, BORDER_WIDTH)

    def run(
        self,
        rows: Sequence[RemarkRow],
        footer: Optional[FooterHook] = None,
        part_label: Optional[str] = None,
    ) -> PageCursor:
        cursor = self.start()
        for row in rows:
            cursor = self.place_row(cursor, row)
        cursor = self.finish(cursor)
        self.finalize(cursor, footer, part_label)
        return cursor

    def _open_page(self) -> int:
        page = self.surface.add_page()
        if self.on_new_page is not None:
            self.on_new_page(page)
        return page

    def _draw_header(self, page: int, y: float) -> float:
        x = self.frame.left
        widths = self.frame.col_widths
        for i, header in enumerate(HEADERS):
            text_width = self.surface.text_width(header, self.font, HEADER_SIZE)
            self.surface.draw_text(
                page, header, x + (widths[i] - text_width) / 2,
                y - HEADER_HEIGHT + (HEADER_HEIGHT - HEADER_SIZE) / 2,
                self.font, HEADER_SIZE, self.border_color,
            )
            if i < len(HEADERS) - 1:
                self.surface.draw_line(
                    page, (x + widths[i], y), (x + widths[i], y - HEADER_HEIGHT), self.border_color, GRID_WIDTH
                )
            x += widths[i]
        self.surface.draw_line(
            page,
            (self.frame.left, y - HEADER_HEIGHT),
            (self.frame.left + self.frame.table_width, y - HEADER_HEIGHT),
            self.border_color,
            BORDER_WIDTH,
        )
        return HEADER_HEIGHT

    def _draw_row(self, page: int, row: RemarkRow, y: float, row_height: float, lines: List[str]) -> None:
        x = self.frame.left
        widths = self.frame.col_widths
        for i, cell_text in enumerate((row.name, row.position)):
            text_width = self.surface.text_width(cell_text, self.font, CELL_SIZE)
            self.surface.draw_text(
                page, cell_text, x + (widths[i] - text_width) / 2,
                y - row_height + (row_height - CELL_SIZE) / 2,
                self.font, CELL_SIZE, self.text_color,
            )
            self.surface.draw_line(page, (x + widths[i], y), (x + widths[i], y - row_height), self.border_color, GRID_WIDTH)
            x += widths[i]

        line_height = CELL_SIZE + 4
        text_height = len(lines) * line_height
        offset_y = y - row_height + (row_height - text_height) / 2 + text_height - CELL_SIZE
        for line in lines:
            self.surface.draw_text(page, line.strip(), x + TEXT_INSET, offset_y, self.font, CELL_SIZE, self.text_color)
            offset_y -= line_height
        x += widths[2]
        self.surface.draw_line(page, (self.frame.left, y - row_height), (x, y - row_height), self.border_color, GRID_WIDTH)
