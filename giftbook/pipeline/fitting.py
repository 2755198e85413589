from __future__ import annotations

import math
import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Sequence, Tuple

from .surface import DocumentSurface


FONT_STEP = 0.5
USABLE_RATIO = 0.9
MAX_COLUMNS = 3
LINE_GAP = 4.0

# 영숫자 묶음은 한 토큰, 그 외(한자/구두점/기호)는 글자 하나가 한 토큰
_TOKEN_RE = re.compile(r"[A-Za-z0-9_']+|[^\sA-Za-z0-9_]")
_LINE_BREAK_RE = re.compile(r"\r?\n")


class ColumnOrder(str, Enum):
    LEFT_TO_RIGHT = "left-to-right"
    RIGHT_TO_LEFT = "right-to-left"


@dataclass(frozen=True)
class LayoutCell:
    x: float
    y: float
    width: float
    height: float


@dataclass(frozen=True)
class HorizontalFit:
    font_size: float
    x: float
    y: float


@dataclass(frozen=True)
class FitResult:
    font_size: float
    column_count: int
    chars_per_column: int


@dataclass(frozen=True)
class Placement:
    char: str
    x: float
    y: float
    font_size: float


@dataclass(frozen=True)
class WrappedText:
    lines: List[str]
    total_height: float


def calc_height(num_chars: int, font_size: float, letter_spacing: float) -> float:
    return num_chars * (font_size + letter_spacing) - letter_spacing


def calc_width(num_cols: int, font_size: float, letter_spacing: float) -> float:
    return num_cols * font_size + (num_cols - 1) * letter_spacing


def fit_horizontal(
    surface: DocumentSurface,
    text: str,
    font: str,
    cell: LayoutCell,
    initial_size: float,
    min_size: float,
) -> HorizontalFit:
    """
    한 줄 텍스트를 셀 폭의 90% 안에 들어갈 때까지 0.5씩 줄인다.
    높이는 보지 않는다. 최소 크기에서도 넘치면 그대로 둔다.
    """
    usable_width = cell.width * USABLE_RATIO
    size = float(initial_size)
    while size >= min_size and surface.text_width(text, font, size) > usable_width:
        size -= FONT_STEP
    size = max(size, float(min_size))

    text_width = surface.text_width(text, font, size)
    text_height = surface.text_height(font, size)
    # /10: 기준선 보정 (ascent가 높이의 절반이 아님)
    return HorizontalFit(
        font_size=size,
        x=cell.x + (cell.width - text_width) / 2,
        y=cell.y + (cell.height - text_height) / 2 + text_height / 10,
    )


def _search_font_size(
    chars_for_height: int,
    column_count: int,
    initial_size: float,
    min_size: float,
    letter_spacing: float,
    usable_width: float,
    usable_height: float,
) -> float:
    size = float(initial_size)
    while size >= min_size:
        if (
            calc_height(chars_for_height, size, letter_spacing) <= usable_height
            and calc_width(column_count, size, letter_spacing) <= usable_width
        ):
            return size
        size -= FONT_STEP
    return float(min_size)


def max_chars_per_column(cell_height: float, initial_size: float, letter_spacing: float) -> int:
    usable_height = cell_height * USABLE_RATIO
    return max(1, math.floor((usable_height + letter_spacing) / (initial_size + letter_spacing)))


def choose_vertical_fit(
    num_chars: int,
    cell: LayoutCell,
    initial_size: float,
    min_size: float,
    letter_spacing: float,
) -> FitResult:
    """Pick column count and font size for ``num_chars`` stacked glyphs.

    The per-column capacity is measured once at ``initial_size`` and kept even
    when the search later settles on a smaller size.
    """
    usable_width = cell.width * USABLE_RATIO
    usable_height = cell.height * USABLE_RATIO
    capacity = max_chars_per_column(cell.height, initial_size, letter_spacing)
    needed_cols = math.ceil(num_chars / capacity)

    if needed_cols == 1:
        size = _search_font_size(
            num_chars, 1, initial_size, min_size, letter_spacing, usable_width, usable_height
        )
        return FitResult(font_size=max(size, float(min_size)), column_count=1, chars_per_column=num_chars)

    if needed_cols == 2:
        fits_two = (
            calc_height(capacity, initial_size, letter_spacing) <= usable_height
            and calc_width(2, initial_size, letter_spacing) <= usable_width
        )
        if fits_two:
            return FitResult(
                font_size=max(float(initial_size), float(min_size)),
                column_count=2,
                chars_per_column=capacity,
            )

    size = _search_font_size(
        capacity, MAX_COLUMNS, initial_size, min_size, letter_spacing, usable_width, usable_height
    )
    return FitResult(font_size=max(size, float(min_size)), column_count=MAX_COLUMNS, chars_per_column=capacity)


def layout_vertical(
    surface: DocumentSurface,
    chars: Sequence[str],
    font: str,
    cell: LayoutCell,
    initial_size: float,
    min_size: float,
    letter_spacing: float,
    column_order: ColumnOrder = ColumnOrder.LEFT_TO_RIGHT,
) -> Tuple[FitResult | None, List[Placement]]:
    glyphs = list(chars)
    if not glyphs:
        return None, []

    fit = choose_vertical_fit(len(glyphs), cell, initial_size, min_size, letter_spacing)
    size = fit.font_size
    slice_len = max_chars_per_column(cell.height, initial_size, letter_spacing)

    block_width = calc_width(fit.column_count, size, letter_spacing)
    block_height = calc_height(fit.chars_per_column, size, letter_spacing)
    block_left = cell.x + (cell.width - block_width) / 2
    block_bottom = cell.y + (cell.height - block_height) / 2
    pitch = size + letter_spacing

    placements: List[Placement] = []
    for col in range(fit.column_count):
        col_chars = glyphs[col * slice_len:(col + 1) * slice_len]
        if not col_chars:
            continue
        slot = col if column_order == ColumnOrder.LEFT_TO_RIGHT else fit.column_count - 1 - col
        col_height = calc_height(len(col_chars), size, letter_spacing)
        col_top = block_bottom + (block_height - col_height) / 2 + (col_height - size) + letter_spacing / 2
        for row, char in enumerate(col_chars):
            char_width = surface.text_width(char, font, size)
            placements.append(
                Placement(
                    char=char,
                    x=block_left + slot * pitch + (size - char_width) / 2,
                    y=col_top - row * pitch,
                    font_size=size,
                )
            )
    return fit, placements


def tokenize(paragraph: str) -> List[str]:
    return _TOKEN_RE.findall(paragraph)


def wrap_text(
    surface: DocumentSurface,
    text: str | None,
    font: str,
    font_size: float,
    max_width: float,
) -> WrappedText:
    lines: List[str] = []
    for paragraph in _LINE_BREAK_RE.split(str(text or "")):
        current = ""
        for token in tokenize(paragraph):
            candidate = f"{current} {token}" if current else token
            if surface.text_width(candidate, font, font_size) <= max_width:
                current = candidate
                continue
            # 빈 줄이어도 그대로 내보낸다 (긴 토큰 앞에 빈 줄이 생김)
            lines.append(current)
            current = token
        lines.append(current)
    return WrappedText(lines=lines, total_height=len(lines) * (font_size + LINE_GAP))
