from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple

from .. import config
from ..storage import artifact_path
from .fitting import LayoutCell, fit_horizontal, layout_vertical
from .flow import FlowFrame, RemarkTable
from .options import BookOptions
from .records import GiftRecord, PreparedData, format_rmb, plain_number, prepare_records
from .resources import ResourceSet, load_resources
from .styles import BookStyles, TextStyle, resolve_styles
from .surface import DocumentSurface, ReportLabSurface


logger = logging.getLogger(__name__)

VERTICAL_MIN_SIZE = 8.0
NUMERIC_AMOUNT_HEIGHT = 25.0
NUMERIC_INITIAL_SIZE = 12.0
NUMERIC_MIN_SIZE = 6.0
VOID_MARK = "作废"
FULL_WIDTH_SPACE = "\u3000"

SurfaceFactory = Callable[[Tuple[float, float]], DocumentSurface]


def display_name(name: str) -> str:
    # 두 글자 이름은 가운데 전각 공백을 넣는다 (张三 -> 张　三)
    chars = list(name)
    if len(chars) == 2:
        return chars[0] + FULL_WIDTH_SPACE + chars[1]
    return name


def format_timestamp(moment: datetime) -> str:
    return moment.strftime("%Y-%m-%d %H:%M:%S")


@dataclass(frozen=True)
class FontSet:
    main: str
    gift_label: str
    formal: str
    amount: str
    cover: str


@dataclass
class _Book:
    surface: DocumentSurface
    options: BookOptions
    styles: BookStyles
    fonts: FontSet
    resources: ResourceSet
    timestamp: str

    @property
    def part_label(self) -> Optional[str]:
        if self.options.is_multi_part:
            return f"P{self.options.part_index}/P{self.options.total_parts}"
        return None


def _embed_fonts(surface: DocumentSurface, resources: ResourceSet) -> FontSet:
    def embed(key: str, data: Optional[bytes]) -> Optional[str]:
        return surface.register_font(key, data) if data else None

    main = embed("main", resources.main_font) or surface.default_font()
    formal = embed("formal", resources.formal_font) or main
    return FontSet(
        main=main,
        gift_label=embed("gift-label", resources.gift_label_font) or main,
        formal=formal,
        amount=embed("amount", resources.amount_font) or main,
        cover=embed("cover", resources.cover_font) or formal,
    )


def _draw_background(book: _Book, page: int, image: Optional[bytes]) -> None:
    if not image:
        return
    width, height = book.surface.page_size
    book.surface.draw_image(page, image, 0, 0, width, height)


def _new_page(book: _Book, image: Optional[bytes]) -> int:
    page = book.surface.add_page()
    _draw_background(book, page, image)
    return page


def _draw_page_footer(
    book: _Book,
    page: int,
    left: Optional[str],
    center: Optional[str],
    right: Optional[str],
) -> None:
    surface = book.surface
    font = book.fonts.formal
    size = book.styles.page_info.font_size
    color = book.styles.black
    width = surface.page_size[0]
    y = config.FOOTER_Y
    if left:
        surface.draw_text(page, left, config.FOOTER_MARGINS["left"], y, font, size, color)
    if center:
        center_width = surface.text_width(center, font, size)
        surface.draw_text(page, center, (width - center_width) / 2, y, font, size, color)
    if right:
        right_width = surface.text_width(right, font, size)
        surface.draw_text(page, right, width - config.FOOTER_MARGINS["right"] - right_width, y, font, size, color)


def _draw_vertical(book: _Book, page: int, text: str, font: str, cell: LayoutCell, style: TextStyle) -> None:
    _, placements = layout_vertical(
        book.surface,
        text,
        font,
        cell,
        style.font_size,
        VERTICAL_MIN_SIZE,
        book.options.letter_spacing,
        book.options.column_order,
    )
    for p in placements:
        book.surface.draw_text(page, p.char, p.x, p.y, font, p.font_size, style.color)


def _add_cover(book: _Book) -> None:
    opts = book.options
    if not (opts.print_cover and book.resources.cover_image):
        return
    surface = book.surface
    page = _new_page(book, book.resources.cover_image)
    style = book.styles.cover_text
    page_w, page_h = surface.page_size
    if not opts.show_cover_title:
        return
    for text, y in ((opts.title, 115), (opts.subtitle, 80)):
        if not text:
            continue
        text_width = surface.text_width(text, book.fonts.cover, style.font_size)
        surface.draw_text(page, text, (page_w - text_width) / 2, y, book.fonts.cover, style.font_size, style.color)
    if opts.part_index:
        surface.draw_text(
            page, f"P{opts.part_index}", 90, page_h - 120,
            book.fonts.cover, style.font_size + 20, style.color, opacity=0.9,
        )


def _add_gift_pages(book: _Book, prepared: PreparedData) -> List[int]:
    surface = book.surface
    opts = book.options
    per_page = opts.items_per_page
    page_w, page_h = surface.page_size
    margin = config.MAIN_PAGE_MARGINS
    red = book.styles.red

    table_w = page_w - margin["left"] - margin["right"]
    table_h = page_h - margin["top"] - margin["bottom"]
    col_w = table_w / per_page
    label_h = table_h * 0.15
    name_h = (table_h - label_h) / 2
    amount_h = name_h
    amount_text_h = amount_h - NUMERIC_AMOUNT_HEIGHT
    line1_y = margin["bottom"] + amount_h
    line2_y = line1_y + label_h

    pages: List[int] = []
    for p in range(prepared.main_page_count):
        page = _new_page(book, book.resources.background_image)
        pages.append(page)

        surface.draw_rect(page, margin["left"], margin["bottom"], table_w, table_h, red, 2)
        for line_y in (line1_y, line2_y):
            surface.draw_line(page, (margin["left"], line_y), (page_w - margin["right"], line_y), red, 1)
        for i in range(1, per_page):
            line_x = margin["left"] + i * col_w
            surface.draw_line(page, (line_x, margin["bottom"]), (line_x, page_h - margin["top"]), red, 1)

        page_records = prepared.page_slice(p, per_page)
        for i, record in enumerate(page_records):
            col_x = margin["left"] + i * col_w
            _draw_gift_cell(book, page, record, col_x, col_w, name_h, label_h, amount_text_h, line1_y, line2_y)

        subtotal = sum(r.amount for r in page_records if not r.abolished)
        page_info = f"第 {p + 1} 页 / 共 {prepared.main_page_count} 页"
        if opts.is_multi_part:
            page_info += f"( P{opts.part_index}/P{opts.total_parts} )"
        _draw_page_footer(
            book, page,
            left=f"生成日期: {book.timestamp}",
            center=page_info,
            right=f"本页小计: {format_rmb(subtotal)}",
        )
    return pages


def _draw_gift_cell(
    book: _Book,
    page: int,
    record: GiftRecord,
    col_x: float,
    col_w: float,
    name_h: float,
    label_h: float,
    amount_text_h: float,
    line1_y: float,
    line2_y: float,
) -> None:
    styles = book.styles
    fonts = book.fonts
    bottom = config.MAIN_PAGE_MARGINS["bottom"]

    _draw_vertical(book, page, display_name(record.name), fonts.main, LayoutCell(col_x, line2_y, col_w, name_h), styles.name)
    _draw_vertical(book, page, book.options.gift_label, fonts.gift_label, LayoutCell(col_x, line1_y, col_w, label_h), styles.label)

    amount_cell = LayoutCell(col_x, bottom + NUMERIC_AMOUNT_HEIGHT, col_w, amount_text_h)
    if record.abolished:
        # 무효(作废) 항목은 자리만 차지하고 금액은 표시하지 않는다
        _draw_vertical(book, page, VOID_MARK, fonts.amount, amount_cell, styles.label)
        return
    _draw_vertical(book, page, record.amount_text, fonts.amount, amount_cell, styles.amount)

    numeric = "¥" + plain_number(record.amount)
    fit = fit_horizontal(
        book.surface,
        numeric,
        fonts.formal,
        LayoutCell(col_x, bottom + 5, col_w, NUMERIC_AMOUNT_HEIGHT),
        NUMERIC_INITIAL_SIZE,
        NUMERIC_MIN_SIZE,
    )
    book.surface.draw_text(page, numeric, fit.x, fit.y, fonts.formal, fit.font_size, styles.black)


def _add_remark_appendix(book: _Book, prepared: PreparedData) -> List[int]:
    if not prepared.remarks:
        return []
    page_w, page_h = book.surface.page_size
    margin = config.APPENDIX_MARGINS
    frame = FlowFrame(
        page_width=page_w,
        top=page_h - margin["top"],
        bottom=margin["bottom"],
        left=margin["left"],
        col_widths=(120.0, 160.0, page_w - margin["left"] - margin["right"] - 280),
    )
    table = RemarkTable(
        book.surface,
        book.fonts.formal,
        frame,
        border_color=book.styles.red,
        text_color=book.styles.black,
        on_new_page=lambda page: _draw_background(book, page, book.resources.background_image),
    )

    def footer(page: int, center: str, right: Optional[str]) -> None:
        _draw_page_footer(book, page, left=f"生成日期: {book.timestamp}", center=center, right=right)

    cursor = table.run(prepared.remarks, footer=footer, part_label=book.part_label)
    logger.info("Remark appendix: %d rows on %d pages", len(prepared.remarks), len(cursor.pages))
    return cursor.pages


def summary_rows(prepared: PreparedData, options: BookOptions) -> List[Tuple[str, str, str]]:
    rows = [
        (kind, f"{values.count} 人", format_rmb(values.total))
        for kind, values in prepared.summary.items()
    ]
    if options.is_multi_part:
        rows.append(("本部分总计", f"{prepared.total_items} 人", format_rmb(prepared.grand_total)))
        rows.append(("事项总金额", f"{options.grand_total_givers or 0} 人", format_rmb(options.grand_total_amount)))
    else:
        rows.append(("总计", f"{prepared.total_items} 人", format_rmb(prepared.grand_total)))
    return rows


def _add_summary_appendix(book: _Book, prepared: PreparedData) -> Optional[int]:
    if not prepared.summary:
        return None
    surface = book.surface
    font = book.fonts.formal
    red = book.styles.red
    black = book.styles.black
    page_w, page_h = surface.page_size
    margin = config.APPENDIX_MARGINS
    page = _new_page(book, book.resources.background_image)

    title = "总计"
    title_width = surface.text_width(title, font, 28)
    surface.draw_text(page, title, (page_w - title_width) / 2, page_h - margin["top"], font, 28, red)

    table_top = page_h - margin["top"] - 40
    table_w = page_w - margin["left"] - margin["right"]
    col_widths = [table_w * 0.3, table_w * 0.25, table_w * 0.45]
    header_h = 30
    row_h = 40

    def draw_cells(cells: Sequence[str], y: float, offset: float) -> None:
        x = margin["left"]
        for text, width in zip(cells, col_widths):
            text_width = surface.text_width(text, font, 14)
            surface.draw_text(page, text, x + (width - text_width) / 2, y - offset, font, 14, black)
            x += width

    cursor_y = table_top
    draw_cells(("送礼方式", "人数", "总金额"), cursor_y, header_h / 2 + 6)
    cursor_y -= header_h
    surface.draw_line(page, (margin["left"], cursor_y), (margin["left"] + table_w, cursor_y), red, 0.8)

    for row in summary_rows(prepared, book.options):
        draw_cells(row, cursor_y, row_h / 2 + 7)
        cursor_y -= row_h
        surface.draw_line(page, (margin["left"], cursor_y), (margin["left"] + table_w, cursor_y), red, 0.8)

    table_bottom = cursor_y
    left, right = margin["left"], margin["left"] + table_w
    for start, end in (
        ((left, table_top), (right, table_top)),
        ((left, table_bottom), (right, table_bottom)),
        ((left, table_top), (left, table_bottom)),
        ((right, table_top), (right, table_bottom)),
    ):
        surface.draw_line(page, start, end, red, 1.2)
    line_x = left
    for width in col_widths[:-1]:
        line_x += width
        surface.draw_line(page, (line_x, table_top), (line_x, table_bottom), red, 0.8)

    _draw_signature_block(book, page, table_bottom)
    return page


def _draw_signature_block(book: _Book, page: int, table_bottom: float) -> None:
    opts = book.options
    if not (opts.recorder or opts.subtitle):
        return
    surface = book.surface
    font = book.fonts.formal
    recorder = f"记账人:  {opts.recorder}" if opts.recorder else ""
    recorder_w = surface.text_width(recorder, font, 18) if recorder else 0.0
    subtitle_w = surface.text_width(opts.subtitle, font, 18) if opts.subtitle else 0.0
    block_w = max(recorder_w, subtitle_w)
    box_x = surface.page_size[0] - config.APPENDIX_MARGINS["right"] - block_w - 45
    y = table_bottom - 60
    if recorder:
        surface.draw_text(page, recorder, box_x + (block_w - recorder_w) / 2, y, font, 18, book.styles.black)
        y -= 30
    if opts.subtitle:
        surface.draw_text(page, opts.subtitle, box_x + (block_w - subtitle_w) / 2, y, font, 18, book.styles.black)


def _add_back_cover(book: _Book) -> None:
    if book.options.print_end_page and book.resources.back_cover_image:
        _new_page(book, book.resources.back_cover_image)


class GiftBookRenderer:
    """
    礼金簿 PDF 생성기.
    순서: 표지 -> 명단 페이지 -> 备注 부록 -> 总计 부록 -> 뒤표지
    """

    def __init__(
        self,
        options: BookOptions | None = None,
        surface_factory: SurfaceFactory = ReportLabSurface,
        resources: ResourceSet | None = None,
        style_preset: dict | None = None,
    ) -> None:
        self.options = options or BookOptions()
        self.surface_factory = surface_factory
        self.resources = resources
        self.styles = resolve_styles(self.options.styles, style_preset)

    def render(self, records: Sequence[GiftRecord], now: datetime | None = None) -> DocumentSurface:
        if not isinstance(records, list) or not records:
            raise ValueError("Gift records must be a non-empty list")

        resources = self.resources if self.resources is not None else load_resources(self.options)
        surface = self.surface_factory(config.PAGE_SIZE)
        book = _Book(
            surface=surface,
            options=self.options,
            styles=self.styles,
            fonts=_embed_fonts(surface, resources),
            resources=resources,
            timestamp=format_timestamp(now or datetime.now()),
        )
        prepared = prepare_records(records, self.options.items_per_page)

        _add_cover(book)
        _add_gift_pages(book, prepared)
        if self.options.print_appendix:
            _add_remark_appendix(book, prepared)
        if self.options.print_summary:
            _add_summary_appendix(book, prepared)
        _add_back_cover(book)
        logger.info("Rendered %d records into %d pages", len(records), surface.page_count())
        return surface

    def generate(self, records: Sequence[GiftRecord], now: datetime | None = None) -> bytes:
        return self.render(records, now=now).save()


def render_pdf(records: List[GiftRecord], options: BookOptions, output_path: Path) -> Path:
    output_path.write_bytes(GiftBookRenderer(options).generate(records))
    return output_path


def render_book_pdf(
    slug: str,
    records: List[GiftRecord],
    options: BookOptions,
    base_dir: Path | None = None,
    include_slug: bool = True,
) -> Path:
    path = artifact_path(slug, "pdf", base_dir=base_dir, include_slug=include_slug)
    return render_pdf(records, options, path)
