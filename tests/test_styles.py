from __future__ import annotations

import pytest
from reportlab.lib import colors

from giftbook.pipeline.options import BookOptions, load_options
from giftbook.pipeline.fitting import ColumnOrder
from giftbook.pipeline.styles import USE_DEFAULT, Ok, color_or, parse_color, parse_size, resolve_styles


def _rgb(color: colors.Color) -> tuple:
    return round(color.red * 255), round(color.green * 255), round(color.blue * 255)


@pytest.mark.parametrize(
    "value,expected",
    [
        ("#ff0000", (255, 0, 0)),
        ("#abc", (0xAA, 0xBB, 0xCC)),
        ("rgb(10, 20, 30)", (10, 20, 30)),
        (" #1f2937 ", (0x1F, 0x29, 0x37)),
    ],
)
def test_parse_color_ok(value, expected) -> None:
    result = parse_color(value)
    assert isinstance(result, Ok)
    assert _rgb(result.value) == expected


@pytest.mark.parametrize("value", ["", None, "#12345", "#zzzzzz", "red", "rgb(1, 2)", "rgb(300, 0, 0)"])
def test_parse_color_falls_back(value) -> None:
    assert parse_color(value) is USE_DEFAULT


def test_color_or_substitutes_default() -> None:
    assert _rgb(color_or("nonsense", "#cc0000")) == (0xCC, 0, 0)
    assert _rgb(color_or("nonsense", "also nonsense")) == (0, 0, 0)


def test_parse_size() -> None:
    assert parse_size("14") == Ok(14.0)
    assert parse_size(0) is USE_DEFAULT
    assert parse_size(-3) is USE_DEFAULT
    assert parse_size("big") is USE_DEFAULT
    assert parse_size(float("nan")) is USE_DEFAULT


def test_resolve_styles_uses_preset_and_overrides() -> None:
    styles = resolve_styles(
        {
            "name": {"fontSize": 24, "color": "#000000"},
            "label": {"font_size": -1, "color": "bogus"},
            "pageInfo": {"themeColor": "rgb(0, 0, 255)"},
        }
    )
    assert styles.name.font_size == 24
    assert _rgb(styles.name.color) == (0, 0, 0)
    assert styles.label.font_size == 20
    assert _rgb(styles.label.color) == (0xCC, 0, 0)
    assert _rgb(styles.red) == (0, 0, 255)
    assert _rgb(styles.black) == (0x1F, 0x29, 0x37)
    assert styles.cover_text.font_size == 30


def test_book_options_accept_camel_case(caplog) -> None:
    options = BookOptions.from_dict(
        {
            "itemsPerPage": 10,
            "mainFontUrl": "fonts/main.ttf",
            "giftBookStyles": {"name": {"fontSize": 18}},
            "printEndPage": False,
            "columnOrder": "right-to-left",
            "somethingElse": 1,
        }
    )
    assert options.items_per_page == 10
    assert options.main_font == "fonts/main.ttf"
    assert options.styles == {"name": {"fontSize": 18}}
    assert options.print_end_page is False
    assert options.column_order == ColumnOrder.RIGHT_TO_LEFT
    assert "somethingElse" in caplog.text


def test_book_options_font_fallbacks() -> None:
    options = BookOptions(formal_font="formal.ttf")
    assert options.resolved_amount_font == "formal.ttf"
    assert options.resolved_cover_font == "formal.ttf"
    assert not options.is_multi_part
    assert options.with_part(1, 2, 30, 3000).is_multi_part


def test_book_options_reject_zero_page_size() -> None:
    with pytest.raises(ValueError):
        BookOptions(items_per_page=0)


def test_load_options(tmp_path) -> None:
    path = tmp_path / "options.json"
    path.write_text('{"title": "婚礼", "recorder": "王五"}', encoding="utf-8")
    options = load_options(path)
    assert options.title == "婚礼"
    assert options.recorder == "王五"
    assert load_options(None) == BookOptions()
    path.write_text("[]", encoding="utf-8")
    with pytest.raises(ValueError):
        load_options(path)


def test_hex_colors_match_reportlab_hexcolor() -> None:
    assert parse_color("#ec403c").value.rgb() == colors.HexColor("#ec403c").rgb()
    assert parse_color("#abc").value.rgb() == colors.HexColor("#aabbcc").rgb()


def test_book_options_coerce_numeric_strings() -> None:
    options = BookOptions.from_dict({"itemsPerPage": "10", "letterSpacing": "2.5"})
    assert options.items_per_page == 10
    assert isinstance(options.items_per_page, int)
    assert options.letter_spacing == 2.5
    with pytest.raises(ValueError):
        BookOptions.from_dict({"itemsPerPage": "0"})
