from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar, Union

from reportlab.lib import colors

from ..config import load_style_preset


T = TypeVar("T")

_HEX_RE = re.compile(r"^[0-9a-fA-F]{3,6}$")
_NUMBER_RE = re.compile(r"[\d.]+")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


class UseDefault:
    _instance: Optional["UseDefault"] = None

    def __new__(cls) -> "UseDefault":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UseDefault"


USE_DEFAULT = UseDefault()
ParseResult = Union[Ok[T], UseDefault]


def parse_color(value: Any) -> ParseResult[colors.Color]:
    """Accepts ``#abc``, ``#aabbcc``, ``rgb(r, g, b)`` or a reportlab color."""
    if isinstance(value, colors.Color):
        return Ok(value)
    raw = str(value or "").strip()
    if not raw:
        return USE_DEFAULT

    if raw.startswith("#"):
        hex_part = raw[1:]
        if not _HEX_RE.match(hex_part):
            return USE_DEFAULT
        if len(hex_part) == 3:
            hex_part = "".join(c * 2 for c in hex_part)
        if len(hex_part) != 6:
            return USE_DEFAULT
        return Ok(colors.HexColor("#" + hex_part))

    if raw.lower().startswith("rgb"):
        parts = _NUMBER_RE.findall(raw)
        if len(parts) >= 3:
            try:
                r, g, b = (float(p) for p in parts[:3])
            except ValueError:
                return USE_DEFAULT
            if all(0 <= c <= 255 for c in (r, g, b)):
                return Ok(colors.Color(r / 255, g / 255, b / 255))
    return USE_DEFAULT


def parse_size(value: Any) -> ParseResult[float]:
    try:
        size = float(value)
    except (TypeError, ValueError):
        return USE_DEFAULT
    if not math.isfinite(size) or size <= 0:
        return USE_DEFAULT
    return Ok(size)


def color_or(value: Any, default: Any) -> colors.Color:
    result = parse_color(value)
    if isinstance(result, Ok):
        return result.value
    fallback = parse_color(default)
    return fallback.value if isinstance(fallback, Ok) else colors.black


def size_or(value: Any, default: float) -> float:
    result = parse_size(value)
    return result.value if isinstance(result, Ok) else float(default)


@dataclass(frozen=True)
class TextStyle:
    font_size: float
    color: colors.Color


@dataclass(frozen=True)
class PageInfoStyle:
    font_size: float
    theme_color: colors.Color
    base_color: colors.Color


@dataclass(frozen=True)
class BookStyles:
    name: TextStyle
    label: TextStyle
    amount: TextStyle
    cover_text: TextStyle
    page_info: PageInfoStyle

    @property
    def red(self) -> colors.Color:
        return self.page_info.theme_color

    @property
    def black(self) -> colors.Color:
        return self.page_info.base_color


def _pick(section: dict, *keys: str) -> Any:
    for key in keys:
        if key in section:
            return section[key]
    return None


def _section(overrides: dict, snake: str, camel: str) -> dict:
    section = overrides.get(snake, overrides.get(camel))
    return section if isinstance(section, dict) else {}


def _text_style(overrides: dict, preset: dict, snake: str, camel: str) -> TextStyle:
    base = preset.get(snake, {})
    section = _section(overrides, snake, camel)
    return TextStyle(
        font_size=size_or(_pick(section, "font_size", "fontSize"), base.get("font_size", 20)),
        color=color_or(section.get("color"), base.get("color", "#000000")),
    )


def resolve_styles(overrides: dict | None = None, preset: dict | None = None) -> BookStyles:
    overrides = overrides or {}
    preset = preset if preset is not None else load_style_preset()
    info_base = preset.get("page_info", {})
    info = _section(overrides, "page_info", "pageInfo")
    return BookStyles(
        name=_text_style(overrides, preset, "name", "name"),
        label=_text_style(overrides, preset, "label", "label"),
        amount=_text_style(overrides, preset, "amount", "amount"),
        cover_text=_text_style(overrides, preset, "cover_text", "coverText"),
        page_info=PageInfoStyle(
            font_size=size_or(_pick(info, "font_size", "fontSize"), info_base.get("font_size", 12)),
            theme_color=color_or(_pick(info, "theme_color", "themeColor"), info_base.get("theme_color", "#ec403c")),
            base_color=color_or(_pick(info, "base_color", "baseColor"), info_base.get("base_color", "#1f2937")),
        ),
    )
