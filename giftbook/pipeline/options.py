from __future__ import annotations

import dataclasses
import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from ..config import (
    DEFAULT_GIFT_LABEL,
    DEFAULT_ITEMS_PER_PAGE,
    DEFAULT_LETTER_SPACING,
    DEFAULT_TITLE,
)
from .fitting import ColumnOrder


logger = logging.getLogger(__name__)

_CAMEL_RE = re.compile(r"(?<!^)(?=[A-Z])")

# 예전 옵션 이름(...Url)을 그대로 받아준다
_ALIASES = {
    "main_font_url": "main_font",
    "gift_label_font_url": "gift_label_font",
    "formal_font_url": "formal_font",
    "amount_font_url": "amount_font",
    "cover_font_url": "cover_font",
    "gift_book_styles": "styles",
}


@dataclass(frozen=True)
class BookOptions:
    title: str = DEFAULT_TITLE
    gift_label: str = DEFAULT_GIFT_LABEL
    letter_spacing: float = DEFAULT_LETTER_SPACING
    items_per_page: int = DEFAULT_ITEMS_PER_PAGE
    column_order: ColumnOrder = ColumnOrder.LEFT_TO_RIGHT

    main_font: Optional[str] = None
    gift_label_font: Optional[str] = None
    formal_font: Optional[str] = None
    amount_font: Optional[str] = None
    cover_font: Optional[str] = None

    background_image: Optional[str] = None
    cover_image: Optional[str] = None
    back_cover_image: Optional[str] = None

    styles: Dict[str, Any] = field(default_factory=dict)

    print_cover: bool = False
    show_cover_title: bool = False
    print_appendix: bool = True
    print_summary: bool = True
    print_end_page: bool = True

    part_index: Optional[int] = None
    total_parts: Optional[int] = None
    grand_total_givers: int = 0
    grand_total_amount: float = 0.0

    subtitle: str = ""
    recorder: str = ""

    def __post_init__(self) -> None:
        # JSON에서 문자열로 들어올 수 있다
        object.__setattr__(self, "items_per_page", int(self.items_per_page))
        object.__setattr__(self, "letter_spacing", float(self.letter_spacing))
        if self.items_per_page < 1:
            raise ValueError("items_per_page must be at least 1")
        if not isinstance(self.column_order, ColumnOrder):
            object.__setattr__(self, "column_order", ColumnOrder(self.column_order))

    @property
    def is_multi_part(self) -> bool:
        return bool(self.part_index and self.total_parts)

    @property
    def resolved_amount_font(self) -> Optional[str]:
        return self.amount_font or self.formal_font

    @property
    def resolved_cover_font(self) -> Optional[str]:
        return self.cover_font or self.formal_font

    def with_part(self, part_index: int, total_parts: int, givers: int, amount: float) -> "BookOptions":
        return dataclasses.replace(
            self,
            part_index=part_index,
            total_parts=total_parts,
            grand_total_givers=givers,
            grand_total_amount=amount,
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any] | None) -> "BookOptions":
        known = {f.name for f in dataclasses.fields(cls)}
        values: Dict[str, Any] = {}
        for raw_key, value in (data or {}).items():
            key = _CAMEL_RE.sub("_", str(raw_key)).lower()
            key = _ALIASES.get(key, key)
            if key not in known:
                logger.warning("Ignoring unknown book option: %s", raw_key)
                continue
            values[key] = value
        return cls(**values)


def load_options(path: Path | None) -> BookOptions:
    if path is None:
        return BookOptions()
    if not path.exists():
        raise FileNotFoundError(f"Options file not found: {path}")
    with path.open("r", encoding="utf-8") as handle:
        data = json.load(handle)
    if not isinstance(data, dict):
        raise ValueError("Options file must contain a JSON object")
    return BookOptions.from_dict(data)
