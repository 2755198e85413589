from __future__ import annotations

from typing import List, Tuple

import pytest

from giftbook.config import PAGE_SIZE
from giftbook.pipeline.records import GiftRecord
from giftbook.pipeline.surface import BufferedSurface


class FakeSurface(BufferedSurface):
    """Every glyph is ``char_ratio * size`` wide and text is ``size`` tall."""

    def __init__(self, page_size: Tuple[float, float] = PAGE_SIZE, char_ratio: float = 1.0) -> None:
        super().__init__(page_size)
        self.char_ratio = char_ratio
        self.registered: List[str] = []

    def register_font(self, key: str, data: bytes) -> str:
        self.registered.append(key)
        return f"fake-{key}"

    def default_font(self) -> str:
        return "fake-default"

    def text_width(self, text: str, font: str, size: float) -> float:
        return len(text) * size * self.char_ratio

    def text_height(self, font: str, size: float) -> float:
        return size

    def save(self) -> bytes:
        return b"%PDF-fake"

    def texts(self, page: int | None = None) -> List[str]:
        return [op.params["text"] for op in self.operations("text", page)]


@pytest.fixture
def surface() -> FakeSurface:
    return FakeSurface()


def make_records(count: int, amount: float = 100.0, **overrides) -> List[GiftRecord]:
    return [
        GiftRecord(
            name=overrides.get("name", f"宾客{i}"),
            amount=amount,
            amount_text=overrides.get("amount_text", "壹佰元整"),
            remark=overrides.get("remark"),
            abolished=overrides.get("abolished", False),
            type=overrides.get("type"),
        )
        for i in range(count)
    ]
