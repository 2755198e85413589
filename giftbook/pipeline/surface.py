from __future__ import annotations

import io
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Tuple

from reportlab.lib import colors
from reportlab.lib.utils import ImageReader
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.cidfonts import UnicodeCIDFont
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.pdfgen import canvas


logger = logging.getLogger(__name__)

DEFAULT_CID_FONT = "STSong-Light"


class DocumentSurface(Protocol):
    """Drawing and measuring capabilities the layout code relies on."""

    page_size: Tuple[float, float]

    def add_page(self) -> int: ...

    def page_count(self) -> int: ...

    def draw_line(
        self,
        page: int,
        start: Tuple[float, float],
        end: Tuple[float, float],
        color: colors.Color,
        thickness: float = 1.0,
    ) -> None: ...

    def draw_rect(
        self,
        page: int,
        x: float,
        y: float,
        width: float,
        height: float,
        border_color: colors.Color,
        border_width: float = 1.0,
    ) -> None: ...

    def draw_text(
        self,
        page: int,
        text: str,
        x: float,
        y: float,
        font: str,
        size: float,
        color: colors.Color,
        opacity: float = 1.0,
    ) -> None: ...

    def draw_image(self, page: int, data: bytes, x: float, y: float, width: float, height: float) -> None: ...

    def register_font(self, key: str, data: bytes) -> str: ...

    def default_font(self) -> str: ...

    def text_width(self, text: str, font: str, size: float) -> float: ...

    def text_height(self, font: str, size: float) -> float: ...

    def save(self) -> bytes: ...


@dataclass
class DrawOp:
    kind: str
    params: Dict[str, Any] = field(default_factory=dict)


class BufferedSurface:
    """
    페이지별로 그리기 명령을 모아둔다.
    부록 테이블은 뒤 페이지를 만든 뒤에 앞 페이지 테두리를 그리므로
    실제 출력은 save() 시점에 한 번에 한다.
    Subclasses supply metrics, fonts and ``save``.
    """

    def __init__(self, page_size: Tuple[float, float]) -> None:
        self.page_size = page_size
        self.pages: List[List[DrawOp]] = []

    def add_page(self) -> int:
        self.pages.append([])
        return len(self.pages) - 1

    def page_count(self) -> int:
        return len(self.pages)

    def _push(self, page: int, kind: str, **params: Any) -> None:
        if not 0 <= page < len(self.pages):
            raise IndexError(f"Page {page} does not exist")
        self.pages[page].append(DrawOp(kind, params))

    def draw_line(self, page, start, end, color, thickness=1.0) -> None:
        self._push(page, "line", start=start, end=end, color=color, thickness=thickness)

    def draw_rect(self, page, x, y, width, height, border_color, border_width=1.0) -> None:
        self._push(
            page, "rect", x=x, y=y, width=width, height=height,
            border_color=border_color, border_width=border_width,
        )

    def draw_text(self, page, text, x, y, font, size, color, opacity=1.0) -> None:
        self._push(page, "text", text=text, x=x, y=y, font=font, size=size, color=color, opacity=opacity)

    def draw_image(self, page, data, x, y, width, height) -> None:
        self._push(page, "image", data=data, x=x, y=y, width=width, height=height)

    def operations(self, kind: Optional[str] = None, page: Optional[int] = None) -> List[DrawOp]:
        selected = range(len(self.pages)) if page is None else [page]
        return [op for idx in selected for op in self.pages[idx] if kind is None or op.kind == kind]

    def register_font(self, key: str, data: bytes) -> str:
        raise NotImplementedError

    def default_font(self) -> str:
        raise NotImplementedError

    def text_width(self, text: str, font: str, size: float) -> float:
        raise NotImplementedError

    def text_height(self, font: str, size: float) -> float:
        raise NotImplementedError

    def save(self) -> bytes:
        raise NotImplementedError


class ReportLabSurface(BufferedSurface):
    def __init__(self, page_size: Tuple[float, float]) -> None:
        super().__init__(page_size)
        self._font_names: Dict[str, str] = {}

    def register_font(self, key: str, data: bytes) -> str:
        name = f"GiftBook-{key}-{id(self)}"
        pdfmetrics.registerFont(TTFont(name, io.BytesIO(data)))
        self._font_names[key] = name
        return name

    def default_font(self) -> str:
        if DEFAULT_CID_FONT not in pdfmetrics.getRegisteredFontNames():
            pdfmetrics.registerFont(UnicodeCIDFont(DEFAULT_CID_FONT))
        return DEFAULT_CID_FONT

    def text_width(self, text: str, font: str, size: float) -> float:
        return pdfmetrics.stringWidth(text, font, size)

    def text_height(self, font: str, size: float) -> float:
        ascent, descent = pdfmetrics.getAscentDescent(font, size)
        return ascent - descent

    def save(self) -> bytes:
        buffer = io.BytesIO()
        canv = canvas.Canvas(buffer, pagesize=self.page_size)
        for index, ops in enumerate(self.pages):
            for op in ops:
                self._replay(canv, index, op)
            canv.showPage()
        canv.save()
        return buffer.getvalue()

    def _replay(self, canv: canvas.Canvas, index: int, op: DrawOp) -> None:
        p = op.params
        if op.kind == "line":
            canv.setStrokeColor(p["color"])
            canv.setLineWidth(p["thickness"])
            canv.line(p["start"][0], p["start"][1], p["end"][0], p["end"][1])
        elif op.kind == "rect":
            canv.setStrokeColor(p["border_color"])
            canv.setLineWidth(p["border_width"])
            canv.rect(p["x"], p["y"], p["width"], p["height"], stroke=1, fill=0)
        elif op.kind == "text":
            canv.saveState()
            canv.setFillColor(p["color"])
            if p["opacity"] < 1.0:
                canv.setFillAlpha(p["opacity"])
            canv.setFont(p["font"], p["size"])
            canv.drawString(p["x"], p["y"], p["text"])
            canv.restoreState()
        elif op.kind == "image":
            self._replay_image(canv, index, p)
        else:
            raise ValueError(f"Unknown draw operation: {op.kind}")

    def _replay_image(self, canv: canvas.Canvas, index: int, p: Dict[str, Any]) -> None:
        # 깨진 이미지는 건너뛰고 페이지는 그대로 만든다
        try:
            reader = ImageReader(io.BytesIO(p["data"]))
            reader.getSize()
            canv.drawImage(reader, p["x"], p["y"], width=p["width"], height=p["height"])
        except Exception:
            logger.exception("Failed to draw image on page %d", index + 1)
