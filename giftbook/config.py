from __future__ import annotations

from pathlib import Path
from typing import Dict, Tuple
import json


BASE_DIR = Path(__file__).resolve().parents[1]
OUT_DIR = BASE_DIR / "out"
DB_PATH = OUT_DIR / "giftbook.db"
STYLE_PRESET_PATH = BASE_DIR / "assets" / "styles" / "gift_book_styles.json"

# A4 가로 -> 礼金簿는 가로로 펼쳐 쓴다
PAGE_SIZE: Tuple[float, float] = (841.89, 595.28)

MAIN_PAGE_MARGINS: Dict[str, float] = {"top": 28, "bottom": 35, "left": 30, "right": 30}
APPENDIX_MARGINS: Dict[str, float] = {"top": 70, "bottom": 45, "left": 60, "right": 60}
FOOTER_MARGINS: Dict[str, float] = {"left": 30, "right": 30}
FOOTER_Y = 17.0

DEFAULT_TITLE = "礼金簿"
DEFAULT_GIFT_LABEL = "贺礼"
DEFAULT_TYPE = "其他"
DEFAULT_LETTER_SPACING = 4.0
DEFAULT_ITEMS_PER_PAGE = 12

FETCH_TIMEOUT = 30
FETCH_WORKERS = 8


def load_style_preset() -> dict:
    with STYLE_PRESET_PATH.open("r", encoding="utf-8") as handle:
        return json.load(handle)


def set_out_dir(path: Path) -> None:
    global OUT_DIR, DB_PATH
    OUT_DIR = path
    DB_PATH = OUT_DIR / "giftbook.db"
