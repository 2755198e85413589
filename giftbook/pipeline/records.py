from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Dict, List, Optional, Sequence

from ..config import DEFAULT_TYPE


@dataclass(frozen=True)
class GiftRecord:
    name: str
    amount: float
    amount_text: str
    remark: Optional[str] = None
    abolished: bool = False
    type: Optional[str] = None


@dataclass(frozen=True)
class RemarkRow:
    name: str
    remark: str
    position: str


@dataclass(frozen=True)
class TypeTotal:
    count: int
    total: float


@dataclass(frozen=True)
class PreparedData:
    records: List[GiftRecord]
    grand_total: float
    summary: Dict[str, TypeTotal]
    remarks: List[RemarkRow]
    total_items: int
    main_page_count: int

    def page_slice(self, page_index: int, items_per_page: int) -> List[GiftRecord]:
        start = page_index * items_per_page
        return self.records[start:start + items_per_page]


def remark_position(index: int, items_per_page: int) -> str:
    return f"第{index // items_per_page + 1}页第{index % items_per_page + 1}人"


def prepare_records(records: Sequence[GiftRecord], items_per_page: int) -> PreparedData:
    if items_per_page < 1:
        raise ValueError("items_per_page must be at least 1")

    grand_total = sum(r.amount for r in records if not r.abolished)

    # dict는 삽입 순서를 유지 -> 처음 나온 type 순서대로
    counts: Dict[str, List[float]] = {}
    for record in records:
        bucket = counts.setdefault(record.type or DEFAULT_TYPE, [0, 0.0])
        bucket[0] += 1
        bucket[1] += record.amount
    summary = {key: TypeTotal(count=int(c), total=t) for key, (c, t) in counts.items()}

    remarks = [
        RemarkRow(name=r.name, remark=r.remark, position=remark_position(i, items_per_page))
        for i, r in enumerate(records)
        if r.remark and r.remark.strip()
    ]

    return PreparedData(
        records=list(records),
        grand_total=grand_total,
        summary=summary,
        remarks=remarks,
        total_items=len(records),
        main_page_count=math.ceil(len(records) / items_per_page),
    )


def split_parts(records: Sequence[GiftRecord], part_size: int) -> List[List[GiftRecord]]:
    if part_size < 1:
        raise ValueError("part_size must be at least 1")
    return [list(records[i:i + part_size]) for i in range(0, len(records), part_size)]


def format_rmb(amount) -> str:
    try:
        value = float(amount)
    except (TypeError, ValueError):
        value = 0.0
    if not math.isfinite(value):
        value = 0.0
    sign = "-" if value < 0 else ""
    return f"{sign}¥{abs(value):,.2f}"


def plain_number(amount: float) -> str:
    value = float(amount)
    if value == int(value):
        return str(int(value))
    return f"{value:.2f}".rstrip("0").rstrip(".")


_DIGITS = "零壹贰叁肆伍陆柒捌玖"
_UNITS = ((1000, "仟"), (100, "佰"), (10, "拾"), (1, ""))
_SECTIONS = ("", "万", "亿", "万亿")


def _group_to_chinese(n: int) -> str:
    out = ""
    pending_zero = False
    for scale, unit in _UNITS:
        digit = n // scale % 10
        if digit == 0:
            if out:
                pending_zero = True
            continue
        if pending_zero:
            out += "零"
            pending_zero = False
        out += _DIGITS[digit] + unit
    return out


def _integer_to_chinese(n: int) -> str:
    groups: List[int] = []
    while n:
        groups.append(n % 10000)
        n //= 10000
    out = ""
    pending_zero = False
    for idx in reversed(range(len(groups))):
        group = groups[idx]
        if group == 0:
            if out:
                pending_zero = True
            continue
        if out and (pending_zero or group < 1000):
            out += "零"
        out += _group_to_chinese(group) + _SECTIONS[idx]
        pending_zero = False
    return out


def chinese_amount(amount) -> str:
    """Uppercase RMB wording used on cheques, e.g. 200 -> 贰佰元整."""
    try:
        value = Decimal(str(amount)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    except InvalidOperation as exc:
        raise ValueError(f"Invalid amount: {amount!r}") from exc
    if value >= Decimal(10) ** 16:
        raise ValueError(f"Amount too large: {amount!r}")

    prefix = "负" if value < 0 else ""
    cents_total = int(abs(value) * 100)
    yuan, cents = divmod(cents_total, 100)
    jiao, fen = divmod(cents, 10)

    if yuan == 0 and cents == 0:
        return "零元整"

    out = _integer_to_chinese(yuan) + "元" if yuan else ""
    if cents == 0:
        return prefix + out + "整"
    if jiao:
        out += _DIGITS[jiao] + "角"
    elif yuan:
        out += "零"
    if fen:
        out += _DIGITS[fen] + "分"
    return prefix + out
