from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, date, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple
import math
import re
import secrets

from .settings import settings

_DIGITS = re.compile(r"\d+")
MAX_PRODUCT_CODE_DIGITS = 7


def generate_receipt_number(prefix: str, now: Optional[datetime] = None) -> str:
    # NH2510191430 + seconds + 4 hex chars so two receipts in the same minute never clash
    now = now or datetime.now()
    return f"{prefix}{now:%y%m%d%H%M%S}{secrets.token_hex(2).upper()}"


def import_receipt_number(now: Optional[datetime] = None) -> str:
    return generate_receipt_number(settings.IMPORT_RECEIPT_PREFIX, now)


def check_receipt_number(now: Optional[datetime] = None) -> str:
    return generate_receipt_number(settings.CHECK_RECEIPT_PREFIX, now)


def format_product_code(code: int) -> str:
    return f"{settings.PRODUCT_CODE_PREFIX}{int(code):05d}"


def parse_product_code(value: Any) -> int:
    """
    NK00012 / '12' / 12 -> 12.

    Raises ValueError when no digits are present or the code has more than
    MAX_PRODUCT_CODE_DIGITS digits (it would not fit the integer column).
    """
    if isinstance(value, int):
        code = value
    else:
        m = _DIGITS.search(str(value or "").strip())
        if not m:
            raise ValueError(f"Invalid product code: {value!r}")
        code = int(m.group(0))
    if len(str(abs(code))) > MAX_PRODUCT_CODE_DIGITS:
        raise ValueError(f"Product code too long: {value!r}")
    return code


def is_product_code(value: str) -> bool:
    s = (value or "").strip()
    prefix = settings.PRODUCT_CODE_PREFIX
    if s.upper().startswith(prefix.upper()):
        s = s[len(prefix):]
    # bare codes are short; anything longer is treated as a barcode
    return s.isdigit() and len(s) <= MAX_PRODUCT_CODE_DIGITS


def remove_empty_props(data: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in data.items() if v is not None and v != ""}


# ---------------------------------------------------------
# Pagination
# ---------------------------------------------------------

@dataclass(frozen=True)
class Page:
    offset: int
    limit: int
    page: int


def get_pagination(page: Optional[int] = None, limit: Optional[int] = None) -> Page:
    max_limit = settings.PAGINATION_MAX_LIMIT
    page = max(1, int(page or 1))
    limit = int(limit or 10)
    limit = min(max(1, limit), max_limit)
    return Page(offset=(page - 1) * limit, limit=limit, page=page)


def pagination_metadata(p: Page, total_items: int) -> Dict[str, Any]:
    total_pages = math.ceil(total_items / p.limit) if total_items else 0
    return {
        "offset": p.offset,
        "limit": p.limit,
        "totalItems": total_items,
        "totalPages": total_pages,
        "currentPage": p.page,
        "hasNext": p.page < total_pages,
        "hasPrevious": p.page > 1,
    }


# ---------------------------------------------------------
# Dates
# ---------------------------------------------------------

def day_bounds(d: date) -> Tuple[datetime, datetime]:
    start = datetime(d.year, d.month, d.day, tzinfo=timezone.utc)
    return start, start + timedelta(days=1)


def days_between(start: date, end: date) -> List[date]:
    if end < start:
        return []
    return [start + timedelta(days=i) for i in range((end - start).days + 1)]
