# utils/helpers.py
from __future__ import annotations

import calendar
import logging
import re
from datetime import date, datetime, time, timezone
from typing import Optional, Union

NumberLike = Union[float, int, str]

_log = logging.getLogger(__name__)

_LEADING_NUMBER = re.compile(r"(\d+(\.\d+)?)")


def today_str() -> str:
    """Return today's date as ISO string (YYYY-MM-DD)."""
    return date.today().isoformat()


def now_iso() -> str:
    """Current UTC timestamp in the document's ISO format (millisecond precision, Z suffix)."""
    return datetime.now(timezone.utc).replace(tzinfo=None).isoformat(timespec="milliseconds") + "Z"


def parse_datetime(value: str | date | datetime) -> datetime:
    """
    Parse a document date into a naive local datetime.

    Accepts 'YYYY-MM-DD' (local midnight) and full ISO timestamps; a trailing
    'Z' or an explicit offset is converted to local time so that plain dates
    and timestamps compare on one axis.
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        return datetime.combine(value, time.min)
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError as e:
            raise ValueError(f"Could not parse {value!r} as a date.") from e
    if dt.tzinfo is not None:
        dt = dt.astimezone().replace(tzinfo=None)
    return dt


def is_within_date_range(
    value: str,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
) -> bool:
    """
    Inclusive calendar-day range check. The start bound is taken at 00:00:00,
    the end bound at 23:59:59.999; either bound may be omitted.
    """
    if not start_date and not end_date:
        return True
    item = parse_datetime(value)
    if start_date:
        start = parse_datetime(start_date).replace(hour=0, minute=0, second=0, microsecond=0)
        if item < start:
            return False
    if end_date:
        end = parse_datetime(end_date).replace(hour=23, minute=59, second=59, microsecond=999000)
        if item > end:
            return False
    return True


def add_months(d: datetime, months: int) -> datetime:
    """Calendar month arithmetic, clamping the day to the target month's length."""
    month_index = d.month - 1 + months
    year = d.year + month_index // 12
    month = month_index % 12 + 1
    day = min(d.day, calendar.monthrange(year, month)[1])
    return d.replace(year=year, month=month, day=day)


def leading_number(text: str | None, default: float = 1.0) -> float:
    """First numeric token inside `text` ("100ml Vial" -> 100.0), or `default`."""
    if not text:
        return default
    m = _LEADING_NUMBER.search(str(text))
    return float(m.group(0)) if m else default


def id_suffix(record_id: str) -> int:
    """Numeric part after '#' in ids like 'trans#12'; 0 when absent."""
    try:
        return int(str(record_id).split("#", 1)[1])
    except (IndexError, ValueError):
        return 0


def fmt_money(
    v: NumberLike,
    places: int = 2,
    *,
    strict: bool = False,
    sentinel: Optional[str] = None,
) -> str:
    """
    Format a number as money with thousands separators and a fixed number of decimals.

    Behavior on parse failure:
      - By default returns str(v).
      - If `sentinel` is provided (e.g., "N/A"), returns that sentinel instead.
      - If `strict=True`, raises ValueError.
    """
    try:
        x = float(v)
    except (TypeError, ValueError) as e:
        _log.debug("fmt_money: failed to parse %r as float: %s", v, e)
        if strict:
            raise ValueError(f"Could not parse {v!r} as a number.") from e
        return str(sentinel) if sentinel is not None else str(v)
    return f"Rs {x:,.{places}f}"
