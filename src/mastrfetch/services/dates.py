from __future__ import annotations

import re
from datetime import date, datetime, timedelta, timezone
from typing import Any, Optional

_TICKS_RE = re.compile(r"^/Date\((-?\d+)(?:[+-]\d{4})?\)/$")
_ISO_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})")
_GERMAN_RE = re.compile(r"^(\d{1,2})\.(\d{1,2})\.(\d{4})")

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def parse_iso_date(value: Optional[str]) -> Optional[date]:
    """Strict `YYYY-MM-DD`; None for anything else."""
    if not value:
        return None
    m = re.fullmatch(r"(\d{4})-(\d{2})-(\d{2})", value.strip())
    if not m:
        return None
    try:
        return date(int(m[1]), int(m[2]), int(m[3]))
    except ValueError:
        return None


def ticks_to_date(value: Any) -> Optional[date]:
    """
    The grid endpoint returns dates like '/Date(1184889600000)/' (epoch ms, UTC).
    """
    if not isinstance(value, str):
        return None
    m = _TICKS_RE.match(value.strip())
    if not m:
        return None
    return (_EPOCH + timedelta(milliseconds=int(m[1]))).date()


def ticks_to_iso(value: Any) -> Optional[str]:
    d = ticks_to_date(value)
    return d.isoformat() if d else None


def parse_upstream_date(value: Any) -> Optional[date]:
    """Best effort over every date shape the registry has been seen to return."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    s = value.strip()
    if not s:
        return None

    d = ticks_to_date(s)
    if d:
        return d
    for rx, order in ((_ISO_RE, "ymd"), (_GERMAN_RE, "dmy")):
        m = rx.match(s)
        if not m:
            continue
        a, b, c = (int(x) for x in m.groups())
        y, mo, da = (a, b, c) if order == "ymd" else (c, b, a)
        try:
            return date(y, mo, da)
        except ValueError:
            return None
    return None
