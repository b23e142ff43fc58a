from __future__ import annotations

import csv
import io
import json
from typing import Sequence

from mastrfetch.errors import InvalidInput
from mastrfetch.models.domain import ProjectedRow
from mastrfetch.services.projection import column_titles

FORMATS = {
    "csv": "text/csv; charset=utf-8",
    "json": "application/json; charset=utf-8",
}


def _csv_line(values: Sequence[str]) -> str:
    buf = io.StringIO()
    # the writer quotes any character of its line terminator, so "\r\n" covers bare CRs
    csv.writer(buf, quoting=csv.QUOTE_MINIMAL, lineterminator="\r\n").writerow(values)
    return buf.getvalue()[:-2]


def to_csv(rows: Sequence[ProjectedRow], columns: Sequence[str] | None = None) -> str:
    """Header + one line per row, LF-separated; minimal quoting, no trailing newline."""
    columns = list(columns) if columns is not None else column_titles()
    lines = [_csv_line(columns)]
    lines.extend(_csv_line([r.get(c, "") for c in columns]) for r in rows)
    return "\n".join(lines)


def to_json(rows: Sequence[ProjectedRow]) -> str:
    return json.dumps(list(rows), ensure_ascii=False)


def media_type(fmt: str) -> str:
    try:
        return FORMATS[fmt]
    except KeyError:
        raise InvalidInput(f"Unknown format {fmt!r}; use one of {sorted(FORMATS)}") from None


def render(rows: Sequence[ProjectedRow], fmt: str) -> str:
    media_type(fmt)
    if fmt == "json":
        return to_json(rows)
    return to_csv(rows)
