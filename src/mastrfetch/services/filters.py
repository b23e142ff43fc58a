"""
Kendo filter expressions for the MaStR grid endpoint.

Grammar: `field~op~literal` clauses chained with `~and~`.

The registry has accepted several date literal shapes over time, so the
encoding is a named strategy picked from configuration rather than a constant.
Whatever the encoder, the rendered range is always [start, end).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Callable

from mastrfetch.models.domain import DateInterval

DateLiteralEncoder = Callable[[date], str]

DATE_FIELD = "Inbetriebnahmedatum der Einheit"
CARRIER_FIELD = "Energieträger"
STATUS_FIELD = "Betriebs-Status"
MASTR_FIELD = "MaStRNummer"


@dataclass(frozen=True)
class FilterFields:
    date: str = DATE_FIELD
    carrier: str = CARRIER_FIELD
    status: str = STATUS_FIELD


DEFAULT_FIELDS = FilterFields()


def _ticks(d: date) -> str:
    ms = int(datetime(d.year, d.month, d.day, tzinfo=timezone.utc).timestamp() * 1000)
    return f"'/Date({ms})/'"


DATE_ENCODERS: dict[str, DateLiteralEncoder] = {
    "datetime": lambda d: f"datetime'{d.isoformat()}T00:00:00'",
    "iso": lambda d: f"'{d.isoformat()}'",
    "german": lambda d: f"'{d.strftime('%d.%m.%Y')}'",
    "ticks": _ticks,
    "raw": lambda d: d.isoformat(),
}

LOWER_OPERATORS = ("ge", "gt")


def get_date_encoder(name: str) -> DateLiteralEncoder:
    try:
        return DATE_ENCODERS[name.lower()]
    except KeyError:
        raise ValueError(
            f"Unknown date literal encoder {name!r}; expected one of {sorted(DATE_ENCODERS)}"
        ) from None


def clause(field: str, op: str, literal: str) -> str:
    return f"{field}~{op}~{literal}"


def quote_literal(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def build_range_filter(
    chunk: DateInterval,
    carrier_code: str,
    status_code: str | None = None,
    *,
    encoder: DateLiteralEncoder = DATE_ENCODERS["datetime"],
    lower_operator: str = "ge",
    fields: FilterFields = DEFAULT_FIELDS,
) -> str:
    if lower_operator not in LOWER_OPERATORS:
        raise ValueError(f"lower_operator must be one of {LOWER_OPERATORS}, got {lower_operator!r}")

    # `gt` is strict, so the bound moves back one day to keep `start` included
    lower = chunk.start if lower_operator == "ge" else chunk.start - timedelta(days=1)

    parts = [
        clause(fields.date, lower_operator, encoder(lower)),
        clause(fields.date, "lt", encoder(chunk.end)),
        clause(fields.carrier, "eq", quote_literal(carrier_code)),
    ]
    if status_code:
        parts.append(clause(fields.status, "eq", quote_literal(status_code)))
    return "~and~".join(parts)


def build_unit_filter(mastr_number: str) -> str:
    return clause(MASTR_FIELD, "eq", quote_literal(mastr_number))
