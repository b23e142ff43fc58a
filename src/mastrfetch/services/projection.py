"""
Record projection onto the fixed export schema.

The registry names the same field differently depending on the record shape
(e.g. the commissioning date). Every alias lives in COLUMNS: keys are tried in
order and the first present, non-null value wins.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Mapping, Optional

from mastrfetch.models.domain import ProjectedRow
from mastrfetch.services.dates import parse_upstream_date, ticks_to_iso


@dataclass(frozen=True)
class ColumnSpec:
    title: str
    keys: tuple[str, ...]
    normalize: Optional[Callable[[Any], Any]] = None


def _date_value(value: Any) -> Any:
    return ticks_to_iso(value) or value


COMMISSIONING_DATE_KEYS = (
    "Inbetriebnahmedatum der Einheit",
    "InbetriebnahmeDatum",
    "EegInbetriebnahmeDatum",
)

COLUMNS: tuple[ColumnSpec, ...] = (
    ColumnSpec("MaStRNummer", ("MaStRNummer", "MaStR-Nummer der Einheit", "EinheitMastrNummer")),
    ColumnSpec("Betreiber", ("Anlagenbetreiber (Name)", "AnlagenbetreiberName")),
    ColumnSpec("Energietraeger", ("Energieträger", "EnergietraegerName")),
    ColumnSpec("Bruttoleistung", ("Bruttoleistung",)),
    ColumnSpec("Nettonennleistung", ("Nettonennleistung",)),
    ColumnSpec("Bundesland", ("Bundesland",)),
    ColumnSpec("PLZ", ("Plz", "Postleitzahl")),
    ColumnSpec("Ort", ("Ort",)),
    ColumnSpec("InbetriebnahmeDatum", COMMISSIONING_DATE_KEYS, normalize=_date_value),
)


def column_titles(columns: tuple[ColumnSpec, ...] = COLUMNS) -> list[str]:
    return [c.title for c in columns]


def first_present(record: Mapping[str, Any], keys: tuple[str, ...]) -> Any:
    for k in keys:
        v = record.get(k)
        if v is not None:
            return v
    return None


def _to_str(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def project_record(record: Mapping[str, Any], columns: tuple[ColumnSpec, ...] = COLUMNS) -> ProjectedRow:
    row: ProjectedRow = {}
    for col in columns:
        value = first_present(record, col.keys)
        if value is not None and col.normalize is not None:
            value = col.normalize(value)
        row[col.title] = _to_str(value)
    return row


def commissioning_date(record: Mapping[str, Any]) -> Optional[date]:
    return parse_upstream_date(first_present(record, COMMISSIONING_DATE_KEYS))
