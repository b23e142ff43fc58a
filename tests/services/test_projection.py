from datetime import date

from mastrfetch.services.dates import parse_upstream_date, ticks_to_iso
from mastrfetch.services.projection import COLUMNS, column_titles, commissioning_date, project_record


def test_every_column_present_for_empty_record():
    row = project_record({})
    assert list(row) == column_titles()
    assert set(row.values()) == {""}


def test_columns_in_fixed_order():
    assert column_titles() == [
        "MaStRNummer",
        "Betreiber",
        "Energietraeger",
        "Bruttoleistung",
        "Nettonennleistung",
        "Bundesland",
        "PLZ",
        "Ort",
        "InbetriebnahmeDatum",
    ]
    assert len(COLUMNS) == 9


def test_aliases_tried_in_priority_order():
    row = project_record(
        {
            "MaStR-Nummer der Einheit": "SEE2",
            "Postleitzahl": "10115",
            "Inbetriebnahmedatum der Einheit": None,
            "InbetriebnahmeDatum": "2024-01-05",
            "EegInbetriebnahmeDatum": "2023-12-01",
        }
    )
    assert row["MaStRNummer"] == "SEE2"
    assert row["PLZ"] == "10115"
    assert row["InbetriebnahmeDatum"] == "2024-01-05"


def test_values_rendered_as_strings_and_ticks_normalized():
    row = project_record(
        {
            "MaStRNummer": "SEE1",
            "Bruttoleistung": 9.9,
            "Nettonennleistung": 0,
            "EegInbetriebnahmeDatum": "/Date(1184889600000)/",
        }
    )
    assert row["Bruttoleistung"] == "9.9"
    assert row["Nettonennleistung"] == "0"
    assert row["InbetriebnahmeDatum"] == "2007-07-20"


def test_date_parsing_shapes():
    assert ticks_to_iso("/Date(1184889600000)/") == "2007-07-20"
    assert ticks_to_iso("not a tick") is None
    assert parse_upstream_date("/Date(1704067200000+0100)/") == date(2024, 1, 1)
    assert parse_upstream_date("2024-01-05T00:00:00") == date(2024, 1, 5)
    assert parse_upstream_date("05.01.2024") == date(2024, 1, 5)
    assert parse_upstream_date("2024-02-30") is None
    assert parse_upstream_date("") is None
    assert parse_upstream_date(12345) is None


def test_commissioning_date_uses_alias_table():
    assert commissioning_date({"EegInbetriebnahmeDatum": "01.03.2024"}) == date(2024, 3, 1)
    assert commissioning_date({}) is None
