"""Global test fixtures."""

import re
import sys
from datetime import date, datetime, timezone
from pathlib import Path

import httpx
import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from mastrfetch.config.settings import FetchConfig  # noqa: E402
from mastrfetch.models.domain import RetryPolicy  # noqa: E402

BASE_URL = "https://registry.test/EinheitJson/GetErweiterteOeffentlicheEinheitStromerzeugung"
META_URL = "https://registry.test/EinheitJson/GetFilterColumnsErweiterteOeffentlicheEinheitStromerzeugung"

CARRIER_META = [
    {"FilterName": "Bundesland", "ListObject": [{"Name": "Bayern", "Value": 1403}], "Type": "list"},
    {
        "FilterName": "Energieträger",
        "ListObject": [
            {"Name": "Biomasse", "Value": 2493},
            {"Name": "Wind", "Value": 2497},
            {"Name": "Solare Strahlungsenergie", "Value": 2495},
            {"Name": "Windenergie auf See", "Value": 2498},
        ],
        "Type": "list",
    },
]

_DATE_RE = re.compile(r"datetime'(\d{4}-\d{2}-\d{2})T00:00:00'")


def ticks(d: date) -> str:
    ms = int(datetime(d.year, d.month, d.day, tzinfo=timezone.utc).timestamp() * 1000)
    return f"/Date({ms})/"


def make_config(**overrides) -> FetchConfig:
    values = dict(
        base_url=BASE_URL,
        meta_url=META_URL,
        user_agent="mastrfetch-tests",
        retry=RetryPolicy(max_attempts=2, base_backoff_ms=0, timeout_ms=2000),
    )
    values.update(overrides)
    return FetchConfig(**values)


def chunk_records(lower: date, n: int) -> list[dict]:
    return [
        {
            "MaStRNummer": f"SEE{lower.strftime('%Y%m%d')}{i}",
            "Anlagenbetreiber (Name)": f"Betreiber {i}",
            "Energieträger": "Solare Strahlungsenergie",
            "Bruttoleistung": 9.9,
            "Nettonennleistung": 8.0,
            "Bundesland": "Bayern",
            "Plz": "80331",
            "Ort": "München",
            "Inbetriebnahmedatum der Einheit": ticks(lower),
        }
        for i in range(n)
    ]


def registry_handler(records_per_chunk: int = 2, calls: list | None = None):
    """
    Fake grid endpoint: page 1 of each chunk returns `records_per_chunk`
    records dated at the chunk start, every later page is empty.
    """

    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request)
        if "GetFilterColumns" in request.url.path:
            return httpx.Response(200, json=CARRIER_META)
        page = int(request.url.params["page"])
        bounds = _DATE_RE.findall(request.url.params["filter"])
        lower = date.fromisoformat(bounds[0])
        if page > 1:
            return httpx.Response(200, json={"Data": [], "Total": records_per_chunk})
        return httpx.Response(200, json={"Data": chunk_records(lower, records_per_chunk)})

    return handler


@pytest.fixture
def config() -> FetchConfig:
    return make_config()
