import asyncio
from datetime import date

import httpx
import pytest

from conftest import chunk_records, make_config, ticks
from mastrfetch.errors import UpstreamMalformed, UpstreamStructuredError
from mastrfetch.models.domain import ChunkParams, DateInterval
from mastrfetch.services.cancellation import CancelToken
from mastrfetch.services.http_executor import RetryingRequestExecutor
from mastrfetch.services.pagination import fetch_range, parse_page

CHUNK = DateInterval(date(2024, 1, 1), date(2024, 1, 11))


def _fetch(handler, max_pages: int = 0, page_size: int = 2, **config_overrides):
    config = make_config(**config_overrides)

    async def go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await fetch_range(
                CHUNK,
                ChunkParams(carrier_code="2495", status_code=None, page_size=page_size, max_pages=max_pages),
                executor=RetryingRequestExecutor(client, config.retry),
                cancel_token=CancelToken(),
                config=config,
            )

    return asyncio.run(go())


def _paged(pages: list):
    calls: list[int] = []

    def handler(request):
        page = int(request.url.params["page"])
        calls.append(page)
        body = pages[page - 1] if page <= len(pages) else []
        return httpx.Response(200, json=body)

    return handler, calls


@pytest.mark.parametrize(
    "payload",
    [
        [{"a": 1}],
        {"Data": [{"a": 1}]},
        {"data": [{"a": 1}]},
        {"Items": [{"a": 1}], "Total": 1},
    ],
)
def test_parse_page_shapes(payload):
    assert parse_page(payload).records == [{"a": 1}]


def test_parse_page_structured_error():
    with pytest.raises(UpstreamStructuredError) as ei:
        parse_page({"Error": True, "Type": "Validation", "Message": "bad filter"})
    assert ei.value.error_type == "Validation"
    assert "bad filter" in str(ei.value)


@pytest.mark.parametrize("payload", ["text", {"Rows": []}, {"Data": {"a": 1}}, [1, 2]])
def test_parse_page_malformed(payload):
    with pytest.raises(UpstreamMalformed):
        parse_page(payload)


def test_parse_page_null_data_is_empty_page():
    assert parse_page({"Data": None}).is_last_page


def test_stops_on_first_empty_page():
    day = ticks(date(2024, 1, 2))
    handler, calls = _paged(
        [
            [{"MaStRNummer": "A", "InbetriebnahmeDatum": day}, {"MaStRNummer": "B", "InbetriebnahmeDatum": day}],
            [{"MaStRNummer": "C", "InbetriebnahmeDatum": day}],
            [],
        ]
    )
    result = _fetch(handler)
    assert [r["MaStRNummer"] for r in result.rows] == ["A", "B", "C"]
    assert calls == [1, 2, 3]
    assert result.pages_fetched == 3


def test_page_cap_limits_requests():
    handler, calls = _paged([chunk_records(date(2024, 1, 3), 2)] * 5)
    result = _fetch(handler, max_pages=2)
    assert calls == [1, 2]
    assert len(result.rows) == 4
    assert result.pages_fetched == 2


def test_structured_error_surfaces_without_retry():
    calls = {"n": 0}

    def handler(request):
        calls["n"] += 1
        return httpx.Response(200, json={"Error": True, "Type": "Server", "Message": "kaputt"})

    with pytest.raises(UpstreamStructuredError):
        _fetch(handler)
    assert calls["n"] == 1


def test_post_filter_drops_records_outside_chunk():
    handler, _ = _paged(
        [
            [
                {"MaStRNummer": "IN", "InbetriebnahmeDatum": ticks(date(2024, 1, 10))},
                {"MaStRNummer": "EDGE", "InbetriebnahmeDatum": ticks(date(2024, 1, 11))},
                {"MaStRNummer": "BEFORE", "InbetriebnahmeDatum": "31.12.2023"},
                {"MaStRNummer": "UNKNOWN"},
            ]
        ]
    )
    result = _fetch(handler)
    assert [r["MaStRNummer"] for r in result.rows] == ["IN", "UNKNOWN"]

    unfiltered = _fetch(handler, post_filter=False)
    assert len(unfiltered.rows) == 4


def test_chunk_result_carries_filter_and_first_url():
    handler, _ = _paged([])
    result = _fetch(handler)
    assert result.rows == []
    assert "Energieträger~eq~'2495'" in result.filter_expression
    assert "page=1&" in result.first_page_url
