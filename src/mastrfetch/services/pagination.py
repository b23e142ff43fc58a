from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote, urlencode

from mastrfetch.config.settings import FetchConfig
from mastrfetch.errors import UpstreamMalformed, UpstreamStructuredError
from mastrfetch.models.domain import ChunkParams, ChunkResult, DateInterval, PageResult, ProjectedRow
from mastrfetch.services.cancellation import CancelToken
from mastrfetch.services.filters import build_range_filter, get_date_encoder
from mastrfetch.services.http_executor import RetryingRequestExecutor
from mastrfetch.services.projection import commissioning_date, project_record

log = logging.getLogger(__name__)

DATA_KEYS = ("Data", "data", "Items")


def build_page_url(base_url: str, filter_expr: str, page: int, page_size: int) -> str:
    params = {
        "group": "",
        "sort": "",
        "aggregate": "",
        "page": page,
        "pageSize": page_size,
        "skip": (page - 1) * page_size,
        "take": page_size,
        "filter": filter_expr,
    }
    return f"{base_url}?{urlencode(params, quote_via=quote, safe='')}"


def parse_page(payload: Any) -> PageResult:
    """
    Accept a bare list or an object carrying the list under Data/data/Items.

    `Error: true` bodies are application-level failures and are raised as
    UpstreamStructuredError, never retried.
    """
    if isinstance(payload, dict):
        if payload.get("Error"):
            raise UpstreamStructuredError(
                str(payload.get("Type") or "?"),
                str(payload.get("Message") or "no message"),
            )
        for key in DATA_KEYS:
            if key in payload:
                data = payload[key]
                break
        else:
            raise UpstreamMalformed(
                f"Upstream object has none of {DATA_KEYS}; keys={sorted(payload)[:10]}"
            )
        if data is None:
            data = []
    elif isinstance(payload, list):
        data = payload
    else:
        raise UpstreamMalformed(f"Unexpected upstream payload type: {type(payload).__name__}")

    if not isinstance(data, list):
        raise UpstreamMalformed(f"Upstream data is {type(data).__name__}, expected a list")
    for rec in data:
        if not isinstance(rec, dict):
            raise UpstreamMalformed(f"Upstream record is {type(rec).__name__}, expected an object")
    return PageResult(records=data)


async def fetch_range(
    chunk: DateInterval,
    params: ChunkParams,
    *,
    executor: RetryingRequestExecutor,
    cancel_token: CancelToken,
    config: FetchConfig,
) -> ChunkResult:
    filter_expr = build_range_filter(
        chunk,
        params.carrier_code,
        params.status_code,
        encoder=get_date_encoder(config.date_literal),
        lower_operator=config.lower_operator,
    )
    first_page_url = build_page_url(config.base_url, filter_expr, 1, params.page_size)

    rows: list[ProjectedRow] = []
    dropped = 0
    page = 1
    pages_fetched = 0
    while params.max_pages == 0 or page <= params.max_pages:
        url = first_page_url if page == 1 else build_page_url(
            config.base_url, filter_expr, page, params.page_size
        )
        result = parse_page(await executor.get_json(url, cancel_token))
        pages_fetched += 1
        if result.is_last_page:
            break

        for rec in result.records:
            if config.post_filter:
                d = commissioning_date(rec)
                if d is not None and not chunk.contains(d):
                    dropped += 1
                    continue
            rows.append(project_record(rec))
        page += 1

    if dropped:
        log.debug("chunk %s: post-filter dropped %d record(s) outside the range", chunk, dropped)
    log.debug("chunk %s: %d row(s) over %d page(s)", chunk, len(rows), pages_fetched)
    return ChunkResult(
        chunk=chunk,
        rows=rows,
        pages_fetched=pages_fetched,
        filter_expression=filter_expr,
        first_page_url=first_page_url,
    )
