"""
Export orchestration: one stateless run over one caller interval.

Flow:
    validate -> resolve carrier code -> partition -> bounded fetch per chunk
    -> concatenate rows in chunk order -> render
"""

from __future__ import annotations

import json
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator

import httpx

from mastrfetch.config.settings import FetchConfig
from mastrfetch.errors import InvalidInput, UnitNotFound
from mastrfetch.models.domain import CarrierOption, ChunkDebug, ChunkParams, ChunkResult, DateInterval, RunResult
from mastrfetch.services.cancellation import CancelToken
from mastrfetch.services.carrier_codes import list_carrier_options, resolve_carrier_code
from mastrfetch.services.dates import parse_iso_date, ticks_to_iso
from mastrfetch.services.filters import build_unit_filter
from mastrfetch.services.http_executor import RetryingRequestExecutor
from mastrfetch.services.pagination import build_page_url, fetch_range, parse_page
from mastrfetch.services.partition import partition_interval
from mastrfetch.services.scheduler import run_bounded
from mastrfetch.services.serialize import FORMATS, media_type, render

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExportParams:
    interval: DateInterval
    carrier_token: str
    status_code: str | None = None
    page_size: int = 500
    max_pages: int = 0
    chunk_days: int = 0
    max_concurrency: int = 3
    format: str = "csv"
    debug: bool = False


@dataclass(frozen=True)
class ExportPayload:
    body: str
    media_type: str
    run: RunResult


def build_export_params(
    start: str | None,
    end: str | None,
    *,
    carrier: str,
    status: str | None = None,
    page_size: int = 500,
    page_size_max: int = 5000,
    max_pages: int = 0,
    chunk_days: int = 0,
    max_concurrency: int = 3,
    fmt: str = "csv",
    debug: bool = False,
) -> ExportParams:
    """Validate caller input; every rejection happens here, before any I/O."""
    if not start or not end:
        raise InvalidInput(
            "Missing 'start' or 'end' (YYYY-MM-DD). Example: ?start=2024-01-01&end=2024-01-31&format=csv"
        )
    start_d = parse_iso_date(start)
    end_d = parse_iso_date(end)
    if start_d is None or end_d is None:
        raise InvalidInput("Invalid date format. Use YYYY-MM-DD.")
    if start_d >= end_d:
        raise InvalidInput(f"'start' ({start}) must be before 'end' ({end}); the range is [start, end).")

    if not 1 <= page_size <= page_size_max:
        raise InvalidInput(f"pagesize must be between 1 and {page_size_max}, got {page_size}")
    if max_pages < 0:
        raise InvalidInput(f"maxpages must be >= 0 (0 = unbounded), got {max_pages}")
    if chunk_days < 0:
        raise InvalidInput(f"chunkdays must be >= 0 (0 = no partitioning), got {chunk_days}")
    if max_concurrency < 1:
        raise InvalidInput(f"concurrency must be >= 1, got {max_concurrency}")

    fmt = (fmt or "csv").lower()
    if fmt not in FORMATS:
        raise InvalidInput(f"Unknown format {fmt!r}; use one of {sorted(FORMATS)}")

    status = (status or "").strip() or None
    if status is not None and not (status.isascii() and status.isdigit()):
        raise InvalidInput(f"status must be a numeric registry code, got {status!r}")

    return ExportParams(
        interval=DateInterval(start_d, end_d),
        carrier_token=(carrier or "").strip(),
        status_code=status,
        page_size=page_size,
        max_pages=max_pages,
        chunk_days=chunk_days,
        max_concurrency=max_concurrency,
        format=fmt,
        debug=debug,
    )


@asynccontextmanager
async def open_executor(
    config: FetchConfig, client: httpx.AsyncClient | None = None
) -> AsyncIterator[RetryingRequestExecutor]:
    """Yield an executor; an injected client is used as-is and left open."""
    if client is not None:
        yield RetryingRequestExecutor(client, config.retry)
        return
    async with httpx.AsyncClient(
        headers=config.headers, timeout=config.retry.timeout_ms / 1000.0
    ) as own:
        yield RetryingRequestExecutor(own, config.retry)


async def run_export(
    params: ExportParams,
    config: FetchConfig,
    *,
    client: httpx.AsyncClient | None = None,
    cancel_token: CancelToken | None = None,
) -> RunResult:
    token = cancel_token or CancelToken()
    chunks = partition_interval(params.interval, params.chunk_days)
    log.info(
        "export %s: %d chunk(s), page_size=%d, max_pages=%d, concurrency=%d",
        params.interval, len(chunks), params.page_size, params.max_pages, params.max_concurrency,
    )

    async with open_executor(config, client) as executor:
        carrier_code = await resolve_carrier_code(
            params.carrier_token,
            executor=executor,
            cancel_token=token,
            metadata_url=config.meta_url,
            default_code=config.carrier_fallback_code,
        )
        chunk_params = ChunkParams(
            carrier_code=carrier_code,
            status_code=params.status_code,
            page_size=params.page_size,
            max_pages=params.max_pages,
        )

        def make_task(chunk: DateInterval):
            async def task() -> ChunkResult:
                return await fetch_range(
                    chunk, chunk_params, executor=executor, cancel_token=token, config=config
                )
            return task

        def abort(e: BaseException) -> None:
            token.cancel(f"run aborted: {type(e).__name__}")

        try:
            # siblings are cancelled and drained before the client closes
            results: list[ChunkResult] = await run_bounded(
                [make_task(c) for c in chunks],
                params.max_concurrency,
                cancel_token=token,
                on_failure=abort,
            )
        except BaseException as e:
            abort(e)
            raise

    rows = [row for r in results for row in r.rows]
    pages = sum(r.pages_fetched for r in results)
    log.info("export %s: %d row(s) from %d page(s)", params.interval, len(rows), pages)
    return RunResult(
        rows=rows,
        pages_fetched=pages,
        carrier_code=carrier_code,
        filters=[
            ChunkDebug(
                chunk=str(r.chunk),
                filter_expression=r.filter_expression,
                upstream_url=r.first_page_url,
                rows=len(r.rows),
                pages=r.pages_fetched,
            )
            for r in results
        ],
    )


def debug_body(run: RunResult) -> dict[str, Any]:
    return {
        "debug": True,
        "carrierCode": run.carrier_code,
        "pagesFetched": run.pages_fetched,
        "chunks": [
            {
                "chunk": f.chunk,
                "filterRaw": f.filter_expression,
                "upstreamUrl": f.upstream_url,
                "rows": f.rows,
                "pages": f.pages,
            }
            for f in run.filters
        ],
        "rows": run.rows,
    }


async def export_payload(
    params: ExportParams,
    config: FetchConfig,
    *,
    client: httpx.AsyncClient | None = None,
    cancel_token: CancelToken | None = None,
) -> ExportPayload:
    run = await run_export(params, config, client=client, cancel_token=cancel_token)
    if params.debug and params.format == "json":
        body = json.dumps(debug_body(run), ensure_ascii=False)
    else:
        body = render(run.rows, params.format)
    return ExportPayload(body=body, media_type=media_type(params.format), run=run)


async def fetch_unit_detail(
    mastr_number: str,
    config: FetchConfig,
    *,
    client: httpx.AsyncClient | None = None,
    cancel_token: CancelToken | None = None,
) -> dict[str, Any]:
    """
    Look up exactly one unit by MaStR number.

    The raw record is returned with ISO copies of the tick-encoded dates.
    """
    mastr_number = (mastr_number or "").strip()
    if not mastr_number:
        raise InvalidInput("Missing 'mastr' number. Example: SEE984033548619")

    token = cancel_token or CancelToken()
    url = build_page_url(config.base_url, build_unit_filter(mastr_number), page=1, page_size=1)
    async with open_executor(config, client) as executor:
        page = parse_page(await executor.get_json(url, token))

    if page.is_last_page:
        raise UnitNotFound(mastr_number)

    rec = page.records[0]
    return {
        **rec,
        "EegInbetriebnahmeISO": ticks_to_iso(rec.get("EegInbetriebnahmeDatum")),
        "InbetriebnahmeAltISO": ticks_to_iso(
            rec.get("Inbetriebnahmedatum der Einheit") or rec.get("InbetriebnahmeDatum")
        ),
    }


async def fetch_carrier_options(
    config: FetchConfig,
    *,
    client: httpx.AsyncClient | None = None,
    cancel_token: CancelToken | None = None,
) -> list[CarrierOption]:
    """Name/code pairs accepted as carrier tokens. Upstream errors propagate here."""
    token = cancel_token or CancelToken()
    async with open_executor(config, client) as executor:
        return await list_carrier_options(executor, token, config.meta_url)
