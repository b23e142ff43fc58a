"""Registry export API routes."""

from __future__ import annotations

from typing import Optional

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response

from mastrfetch.api.deps import get_config, get_settings, get_upstream_client
from mastrfetch.api.schemas import CarrierOut, ErrorDetail
from mastrfetch.config.settings import FetchConfig, Settings
from mastrfetch.errors import (
    Cancelled,
    InvalidInput,
    MastrFetchError,
    UnitNotFound,
    UpstreamHTTPError,
    UpstreamStructuredError,
    UpstreamUnavailable,
)
from mastrfetch.services.export import (
    build_export_params,
    export_payload,
    fetch_carrier_options,
    fetch_unit_detail,
)

router = APIRouter(prefix="/mastr", tags=["mastr"])

COMMON_HEADERS = {"Cache-Control": "no-store"}


def _http_error(exc: MastrFetchError) -> HTTPException:
    detail = ErrorDetail(error=type(exc).__name__, message=str(exc))
    if isinstance(exc, InvalidInput):
        status = 400
    elif isinstance(exc, UnitNotFound):
        status = 404
    elif isinstance(exc, (UpstreamUnavailable, Cancelled)):
        status = 503
        detail.upstream_status = getattr(exc, "status", None)
    else:
        status = 502
        if isinstance(exc, UpstreamHTTPError):
            detail.upstream_status = exc.status
        if isinstance(exc, UpstreamStructuredError):
            detail.upstream_type = exc.error_type
    return HTTPException(status_code=status, detail=detail.model_dump(exclude_none=True), headers=COMMON_HEADERS)


@router.get("")
async def export_endpoint(
    start: Optional[str] = Query(None, description="Inclusive start date (YYYY-MM-DD)"),
    end: Optional[str] = Query(None, description="Exclusive end date (YYYY-MM-DD)"),
    carrier: Optional[str] = Query(None, description="Energieträger name or numeric code"),
    status: Optional[str] = Query(None, description="Numeric Betriebs-Status code"),
    pagesize: Optional[int] = Query(None),
    maxpages: Optional[int] = Query(None, description="0 = unbounded"),
    chunkdays: Optional[int] = Query(None, description="0 = no partitioning"),
    concurrency: Optional[int] = Query(None),
    format: str = Query("csv"),
    debug: bool = Query(False),
    settings: Settings = Depends(get_settings),
    config: FetchConfig = Depends(get_config),
    client: Optional[httpx.AsyncClient] = Depends(get_upstream_client),
):
    try:
        params = build_export_params(
            start,
            end,
            carrier=carrier or settings.carrier_default_token,
            status=status,
            page_size=pagesize if pagesize is not None else settings.page_size_default,
            page_size_max=config.page_size_max,
            max_pages=maxpages if maxpages is not None else settings.max_pages_default,
            chunk_days=chunkdays if chunkdays is not None else settings.chunk_days_default,
            max_concurrency=concurrency if concurrency is not None else settings.max_concurrency_default,
            fmt=format,
            debug=debug,
        )
        payload = await export_payload(params, config, client=client)
    except MastrFetchError as e:
        raise _http_error(e)

    headers = {**COMMON_HEADERS, "X-Pages-Fetched": str(payload.run.pages_fetched)}
    if params.debug and payload.run.filters:
        first = payload.run.filters[0]
        headers["X-Debug-FilterRaw"] = first.filter_expression
        headers["X-Debug-Upstream"] = first.upstream_url
    return Response(content=payload.body, media_type=payload.media_type, headers=headers)


@router.get("/carriers", response_model=list[CarrierOut])
async def carriers_endpoint(
    config: FetchConfig = Depends(get_config),
    client: Optional[httpx.AsyncClient] = Depends(get_upstream_client),
):
    try:
        options = await fetch_carrier_options(config, client=client)
    except MastrFetchError as e:
        raise _http_error(e)
    return [CarrierOut(name=o.name, value=o.value) for o in options]


@router.get("/unit/{mastr}")
async def unit_endpoint(
    mastr: str,
    config: FetchConfig = Depends(get_config),
    client: Optional[httpx.AsyncClient] = Depends(get_upstream_client),
):
    try:
        return await fetch_unit_detail(mastr, config, client=client)
    except MastrFetchError as e:
        raise _http_error(e)
