from __future__ import annotations

import logging
from typing import Any

from mastrfetch.errors import UpstreamError
from mastrfetch.models.domain import CarrierOption
from mastrfetch.services.cancellation import CancelToken
from mastrfetch.services.http_executor import RetryingRequestExecutor

log = logging.getLogger(__name__)

CARRIER_FILTER_NAME = "energieträger"


def parse_carrier_options(meta: Any) -> list[CarrierOption]:
    """
    Pull the Energieträger name/code list out of the filter metadata payload.

    meta: [{FilterName, ListObject: [{Name, Value}], Type}, ...]
    """
    if not isinstance(meta, list):
        return []
    for f in meta:
        if not isinstance(f, dict):
            continue
        name = f.get("FilterName")
        if not isinstance(name, str) or name.strip().lower() != CARRIER_FILTER_NAME:
            continue
        items = f.get("ListObject") or []
        if not isinstance(items, list):
            return []
        return [
            CarrierOption(name=str(x.get("Name") or ""), value=str(x.get("Value")))
            for x in items
            if isinstance(x, dict) and x.get("Value") is not None
        ]
    return []


def match_carrier(token: str, options: list[CarrierOption]) -> CarrierOption | None:
    """Exact name, then prefix, then substring; all case-insensitive."""
    q = token.strip().lower()
    if not q:
        return None
    names = [(o, o.name.lower()) for o in options]
    for test in (
        lambda n: n == q,
        lambda n: n.startswith(q),
        lambda n: q in n,
    ):
        for option, name in names:
            if test(name):
                return option
    return None


async def list_carrier_options(
    executor: RetryingRequestExecutor,
    cancel_token: CancelToken,
    metadata_url: str,
) -> list[CarrierOption]:
    meta = await executor.get_json(metadata_url, cancel_token)
    return parse_carrier_options(meta)


async def resolve_carrier_code(
    token: str,
    *,
    executor: RetryingRequestExecutor,
    cancel_token: CancelToken,
    metadata_url: str,
    default_code: str,
) -> str:
    """
    Map a carrier token to the registry's numeric Energieträger code.

    Numeric tokens pass through without a network call. Metadata failures and
    unmatched names fall back to `default_code`; only cancellation propagates.
    """
    token = (token or "").strip()
    if token.isascii() and token.isdigit():
        return token

    try:
        options = await list_carrier_options(executor, cancel_token, metadata_url)
    except UpstreamError as e:
        log.warning("carrier metadata unavailable (%s); using fallback code %s", e, default_code)
        return default_code

    hit = match_carrier(token, options)
    if hit is None:
        log.warning("no carrier matches %r; using fallback code %s", token, default_code)
        return default_code
    log.debug("carrier %r resolved to %s (%s)", token, hit.value, hit.name)
    return hit.value
