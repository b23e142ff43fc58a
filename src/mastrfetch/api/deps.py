"""API dependencies."""

from __future__ import annotations

from collections.abc import AsyncGenerator

import httpx

from mastrfetch.config.settings import FetchConfig, Settings


def get_settings() -> Settings:
    return Settings()


def get_config() -> FetchConfig:
    # read once per request and frozen for the whole run
    return FetchConfig.from_settings(get_settings())


async def get_upstream_client() -> AsyncGenerator[httpx.AsyncClient | None, None]:
    """
    Upstream HTTP client for one request.

    Yields None so the engine opens (and closes) its own client; tests
    override this with an httpx.MockTransport-backed client.
    """
    yield None
