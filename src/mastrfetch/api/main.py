from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from mastrfetch.api.routes_export import router as export_router
from mastrfetch.api.schemas import HealthResponse
from mastrfetch.config.settings import Settings
from mastrfetch.logging_setup import setup_logging

_settings = Settings()
setup_logging(_settings.log_level, json_lines=_settings.log_json)

app = FastAPI(title="mastrfetch")

cors_origins = [o.strip() for o in _settings.cors_origins.split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_methods=["GET", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Pages-Fetched", "X-Debug-FilterRaw", "X-Debug-Upstream"],
)

# API routes under /api
app.include_router(export_router, prefix="/api")


@app.get("/api/health", response_model=HealthResponse)
def health() -> HealthResponse:
    return HealthResponse(status="ok", upstream=_settings.base_url)


@app.get("/health", response_model=HealthResponse)
def health_root() -> HealthResponse:
    return health()
