from __future__ import annotations

from dataclasses import dataclass

from pydantic_settings import BaseSettings, SettingsConfigDict

from mastrfetch.models.domain import RetryPolicy


class Settings(BaseSettings):
    """
    Centralized config.

    Key idea:
    - read from env first (so tests/CI can override),
    - otherwise default to values that work against the public registry.

    Settings are read once per run and frozen into a FetchConfig; nothing below
    the API/CLI layer reads the environment.
    """

    model_config = SettingsConfigDict(env_prefix="MASTRFETCH_", extra="ignore")

    # MaStR Kendo grid endpoints
    base_url: str = (
        "https://www.marktstammdatenregister.de/MaStR/Einheit/EinheitJson/"
        "GetErweiterteOeffentlicheEinheitStromerzeugung"
    )
    meta_url: str = (
        "https://www.marktstammdatenregister.de/MaStR/Einheit/EinheitJson/"
        "GetFilterColumnsErweiterteOeffentlicheEinheitStromerzeugung"
    )
    user_agent: str = "mastrfetch/0.1"

    # request safety defaults
    timeout_s: float = 8.0
    max_attempts: int = 3
    backoff_base_ms: int = 500

    # carrier (Energieträger) handling
    carrier_default_token: str = "Solare Strahlungsenergie"
    carrier_fallback_code: str = "2495"

    # paging / partitioning defaults
    page_size_default: int = 500
    page_size_max: int = 5000
    max_pages_default: int = 0
    chunk_days_default: int = 0
    max_concurrency_default: int = 3

    # filter grammar: see services/filters.py for the available encoders
    date_literal: str = "datetime"
    lower_operator: str = "ge"
    post_filter: bool = True

    log_level: str = "info"
    log_json: bool = False

    cors_origins: str = "*"


@dataclass(frozen=True)
class FetchConfig:
    """Immutable per-run view of the settings, passed to every component."""

    base_url: str
    meta_url: str
    user_agent: str
    retry: RetryPolicy
    carrier_fallback_code: str = "2495"
    page_size_max: int = 5000
    date_literal: str = "datetime"
    lower_operator: str = "ge"
    post_filter: bool = True

    @classmethod
    def from_settings(cls, s: Settings) -> "FetchConfig":
        return cls(
            base_url=s.base_url,
            meta_url=s.meta_url,
            user_agent=s.user_agent,
            retry=RetryPolicy(
                max_attempts=s.max_attempts,
                base_backoff_ms=s.backoff_base_ms,
                timeout_ms=int(s.timeout_s * 1000),
            ),
            carrier_fallback_code=s.carrier_fallback_code,
            page_size_max=s.page_size_max,
            date_literal=s.date_literal,
            lower_operator=s.lower_operator,
            post_filter=s.post_filter,
        )

    @property
    def headers(self) -> dict[str, str]:
        return {
            "Accept": "application/json",
            "User-Agent": self.user_agent,
            "X-Requested-With": "XMLHttpRequest",
            "Referer": "https://www.marktstammdatenregister.de/",
        }


def load_config() -> FetchConfig:
    return FetchConfig.from_settings(Settings())
