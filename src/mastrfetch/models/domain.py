from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any

ProjectedRow = dict[str, str]


@dataclass(frozen=True)
class DateInterval:
    """Half-open calendar interval [start, end)."""

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.start >= self.end:
            raise ValueError(
                f"interval start {self.start.isoformat()} must be before end {self.end.isoformat()}"
            )

    @property
    def days(self) -> int:
        return (self.end - self.start).days

    def contains(self, d: date) -> bool:
        return self.start <= d < self.end

    def __str__(self) -> str:
        return f"[{self.start.isoformat()}, {self.end.isoformat()})"


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3  # retries after the first attempt
    base_backoff_ms: int = 500
    timeout_ms: int = 8000


@dataclass(frozen=True)
class PageResult:
    records: list[dict[str, Any]]

    @property
    def is_last_page(self) -> bool:
        return not self.records


@dataclass(frozen=True)
class ChunkParams:
    carrier_code: str
    status_code: str | None
    page_size: int
    max_pages: int  # 0 => unbounded


@dataclass(frozen=True)
class ChunkResult:
    chunk: DateInterval
    rows: list[ProjectedRow]
    pages_fetched: int
    filter_expression: str
    first_page_url: str


@dataclass(frozen=True)
class ChunkDebug:
    chunk: str
    filter_expression: str
    upstream_url: str
    rows: int
    pages: int


@dataclass(frozen=True)
class RunResult:
    rows: list[ProjectedRow]
    pages_fetched: int
    carrier_code: str = ""
    filters: list[ChunkDebug] = field(default_factory=list)


@dataclass(frozen=True)
class CarrierOption:
    name: str
    value: str
