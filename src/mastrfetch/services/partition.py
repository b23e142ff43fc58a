from __future__ import annotations

from datetime import timedelta

from mastrfetch.errors import InvalidInput
from mastrfetch.models.domain import DateInterval


def partition_interval(interval: DateInterval, chunk_days: int | None) -> list[DateInterval]:
    """
    Split [start, end) into consecutive chunks of `chunk_days` days.

    The last chunk is truncated to `end`. A chunk size of 0/None disables
    partitioning and returns the interval unchanged as the only chunk.
    """
    if not chunk_days:
        return [interval]
    if chunk_days < 0:
        raise InvalidInput(f"chunk_days must be >= 0, got {chunk_days}")

    step = timedelta(days=chunk_days)
    chunks: list[DateInterval] = []
    cursor = interval.start
    while cursor < interval.end:
        upper = min(cursor + step, interval.end)
        chunks.append(DateInterval(cursor, upper))
        cursor = upper
    return chunks
