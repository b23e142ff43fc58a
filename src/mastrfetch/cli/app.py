from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from mastrfetch.config.settings import FetchConfig, Settings
from mastrfetch.errors import MastrFetchError
from mastrfetch.logging_setup import setup_logging
from mastrfetch.services.export import (
    build_export_params,
    export_payload,
    fetch_carrier_options,
    fetch_unit_detail,
)

app = typer.Typer(help="mastrfetch CLI (MaStR registry exports).")
console = Console(stderr=True)


def _bootstrap(verbose: bool) -> tuple[Settings, FetchConfig]:
    settings = Settings()
    setup_logging("debug" if verbose else settings.log_level, json_lines=settings.log_json)
    return settings, FetchConfig.from_settings(settings)


def _fail(e: MastrFetchError) -> None:
    console.print(f"[red]✗[/red] {type(e).__name__}: {e}")
    raise typer.Exit(1)


@app.command("export")
def export_cmd(
    start: str = typer.Option(..., help="Inclusive start date (YYYY-MM-DD)."),
    end: str = typer.Option(..., help="Exclusive end date (YYYY-MM-DD)."),
    carrier: Optional[str] = typer.Option(None, help="Energieträger name or numeric code."),
    status: Optional[str] = typer.Option(None, help="Numeric Betriebs-Status code."),
    page_size: Optional[int] = typer.Option(None, "--page-size", help="Rows per upstream page."),
    max_pages: Optional[int] = typer.Option(None, "--max-pages", help="Page cap per chunk (0 = unbounded)."),
    chunk_days: Optional[int] = typer.Option(None, "--chunk-days", help="Chunk size in days (0 = whole range)."),
    concurrency: Optional[int] = typer.Option(None, help="Chunks fetched at once."),
    fmt: str = typer.Option("csv", "--format", help="csv or json."),
    debug: bool = typer.Option(False, help="Emit filter/URL diagnostics (json format)."),
    out: Optional[Path] = typer.Option(None, "--out", help="Write to file instead of stdout."),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Export units commissioned in [start, end) as CSV or JSON."""
    settings, config = _bootstrap(verbose)
    try:
        params = build_export_params(
            start,
            end,
            carrier=carrier or settings.carrier_default_token,
            status=status,
            page_size=page_size if page_size is not None else settings.page_size_default,
            page_size_max=config.page_size_max,
            max_pages=max_pages if max_pages is not None else settings.max_pages_default,
            chunk_days=chunk_days if chunk_days is not None else settings.chunk_days_default,
            max_concurrency=concurrency if concurrency is not None else settings.max_concurrency_default,
            fmt=fmt,
            debug=debug,
        )
        payload = asyncio.run(export_payload(params, config))
    except MastrFetchError as e:
        _fail(e)

    if out is None:
        typer.echo(payload.body)
    else:
        out.write_text(payload.body, encoding="utf-8")
    console.print(
        f"[green]✓[/green] {len(payload.run.rows)} rows, {payload.run.pages_fetched} pages "
        f"(carrier code {payload.run.carrier_code})"
    )


@app.command("unit")
def unit_cmd(
    mastr: str = typer.Argument(..., help="MaStR number, e.g. SEE984033548619."),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Print one unit's raw record as JSON."""
    _, config = _bootstrap(verbose)
    try:
        record = asyncio.run(fetch_unit_detail(mastr, config))
    except MastrFetchError as e:
        _fail(e)
    typer.echo(json.dumps(record, ensure_ascii=False, indent=2))


@app.command("carriers")
def carriers_cmd(verbose: bool = typer.Option(False, "--verbose", "-v")) -> None:
    """List Energieträger names and codes accepted by --carrier."""
    _, config = _bootstrap(verbose)
    try:
        options = asyncio.run(fetch_carrier_options(config))
    except MastrFetchError as e:
        _fail(e)

    table = Table(title="Energieträger")
    table.add_column("Code", style="cyan", justify="right")
    table.add_column("Name", style="magenta")
    for o in options:
        table.add_row(o.value, o.name)
    Console().print(table)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
