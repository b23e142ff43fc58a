"""Command-line interface for registry exports."""


def main() -> None:
    """CLI entrypoint for the mastrfetch console script."""
    from mastrfetch.cli.app import app

    app()
