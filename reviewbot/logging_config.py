"""Logging setup for the command line."""

import logging

from rich.logging import RichHandler

from reviewbot.console import console


def configure_logging(level: str = "WARNING", verbose: bool = False) -> None:
    """Route log records through rich; --verbose switches to DEBUG."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, level.upper(), logging.WARNING),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=verbose, show_path=verbose)],
        force=True,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING if not verbose else logging.DEBUG)
