"""CLI package for SearchHelper command orchestration."""

from __future__ import annotations

__all__ = ["CommandRunner", "main"]

from SearchHelper.cli.runner import CommandRunner
from SearchHelper.cli.ui import cli


def main() -> None:
    """Run SearchHelper CLI.

    Entry point referenced by console script in pyproject.toml.
    """
    cli()
