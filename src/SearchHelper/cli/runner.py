"""Command runner for coordinating CLI execution.

Manages component lifecycle, resource cleanup, logging configuration,
and error handling for command execution.
"""

from __future__ import annotations

from typing import Sequence

import click

from SearchHelper.cli.commands import SearchCommand
from SearchHelper.config import AppConfig
from SearchHelper.renderers import create_output_writer
from SearchHelper.services import create_search_client, create_search_helper
from SearchHelper.utils.log import configure_logging, log


class CommandRunner:
    """Orchestrates command execution with proper resource management."""

    def __init__(self, config: AppConfig) -> None:
        """Initialize command runner.

        Args:
            config: Application configuration.
        """
        self.config = config

    def run_search(
        self,
        action: str,
        *,
        query: str | None = None,
        refinements: Sequence[str] = (),
        excludes: Sequence[str] = (),
        numeric: Sequence[str] = (),
        tags: Sequence[str] = (),
        page: int = 0,
    ) -> None:
        """Execute the search command and close the transport afterwards.

        Args:
            action: The CLI command name (e.g., 'search').
            query: Query text; ``helper.query`` from config when omitted.
            refinements: ``ATTR:VALUE`` refinements toggled on the state.
            excludes: ``ATTR:VALUE`` exclusions.
            numeric: ``ATTR OP VALUE`` numeric filters.
            tags: Tag refinements.
            page: Zero-based page.

        Raises:
            click.Abort: When the search fails.
        """
        configure_logging(
            level=self.config.runtime.level,
            action=action,
            log_to_file=self.config.runtime.to_file,
            log_dir=self.config.runtime.dir,
            http_debug=self.config.runtime.http_debug,
        )
        try:
            output_writer = create_output_writer(self.config)
            with create_search_client(self.config) as client:
                helper = create_search_helper(self.config, client=client, query=query)
                command = SearchCommand(
                    config=self.config,
                    helper=helper,
                    output_writer=output_writer,
                    refinements=refinements,
                    excludes=excludes,
                    numeric=numeric,
                    tags=tags,
                    page=page,
                )
                command.execute()
            output_writer.finalize(action)
        except Exception as e:  # noqa: BLE001 - cli boundary
            log.error("Search failed: %s", e)
            raise click.Abort from e
