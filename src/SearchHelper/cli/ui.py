"""Click CLI interface definitions.

Defines the command-line interface structure and routes commands
to their respective runners.
"""

from __future__ import annotations

from pathlib import Path

import click
from dotenv import load_dotenv

from SearchHelper.cli.runner import CommandRunner
from SearchHelper.config import load_config_with_defaults

DEFAULT_CONFIG = Path("config/default.yml")


@click.group(help="SearchHelper: faceted search against a remote index.")
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path, dir_okay=False),
    default=DEFAULT_CONFIG,
    show_default=True,
    help="Path to YAML config file, merged over the defaults.",
)
@click.pass_context
def cli(ctx: click.Context, config_path: Path) -> None:
    """CLI entry group.

    Loads environment variables from .env file before processing config.
    """
    load_dotenv()
    ctx.obj = load_config_with_defaults(config_path, default_path=DEFAULT_CONFIG)


@cli.command("search")
@click.argument("query", required=False)
@click.option("--refine", "refinements", multiple=True, metavar="ATTR:VALUE", help="Toggle a facet refinement.")
@click.option("--exclude", "excludes", multiple=True, metavar="ATTR:VALUE", help="Exclude a facet value.")
@click.option("--numeric", multiple=True, metavar="'ATTR OP VALUE'", help="Numeric filter such as 'price>=10'.")
@click.option("--tag", "tags", multiple=True, help="Tag refinement.")
@click.option("--page", type=click.IntRange(min=0), default=0, show_default=True, help="Zero-based page.")
@click.pass_context
def search_cmd(
    ctx: click.Context,
    query: str | None,
    refinements: tuple[str, ...],
    excludes: tuple[str, ...],
    numeric: tuple[str, ...],
    tags: tuple[str, ...],
    page: int,
) -> None:
    """Run QUERY and print hits and facet counts.

    Raises:
        click.Abort: When the search fails.
    """
    runner = CommandRunner(ctx.obj)
    runner.run_search(
        action=ctx.command.name,
        query=query,
        refinements=refinements,
        excludes=excludes,
        numeric=numeric,
        tags=tags,
        page=page,
    )
