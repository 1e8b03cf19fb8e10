"""Search service layer for SearchHelper.

Provides the search orchestrator and factory functions wiring it to the
configured transport.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from SearchHelper.services.helper import ResultEvent, SearchClient, SearchHelper

if TYPE_CHECKING:
    from SearchHelper.config import AppConfig
    from SearchHelper.sources.http.client import HttpSearchClient


def create_search_client(config: AppConfig) -> HttpSearchClient:
    """Create the HTTP transport from ``client`` config.

    Raises:
        ValueError: If no endpoint is configured or found in the environment.
    """
    from SearchHelper.sources.http.client import HttpSearchClient

    endpoint = config.client.endpoint
    if not endpoint:
        hint = f" (set {config.client.endpoint_env})" if config.client.endpoint_env else ""
        raise ValueError(f"Missing search endpoint: client.endpoint{hint}")
    return HttpSearchClient(endpoint, timeout=config.client.timeout)


def create_search_helper(
    config: AppConfig,
    client: SearchClient | None = None,
    query: str | None = None,
) -> SearchHelper:
    """Create a helper holding the initial state declared in config.

    Args:
        config: Application configuration.
        client: Transport to use; built from config when omitted.
        query: Overrides ``helper.query``.
    """
    from SearchHelper.config import build_initial_state

    if client is None:
        client = create_search_client(config)
    return SearchHelper(client, config.client.index, build_initial_state(config.helper, query))


__all__ = [
    "ResultEvent",
    "SearchClient",
    "SearchHelper",
    "create_search_client",
    "create_search_helper",
]
