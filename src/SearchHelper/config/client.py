"""Search service connection configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Mapping

from SearchHelper.config.common import (
    expect_float,
    expect_optional_str,
    expect_str,
    get_required_value,
    get_section,
)

_DEFAULT_TIMEOUT = 10.0


@dataclass(frozen=True, slots=True)
class ClientConfig:
    """Where and how requests are sent.

    Attributes:
        endpoint: Multi-query endpoint URL, resolved from ``endpoint_env``
            when only the environment variable name is configured.
        endpoint_env: Environment variable holding the endpoint.
        index: Index name queried.
        timeout: Request timeout in seconds.
    """

    endpoint: str | None
    endpoint_env: str | None
    index: str
    timeout: float


def load_client(raw: Mapping[str, Any]) -> ClientConfig:
    """Load the ``client`` section.

    Raises:
        TypeError: If config types are invalid.
        ValueError: If required keys are missing.
    """
    section = get_section(raw, "client", required=True)
    endpoint = expect_optional_str(section.get("endpoint"), "client.endpoint")
    endpoint_env = expect_optional_str(section.get("endpoint_env"), "client.endpoint_env")
    if endpoint is None and endpoint_env:
        endpoint = os.getenv(endpoint_env) or None
    return ClientConfig(
        endpoint=endpoint,
        endpoint_env=endpoint_env,
        index=expect_str(get_required_value(section, "index", "client.index"), "client.index").strip(),
        timeout=expect_float(section.get("timeout", _DEFAULT_TIMEOUT), "client.timeout"),
    )


def check_client(config: ClientConfig) -> None:
    """Validate client constraints.

    The endpoint itself is only required when a search is sent, so that
    configs can be validated without the environment.

    Raises:
        ValueError: If values violate client constraints.
    """
    if not config.index:
        raise ValueError("client.index must not be empty")
    if config.timeout <= 0:
        raise ValueError("client.timeout must be positive")
