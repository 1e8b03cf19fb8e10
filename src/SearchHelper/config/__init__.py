"""Public configuration API for SearchHelper."""

from __future__ import annotations

from SearchHelper.config.app import (
    AppConfig,
    check_cross_domain,
    load_config,
    load_config_with_defaults,
    parse_config_dict,
)
from SearchHelper.config.client import ClientConfig
from SearchHelper.config.helper import HelperConfig, build_initial_state
from SearchHelper.config.output import OutputConfig
from SearchHelper.config.runtime import RuntimeConfig

__all__ = [
    "RuntimeConfig",
    "ClientConfig",
    "HelperConfig",
    "OutputConfig",
    "AppConfig",
    "build_initial_state",
    "load_config",
    "load_config_with_defaults",
    "parse_config_dict",
    "check_cross_domain",
]
