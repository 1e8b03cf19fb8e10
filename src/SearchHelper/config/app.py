"""Application config orchestration and YAML loading entrypoints."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import yaml

from SearchHelper.config.client import ClientConfig, check_client, load_client
from SearchHelper.config.helper import HelperConfig, check_helper, load_helper
from SearchHelper.config.output import OutputConfig, check_output, load_output
from SearchHelper.config.runtime import RuntimeConfig, check_runtime, load_runtime


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Application root configuration."""

    runtime: RuntimeConfig
    client: ClientConfig
    helper: HelperConfig
    output: OutputConfig


def parse_config_dict(raw: Mapping[str, Any]) -> AppConfig:
    """Parse normalized mapping into AppConfig."""
    runtime = load_runtime(raw)
    client = load_client(raw)
    helper = load_helper(raw)
    output = load_output(raw)

    check_runtime(runtime)
    check_client(client)
    check_helper(helper)
    check_output(output)

    config = AppConfig(runtime=runtime, client=client, helper=helper, output=output)
    check_cross_domain(config)
    return config


def load_config(path: Path) -> AppConfig:
    """Load YAML config file without default merge."""
    return load_config_with_defaults(path, default_path=path)


def load_config_with_defaults(
    config_path: Path, default_path: Path = Path("config/default.yml")
) -> AppConfig:
    """Load ``config_path`` merged over the defaults file.

    A missing defaults file is tolerated when ``config_path`` is another
    file, which then has to be complete on its own.
    """
    if config_path == default_path:
        return parse_config_dict(parse_yaml(default_path.read_text(encoding="utf-8")))
    base = parse_yaml(default_path.read_text(encoding="utf-8")) if default_path.is_file() else {}
    override = parse_yaml(config_path.read_text(encoding="utf-8"))
    return parse_config_dict(merge_config_dicts(base, override))


def check_cross_domain(config: AppConfig) -> None:
    """Validate cross-domain constraints."""
    hierarchical_attributes = {
        attribute for facet in config.helper.hierarchical_facets for attribute in facet.attributes
    }
    clash = hierarchical_attributes & set(config.helper.facets)
    if clash:
        raise ValueError(f"hierarchical attributes cannot also be conjunctive facets: {sorted(clash)}")


def parse_yaml(text: str) -> dict[str, Any]:
    """Parse raw YAML text into a mapping."""
    data = yaml.safe_load(text) or {}
    if not isinstance(data, Mapping):
        raise ValueError("Config root must be a mapping/object")
    return dict(data)


def merge_config_dicts(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Deep-merge two config mappings; lists in ``override`` replace lists in ``base``."""
    merged: dict[str, Any] = dict(base)
    for key, value in override.items():
        if key in merged and isinstance(merged[key], Mapping) and isinstance(value, Mapping):
            merged[key] = merge_config_dicts(merged[key], value)
        else:
            merged[key] = value
    return merged
