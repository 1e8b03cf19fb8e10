"""Output renderers for command results.

Exports the OutputWriter base class and a factory that instantiates
writers from configuration.
"""

from __future__ import annotations

from SearchHelper.config import AppConfig
from SearchHelper.renderers.base import MultiOutputWriter, OutputWriter
from SearchHelper.renderers.console import ConsoleOutputWriter, render_text
from SearchHelper.renderers.json import JsonFileWriter, render_json


def create_output_writer(config: AppConfig) -> OutputWriter:
    """Create output writer based on config.

    Args:
        config: Application configuration.

    Returns:
        A MultiOutputWriter over the configured formats.
    """
    writers: list[OutputWriter] = []
    if "console" in config.output.formats:
        writers.append(ConsoleOutputWriter())
    if "json" in config.output.formats:
        writers.append(JsonFileWriter(config.output.base_dir))

    if not writers:
        raise ValueError("No output writers configured")
    return MultiOutputWriter(writers)


__all__ = [
    "OutputWriter",
    "ConsoleOutputWriter",
    "JsonFileWriter",
    "MultiOutputWriter",
    "render_json",
    "render_text",
    "create_output_writer",
]
