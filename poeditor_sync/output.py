"""User-facing output formatting for the CLI."""

import json
from typing import Any

import click

from .utils import SECTION_SEPARATOR_LENGTH, format_size


class OutputFormatter:
    """Formats messages for the terminal or as JSON.

    In quiet mode only warnings, errors and JSON output are shown. In JSON
    mode human-readable messages go to stderr so stdout stays parseable.
    """

    def __init__(self, json_output: bool = False, quiet: bool = False):
        """Initialize output formatter.

        Args:
            json_output: Emit results as JSON
            quiet: Suppress non-essential output
        """
        self.json_output = json_output
        self.quiet = quiet

    @property
    def _human_to_stderr(self) -> bool:
        return self.json_output

    def print(self, message: str = "") -> None:
        if self.quiet:
            return
        click.echo(message, err=self._human_to_stderr)

    def info(self, message: str) -> None:
        if self.quiet:
            return
        click.echo(message, err=self._human_to_stderr)

    def success(self, message: str) -> None:
        if self.quiet:
            return
        click.secho(f"✅ {message}", fg="green", err=self._human_to_stderr)

    def warning(self, message: str) -> None:
        click.secho(f"⚠️  {message}", fg="yellow", err=True)

    def error(self, message: str) -> None:
        click.secho(f"❌ {message}", fg="red", err=True)

    def progress_message(self, message: str) -> None:
        if self.quiet:
            return
        click.echo(f"⏳ {message}", err=self._human_to_stderr)

    def section(self, title: str, separator: str = "=") -> None:
        """Print a section header framed by separator lines."""
        if self.quiet:
            return
        line = separator * SECTION_SEPARATOR_LENGTH
        self.print("")
        self.print(line)
        self.print(title)
        self.print(line)

    def print_summary(self, title: str, items: list[tuple[str, str]]) -> None:
        """Print a titled list of label/value pairs."""
        if self.quiet:
            return
        self.section(title)
        width = max((len(label) for label, _ in items), default=0)
        for label, value in items:
            self.print(f"  {label + ':':<{width + 1}} {value}")

    def output_json(self, data: Any) -> None:
        click.echo(json.dumps(data, indent=2))

    @staticmethod
    def format_size(size_bytes: int) -> str:
        return format_size(size_bytes)
