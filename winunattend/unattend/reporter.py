# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
"""
User-facing build output.

Two implementations of one interface, chosen by the caller:
- RichReporter: panels and tables on a Rich console
- BasicReporter: plain text lines on any stream
"""

from __future__ import annotations

import sys
from abc import ABC, abstractmethod
from typing import IO, TYPE_CHECKING, Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from ..core.utils import U
from .validator import ValidationResult, XmlValidator

if TYPE_CHECKING:
    from .builder import BuildResult


class Reporter(ABC):
    """Abstract base class for build reporters."""

    @abstractmethod
    def step(self, message: str) -> None:
        ...

    @abstractmethod
    def ok(self, message: str) -> None:
        ...

    @abstractmethod
    def warn(self, message: str) -> None:
        ...

    @abstractmethod
    def error(self, message: str) -> None:
        ...

    @abstractmethod
    def validation(self, result: ValidationResult) -> None:
        """Render a full validation report."""
        ...

    @abstractmethod
    def summary(self, result: "BuildResult") -> None:
        """Render the end-of-build summary."""
        ...


class RichReporter(Reporter):
    """Rich-based reporter with colored panels and tables."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console(stderr=False)

    def step(self, message: str) -> None:
        self.console.print(f"[bold cyan]➡️  {escape(message)}[/]")

    def ok(self, message: str) -> None:
        self.console.print(f"[bright_green]✅ {escape(message)}[/]")

    def warn(self, message: str) -> None:
        self.console.print(f"[yellow]⚠️  {escape(message)}[/]")

    def error(self, message: str) -> None:
        self.console.print(f"[bold red]💥 {escape(message)}[/]")

    def validation(self, result: ValidationResult) -> None:
        status = "[bold green]✅ VALID[/]" if result.is_valid else "[bold red]❌ INVALID[/]"
        table = Table(show_header=True, header_style="bold", expand=True)
        table.add_column("Kind", no_wrap=True)
        table.add_column("Message")
        for kind, style, items in (
            ("error", "red", result.errors),
            ("warning", "yellow", result.warnings),
            ("suggestion", "cyan", result.suggestions),
        ):
            for item in items:
                table.add_row(f"[{style}]{kind}[/]", escape(item))
        body = table if table.row_count else "No findings."
        self.console.print(Panel(body, title=f"XML Validation Report · {status}", border_style="blue"))

    def summary(self, result: "BuildResult") -> None:
        table = Table.grid(padding=(0, 2))
        table.add_column(style="bold")
        table.add_column()
        if result.success:
            table.add_row("Output", escape(str(result.output_path)))
            if result.is_valid is not None:
                table.add_row("Validation", "[green]PASSED[/]" if result.is_valid else "[red]FAILED[/]")
            table.add_row("Warnings", str(len(result.warnings)))
        else:
            table.add_row("Error", f"[red]{escape(str(result.error))}[/]")
        stats = result.build_stats
        if stats is not None:
            table.add_row("Passes processed", str(stats.passes_processed))
            table.add_row("File size", U.human_bytes(stats.file_size))
            table.add_row("Duration", f"{stats.duration * 1000:.2f} ms")
        self.console.print(
            Panel(table, title="Build Summary", border_style="green" if result.success else "red")
        )


class BasicReporter(Reporter):
    """Plain-text reporter (works on any stream, no terminal features)."""

    def __init__(self, stream: Optional[IO[str]] = None):
        self.stream = stream or sys.stdout

    def _write(self, line: str) -> None:
        self.stream.write(line + "\n")
        self.stream.flush()

    def step(self, message: str) -> None:
        self._write(f"-> {message}")

    def ok(self, message: str) -> None:
        self._write(f"OK {message}")

    def warn(self, message: str) -> None:
        self._write(f"WARNING {message}")

    def error(self, message: str) -> None:
        self._write(f"ERROR {message}")

    def validation(self, result: ValidationResult) -> None:
        self.stream.write(XmlValidator.generate_report(result))
        self.stream.flush()

    def summary(self, result: "BuildResult") -> None:
        self._write("")
        self._write("=== Build Summary ===")
        if result.success:
            self._write(f"Output file: {result.output_path}")
            if result.is_valid is not None:
                self._write(f"Validation: {'PASSED' if result.is_valid else 'FAILED'}")
        else:
            self._write(f"Build failed: {result.error}")
        stats = result.build_stats
        if stats is not None:
            self._write(f"Passes processed: {stats.passes_processed}")
            self._write(f"File size: {U.human_bytes(stats.file_size)}")
            self._write(f"Duration: {stats.duration * 1000:.2f}ms")
        self._write("=====================")


def make_reporter(kind: str = "rich", stream: Optional[IO[str]] = None) -> Reporter:
    if kind == "rich":
        return RichReporter(Console(file=stream) if stream is not None else None)
    if kind == "basic":
        return BasicReporter(stream)
    raise ValueError(f"unknown reporter kind: {kind!r} (expected 'rich' or 'basic')")
