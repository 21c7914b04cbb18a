"""Terminal renderer for run results."""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from integration_audit.models.common import Severity
from integration_audit.models.result import CheckExecution, CheckStatus, RunAllResult
from integration_audit.renderers.base import BaseRenderer, OutputFormat, RenderContext

SEVERITY_STYLES = {
    Severity.INFO: "blue",
    Severity.LOW: "cyan",
    Severity.MEDIUM: "yellow",
    Severity.HIGH: "red",
    Severity.CRITICAL: "bold red",
}

STATUS_LABELS = {
    CheckStatus.SUCCESS: "[bold green]PASSED[/bold green]",
    CheckStatus.FAILED: "[bold red]FAILED[/bold red]",
    CheckStatus.ERROR: "[bold magenta]ERROR[/bold magenta]",
}


class TerminalRenderer(BaseRenderer):
    """Renderer for rich terminal output.

    ``render`` prints to the console and returns an empty string; use
    ``render_to_file`` or ``Console(record=True)`` to capture it.
    """

    def __init__(self, console: Console | None = None) -> None:
        self._console = console or Console()

    @property
    def format(self) -> OutputFormat:
        return OutputFormat.TERMINAL

    def render(self, data: Any, context: RenderContext) -> str:
        if isinstance(data, RunAllResult):
            self._render_run(data, context)
        elif isinstance(data, CheckExecution):
            self._render_execution(data, context)
        else:
            self._render_generic(data)
        return ""

    def render_to_file(self, data: Any, context: RenderContext) -> None:
        if context.output_path is None:
            raise ValueError("output_path must be set in context for file rendering")

        file_console = Console(record=True, force_terminal=context.color, width=120)
        original_console = self._console
        self._console = file_console
        try:
            self.render(data, context)
            context.output_path.write_text(file_console.export_text(styles=context.color))
        finally:
            self._console = original_console

    def _render_run(self, result: RunAllResult, context: RenderContext) -> None:
        self._console.print()
        overall = "[bold green]PASSED[/bold green]" if result.success else "[bold red]FAILED[/bold red]"
        connection = result.connection_id or "-"
        self._console.print(
            Panel(
                f"[bold]Provider:[/bold] {result.manifest_id}\n"
                f"[bold]Connection:[/bold] {connection}\n"
                f"[bold]Status:[/bold] {overall}",
                title="Integration Audit",
            )
        )

        table = Table(title="Checks")
        table.add_column("Check", style="bold")
        table.add_column("Status")
        table.add_column("Passed", justify="right")
        table.add_column("Findings", justify="right")
        table.add_column("Duration", justify="right", style="dim")
        for execution in result.results:
            summary = execution.result.summary
            table.add_row(
                execution.check_name,
                STATUS_LABELS[execution.status],
                f"[green]{summary.passed}[/green]",
                f"[red]{summary.failed}[/red]" if summary.failed else "0",
                f"{execution.duration_ms}ms",
            )
        self._console.print()
        self._console.print(table)

        for execution in result.results:
            if execution.result.findings or execution.error or context.verbose:
                self._render_execution(execution, context)

        self._console.print()
        self._console.print(
            f"[bold]Total:[/bold] {result.total_findings} findings, "
            f"{result.total_passing} passing, {len(result.errored)} errors"
        )

    def _render_execution(self, execution: CheckExecution, context: RenderContext) -> None:
        self._console.print()
        self._console.print(f"{STATUS_LABELS[execution.status]} [bold]{execution.check_name}[/bold] ({execution.check_id})")

        if execution.error is not None:
            self._console.print(f"  [magenta]{execution.error.code}[/magenta] {execution.error.message}")

        if execution.result.findings:
            table = Table(show_header=True, box=None, padding=(0, 2))
            table.add_column("Severity")
            table.add_column("Resource")
            table.add_column("Finding")
            table.add_column("Remediation", style="dim")
            for finding in execution.result.findings:
                style = SEVERITY_STYLES.get(finding.severity, "white")
                table.add_row(
                    f"[{style}]{finding.severity.value.upper()}[/{style}]",
                    f"{finding.resource_type}/{finding.resource_id}",
                    finding.title,
                    finding.remediation,
                )
            self._console.print(table)

        if context.verbose:
            for passing in execution.result.passing_results:
                self._console.print(
                    f"  [green]✓[/green] {passing.title} "
                    f"[dim]{passing.resource_type}/{passing.resource_id}[/dim]"
                )
            for log in execution.result.logs:
                style = {"info": "dim", "warn": "yellow", "error": "red"}[log.level]
                self._console.print(f"  [{style}]{log.level.upper():5} {log.message}[/{style}]")

    def _render_generic(self, data: Any) -> None:
        if isinstance(data, BaseModel):
            data = data.model_dump(mode="json")
        elif not isinstance(data, (dict, list)):
            self._console.print(str(data))
            return
        self._console.print(json.dumps(data, indent=2, default=str))
