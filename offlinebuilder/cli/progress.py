"""Console rendering of build and scan results using rich."""

from typing import Iterable, Optional

from rich.console import Console
from rich.table import Table

from offlinebuilder.model import FetchStatus, Manifest, ManifestEntry


class SummaryDisplay:
    """Status lines, key/value summaries and result tables."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def status(self, message: str):
        self.console.print(f"[dim]→[/dim] {message}")

    def success(self, message: str):
        self.console.print(f"[green]{message}[/green]")

    def warning(self, message: str):
        self.console.print(f"[yellow]{message}[/yellow]")

    def error(self, message: str):
        self.console.print(f"[red]{message}[/red]")

    def section(self, title: str):
        self.console.print()
        self.console.rule(f"[bold cyan]{title}[/bold cyan]")

    def summary(self, data: dict):
        table = Table(show_header=False, box=None, padding=(0, 2))
        table.add_column(style="dim")
        table.add_column()
        for key, value in data.items():
            table.add_row(f"{key}:", str(value))
        self.console.print(table)

    def manifest_summary(self, manifest: Manifest):
        s = manifest.summary
        self.summary(
            {
                "Artifacts": s.total_artifacts,
                "With tools": s.artifacts_with_tools,
                "Without tools": s.artifacts_without_tools,
                "Invalid artifacts": s.invalid_artifacts,
                "Unique tools": s.total_tools,
                "Fetched": s.verified_tools,
                "Failed": s.failed_tools,
                "Not fetched": s.pending_tools,
                "Unreadable files": len(s.skipped_files),
            }
        )

    def failed_tools(self, manifest: Manifest):
        failed = [t for t in manifest.tools if t.status == FetchStatus.failed]
        if not failed:
            return
        table = Table(title="Failed tools", title_justify="left")
        table.add_column("File")
        table.add_column("Needed by")
        table.add_column("Reason", style="red")
        for tool in failed:
            table.add_row(
                tool.file_name, ", ".join(tool.referencing_artifacts), tool.error or ""
            )
        self.console.print(table)

    def artifact_scores(self, entries: Iterable[ManifestEntry]):
        table = Table(title="Artifacts", title_justify="left")
        table.add_column("Score", justify="right")
        table.add_column("Artifact")
        table.add_column("Platform")
        table.add_column("Tools", justify="right")
        table.add_column("Findings")
        for entry in entries:
            score_style = "green" if entry.is_valid else "red"
            findings = "; ".join([*entry.errors, *entry.warnings])
            table.add_row(
                f"[{score_style}]{entry.validation_score}[/{score_style}]",
                entry.name or f"<unnamed: {entry.source_file}>",
                entry.platform,
                str(entry.tool_count),
                findings,
            )
        self.console.print(table)
