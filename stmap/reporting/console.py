# stmap/reporting/console.py
"""
Console reporting functions for inspection results.
"""
from __future__ import annotations

from collections import defaultdict
from typing import List

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from stmap.analysis.base import Finding, InspectionReport

console = Console()

STATUS = {True: "[green]PASS[/green]", False: "[bold red]FAIL[/bold red]"}


def render_summary(rep: InspectionReport) -> None:
    """Render a high-level summary table."""
    t = Table(title="SafeTensors Summary", box=box.SIMPLE_HEAVY)
    t.add_column("Field", style="bold")
    t.add_column("Value")
    t.add_row("Path", escape(rep.file_path))
    t.add_row("Size (bytes)", str(rep.file_size))
    t.add_row("Format", rep.format)
    t.add_row("SHA-256", rep.sha256_hex)
    for k, v in rep.metadata.items():
        t.add_row(k, str(v))
    console.print(t)


def _render_tensor_table(title: str, findings: List[Finding]) -> None:
    """Tensor extents in header order, with size consistency."""
    table = Table(title=title, box=box.ROUNDED, show_lines=False, title_style="bold magenta")
    table.add_column("Status", justify="center", width=8)
    table.add_column("Index", justify="right", style="dim")
    table.add_column("Tensor Name", style="cyan", no_wrap=True)
    table.add_column("Start Address", justify="right", style="white")
    table.add_column("End Address", justify="right", style="white")
    table.add_column("On-Disk Size", justify="right", style="white")
    table.add_column("Expected Size", justify="right", style="white")
    table.add_column("Type", justify="left", style="yellow")
    table.add_column("Dimensions", justify="left", style="green")

    for index, f in enumerate(findings, start=1):
        ctx = f.context
        on_disk = str(ctx.get("on_disk", "N/A"))
        expected = str(ctx.get("expected", "N/A"))
        if not f.ok:
            on_disk = f"[red]{on_disk}[/red]"
            expected = f"[yellow]{expected}[/yellow]"
        table.add_row(
            STATUS[f.ok],
            str(index),
            escape(f.name.split(":", 1)[1]),
            str(ctx.get("start", "N/A")),
            str(ctx.get("end", "N/A")),
            on_disk,
            expected,
            ctx.get("type", "N/A"),
            ctx.get("dims", "N/A"),
        )

    console.print(table)


def _render_metadata_table(rep: InspectionReport) -> None:
    if not rep.metadata_entries:
        return
    table = Table(title="Metadata (__metadata__)", box=box.ROUNDED, title_style="bold magenta")
    table.add_column("Key", style="cyan")
    table.add_column("Value", style="white")
    for entry in rep.metadata_entries:
        value = entry["value"]
        # Keep the table readable
        if len(value) > 70:
            value = value[:67] + "..."
        table.add_row(escape(entry["name"]), escape(value))
    console.print(table)


def _render_generic_table(title: str, findings: List[Finding]) -> None:
    table = Table(title=title, box=box.ROUNDED, show_lines=False, title_style="bold magenta")
    table.add_column("Status", justify="center", width=8)
    table.add_column("Check", style="cyan", no_wrap=True)
    table.add_column("Details", style="white")

    for f in sorted(findings, key=lambda x: x.name):
        check_name = f.name.split(":", 1)[-1].replace("_", " ").title()
        table.add_row(STATUS[f.ok], check_name, escape(f.details))

    console.print(table)


def render_findings(rep: InspectionReport) -> None:
    """Render findings grouped by the prefix of their name."""
    if not rep.findings:
        return

    groups = defaultdict(list)
    for f in rep.findings:
        groups[f.name.split(":", 1)[0] if ":" in f.name else "general"].append(f)

    for group_name in ("general", "structural_integrity"):
        if group_name in groups:
            title = group_name.replace("_", " ").title() + " Checks"
            _render_generic_table(title, groups[group_name])
    if "tensor_bounds" in groups:
        _render_tensor_table("Tensor Layout & Size Checks", groups["tensor_bounds"])


def render_reason_matrix(rep: InspectionReport) -> None:
    """Render why the file could not be opened, if it could not."""
    if not rep.reason_matrix:
        return
    rt = Table(title="Open Failures", box=box.SIMPLE_HEAVY, show_lines=False)
    rt.add_column("Error", style="bold")
    rt.add_column("Reason")
    for entry in rep.reason_matrix:
        rt.add_row(entry.target, escape(entry.reason))
    console.print(rt)


def render_report(rep: InspectionReport) -> None:
    """Render the full console report."""
    render_summary(rep)
    render_findings(rep)
    _render_metadata_table(rep)
    render_reason_matrix(rep)
