# stmap/cli.py
"""
cli.py

Rich console CLI:
- scan:    open a .safetensors file, print summary, tensors, metadata and
           any open failure.
- version: show the package version.
"""
from __future__ import annotations

import argparse
import os
from typing import Optional

from rich.console import Console
from rich.panel import Panel

from stmap import __version__
from stmap.analysis.inspector import AVAILABLE_STAGES, Inspector
from stmap.logging import configure_logging
from stmap.reporting import console as console_reporter
from stmap.reporting.json_reporter import write_json

console = Console()


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="stmap",
        description="Zero-copy SafeTensors header inspection.",
        formatter_class=argparse.RawTextHelpFormatter,
    )
    sub = p.add_subparsers(dest="cmd", title="Available Commands", metavar="<command>")

    sp_scan = sub.add_parser("scan", help="Scan a local .safetensors file")
    sp_scan.add_argument("path", help="Path to model file (.safetensors)")
    sp_scan.add_argument("--debug", action="store_true", help="Enable debug logging")
    sp_scan.add_argument(
        "--json-out", type=str, default=None, help="Write JSON report to this path"
    )
    sp_scan.add_argument(
        "--stage",
        nargs="+",
        choices=AVAILABLE_STAGES,
        metavar="STAGE",
        help=(
            f"Run only specific inspection stages. Defaults to all stages if not provided.\n"
            f"Available stages: {', '.join(AVAILABLE_STAGES)}.\n"
            f"Can be combined, e.g., --stage sha256 structure"
        ),
    )

    sub.add_parser("version", help="Show the version of stmap")

    return p


def main(argv: Optional[list[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not args.cmd:
        parser.print_help()
        return 0

    if args.cmd == "version":
        console.print(f"stmap version {__version__}")
        return 0

    if args.cmd == "scan":
        configure_logging(debug=args.debug)
        path = args.path
        if not os.path.isfile(path):
            console.print(f"[red]File not found:[/red] {path}")
            return 2

        stages_to_run = args.stage or AVAILABLE_STAGES
        console.print(f"[dim]Running stages: {', '.join(stages_to_run)}...[/dim]")

        rep = Inspector(path).run(stages=stages_to_run)

        console.print(
            Panel(
                f"[bold]Result:[/bold] {'[green]OK[/green]' if rep.ok else '[red]FAILED[/red]'}",
                style="bold cyan",
            )
        )
        console_reporter.render_report(rep)

        if args.json_out:
            write_json(rep, args.json_out)
            console.print(f"[dim]Wrote JSON report → {args.json_out}[/dim]")

        return 0 if rep.ok else 1

    parser.print_help()
    return 1
