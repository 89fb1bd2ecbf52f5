"""
Rendering functions for zgraph output.

This module handles all pretty-printing and table formatting.
Core functions return data, this module makes it human-readable.
"""

from rich.table import Table
from rich.console import Console
from rich import box
from typing import List, Optional, Sequence

from .domain.diagnostic import Diagnostic, Severity
from .resolver import ResolvedGraph

console = Console()


def render_table(headers: List[str], rows: List[List[str]], title: Optional[str] = None) -> None:
    """
    Render a generic table with the given headers and rows.

    Args:
        headers: List of column headers
        rows: List of rows, where each row is a list of values
        title: Optional table title
    """
    if not rows:
        console.print("[yellow]No data to display.[/yellow]")
        return

    table = Table(
        title=title,
        box=box.ROUNDED,
        show_header=True,
        header_style="bold magenta"
    )

    for header in headers:
        table.add_column(header)

    for row in rows:
        table.add_row(*[str(val) for val in row])

    console.print(table)


def render_diagnostics(diagnostics: Sequence[Diagnostic]) -> None:
    """Render diagnostics as a table, errors in red and warnings in yellow."""
    if not diagnostics:
        console.print("[green]No problems found.[/green]")
        return

    table = Table(
        title=f"{len(diagnostics)} problem(s)",
        box=box.ROUNDED,
        show_header=True,
        header_style="bold magenta"
    )
    table.add_column("Kind")
    table.add_column("Target")
    table.add_column("Dependency")
    table.add_column("Reason")

    for diagnostic in diagnostics:
        style = "red" if diagnostic.severity is Severity.ERROR else "yellow"
        table.add_row(
            f"[{style}]{diagnostic.kind.value}[/{style}]",
            diagnostic.subject,
            diagnostic.dependency or "",
            diagnostic.reason,
        )

    console.print(table)


def render_graph(graph: ResolvedGraph) -> None:
    """Render a resolved graph in topological order."""
    rows = []
    for position, target in enumerate(graph.resolved_targets(), 1):
        identifier = target.identifier
        rows.append([
            position,
            identifier.format(),
            str(target.visibility),
            "\n".join(d.format() for d in graph.dependencies_of(identifier)),
            "\n".join(sorted(r.format() for r in graph.reexport_set_of(identifier))),
        ])
    render_table(
        ["#", "Target", "Visibility", "Dependencies", "Re-exports"],
        rows,
        title=f"{len(graph)} resolved target(s)",
    )
