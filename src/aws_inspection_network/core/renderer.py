"""Rich output for resolved topologies, diagnostics and plans."""

import json
from typing import Any, Optional

import yaml
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..models import Diagnostic


class DisplayRenderer:
    """Renders CLI output with one consistent style."""

    COLORS = {
        "active": "green",
        "blackhole": "red",
        "pending": "yellow",
        "error": "red",
        "warning": "yellow",
        "info": "dim",
    }

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def render(self, data: Any, fmt: str = "table") -> bool:
        """Render data as json or yaml.

        Returns:
            True if the data was rendered, False if the caller should draw a
            table instead.
        """
        if fmt == "json":
            self.console.print_json(json.dumps(data, default=str))
            return True
        if fmt == "yaml":
            self.console.print(yaml.safe_dump(data, sort_keys=False), markup=False)
            return True
        return False

    def table(
        self,
        data: list[dict],
        title: str,
        columns: list[dict],
        show_index: bool = True,
        hint: Optional[str] = None,
    ) -> None:
        """Render rows as a Rich table.

        Args:
            data: List of dicts to display
            title: Table title
            columns: List of {name, key, style?, width?, justify?}
            show_index: Whether to show row numbers
            hint: Optional hint text below the table
        """
        if not data:
            self.console.print(f"[yellow]No {title.lower()} found[/]")
            return

        table = Table(title=title, show_header=True, header_style="bold")
        if show_index:
            table.add_column("#", style="dim", justify="right", width=4)
        for col in columns:
            table.add_column(
                col["name"],
                style=col.get("style", ""),
                width=col.get("width"),
                justify=col.get("justify", "left"),
            )

        for i, row in enumerate(data, 1):
            values = [str(i)] if show_index else []
            for col in columns:
                val = row.get(col["key"])
                if val is None:
                    val = "-"
                elif isinstance(val, list):
                    val = ", ".join(str(v) for v in val)
                else:
                    val = str(val)
                if col["key"] in ("state", "severity"):
                    color = self.COLORS.get(val.lower(), "white")
                    val = f"[{color}]{val}[/]"
                values.append(val)
            table.add_row(*values)

        self.console.print(table)
        if hint:
            self.console.print(f"[dim]{hint}[/]")

    def detail(self, data: dict, title: str, fields: list[tuple[str, str]]) -> None:
        lines = []
        for label, key in fields:
            val = data.get(key, "-")
            if isinstance(val, list):
                val = ", ".join(str(v) for v in val)
            lines.append(f"[bold]{label}:[/] {val}")
        self.console.print(Panel("\n".join(lines), title=title))

    def routes(self, routes: list[dict], title: str) -> None:
        columns = [
            {"name": "Route Table", "key": "route_table"},
            {"name": "Prefix", "key": "prefix", "style": "cyan"},
            {"name": "Target", "key": "target"},
            {"name": "Type", "key": "type"},
            {"name": "State", "key": "state"},
        ]
        if any("score" in r for r in routes):
            columns.append({"name": "Score", "key": "score", "justify": "right"})
        self.table(routes, title, columns, show_index=False)

    def diagnostics(self, diagnostics: list[Diagnostic], title: str = "Diagnostics"):
        if not diagnostics:
            self.status("No validation findings")
            return
        columns = [
            {"name": "Severity", "key": "severity"},
            {"name": "Code", "key": "code", "style": "bold"},
            {"name": "Entity", "key": "entity_ref"},
            {"name": "Stage", "key": "stage", "style": "dim"},
            {"name": "Message", "key": "message"},
        ]
        self.table([d.model_dump() for d in diagnostics], title, columns)

    def outputs(self, outputs: dict) -> None:
        """Render resolution outputs: ids, then one row per spoke."""
        self.detail(
            outputs,
            "Inspection Hub",
            [
                ("Transit Gateway", "transit_gateway_id"),
                ("Hub Route Table", "hub_route_table_id"),
                ("Inspection Attachment", "inspection_attachment_id"),
                ("Firewall", "firewall_id"),
                ("Firewall Policy", "firewall_policy_id"),
            ],
        )
        rows = [{"name": name, **ids} for name, ids in outputs["spokes"].items()]
        self.table(
            rows,
            "Spokes",
            [
                {"name": "Spoke", "key": "name", "style": "cyan"},
                {"name": "Attachment", "key": "attachment_id"},
                {"name": "Route Table", "key": "route_table_id"},
            ],
        )

    def plan(self, resources: list[dict], title: str = "Resource Plan") -> None:
        columns = [
            {"name": "Address", "key": "address", "style": "cyan"},
            {"name": "ID", "key": "id", "style": "dim"},
            {"name": "Depends On", "key": "depends_on"},
        ]
        self.table(resources, title, columns)

    def status(self, message: str, style: str = "green") -> None:
        self.console.print(f"[{style}]{message}[/]")

    def error(self, message: str) -> None:
        self.console.print(f"[red]{message}[/]")

    def warning(self, message: str) -> None:
        self.console.print(f"[yellow]{message}[/]")

    def info(self, message: str) -> None:
        self.console.print(f"[dim]{message}[/]")
