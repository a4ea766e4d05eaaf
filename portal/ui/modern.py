"""A Rich-powered console view of the portal store."""

from __future__ import annotations

from datetime import datetime
from typing import Dict, Optional

from rich import box
from rich.columns import Columns
from rich.console import Console, Group
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.text import Text

from ..services.store import DomainStore
from .overview import COLLECTION_LABELS, OverviewSnapshot, collect_overview


SEVERITY_STYLES: Dict[str, str] = {
    "low": "green",
    "medium": "yellow",
    "high": "red",
    "critical": "bold red",
}

REVIEW_STYLES: Dict[str, str] = {
    "pending": "yellow",
    "complete": "green",
    "failed": "red",
    "not requested": "dim",
}


def _format_timestamp(value: int) -> str:
    return datetime.fromtimestamp(value / 1000).strftime("%Y-%m-%d %H:%M")


class ModernUI:
    """Render a dashboard using Rich widgets."""

    def __init__(self, store: DomainStore, *, console: Optional[Console] = None) -> None:
        self._store = store
        self._console = console or Console()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def run(self) -> None:
        snapshot = collect_overview(self._store)
        console = self._console

        console.rule("[bold magenta]Campus Portal Overview")

        if snapshot.counts["users"] == 0:
            console.print(
                Panel(
                    "The store is empty.\n"
                    "Use [bold]python run.py init[/bold] to load the demo content.",
                    border_style="yellow",
                    box=box.ROUNDED,
                )
            )
            return

        console.print(
            Columns(
                [self._build_stats_panel(snapshot), self._build_alerts_panel(snapshot)],
                expand=True,
                equal=True,
            )
        )
        console.print(self._build_reviews_table(snapshot))
        console.print(self._build_audit_table(snapshot))

    # ------------------------------------------------------------------
    # Rendering helpers
    # ------------------------------------------------------------------
    def _build_stats_panel(self, snapshot: OverviewSnapshot) -> Panel:
        metrics = Table.grid(expand=True, padding=(0, 1))
        metrics.add_column(style="dim")
        metrics.add_column(justify="right", style="bold")
        for key, label in COLLECTION_LABELS.items():
            metrics.add_row(label, str(snapshot.counts.get(key, 0)))

        session = Table.grid(expand=True, padding=(0, 1))
        session.add_column(style="dim")
        session.add_column(justify="right", style="bold")
        session.add_row("Signed in", snapshot.session_user or "nobody")
        session.add_row("Pending registrations", str(snapshot.pending_registrations))
        session.add_row("Time slots", str(snapshot.time_slot_count))

        body = Group(metrics, Rule(style="magenta"), session)
        return Panel(body, title="At a glance", border_style="magenta", box=box.ROUNDED)

    @staticmethod
    def _build_alerts_panel(snapshot: OverviewSnapshot) -> Panel:
        if not snapshot.open_alerts:
            return Panel(
                Text("No open security alerts", style="green"),
                title="Security",
                border_style="green",
                box=box.ROUNDED,
            )
        lines = []
        for alert in snapshot.open_alerts:
            label = Text(f"[{alert.severity.upper()}] ", style=SEVERITY_STYLES[alert.severity])
            label.append(alert.title, style="bold")
            label.append(f"\n{alert.description}", style="dim")
            lines.append(label)
        return Panel(Group(*lines), title="Security", border_style="red", box=box.ROUNDED)

    @staticmethod
    def _build_reviews_table(snapshot: OverviewSnapshot) -> Table:
        table = Table(title="Course files", box=box.SIMPLE_HEAVY, expand=True)
        table.add_column("ID", style="cyan")
        table.add_column("Subject")
        table.add_column("Faculty")
        table.add_column("Status")
        table.add_column("AI review")
        for item in snapshot.reviews:
            table.add_row(
                item.course_file.id,
                item.course_file.subject,
                item.course_file.faculty_name,
                item.course_file.status.replace("_", " "),
                Text(item.review_status, style=REVIEW_STYLES.get(item.review_status, "")),
            )
        return table

    @staticmethod
    def _build_audit_table(snapshot: OverviewSnapshot) -> Table:
        table = Table(title="Recent activity", box=box.SIMPLE, expand=True)
        table.add_column("When", style="dim")
        table.add_column("Who")
        table.add_column("Action")
        table.add_column("Outcome")
        for entry in snapshot.recent_audit:
            table.add_row(
                _format_timestamp(entry.timestamp),
                entry.user_name,
                entry.action,
                entry.status,
            )
        return table


__all__ = ["ModernUI"]
