"""Plain-text overview for terminals without Rich styling."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List

from ..services.store import DomainStore
from .overview import COLLECTION_LABELS, OverviewSnapshot, collect_overview


@dataclass
class ConsoleSection:
    title: str
    entries: Iterable[str]


class ConsoleUI:
    """Minimal console UI that surfaces the stored state."""

    def __init__(self, store: DomainStore) -> None:
        self._store = store

    def run(self) -> None:
        print("Campus Portal – Console Overview")
        print("=" * 40)
        for section in self._build_sections(collect_overview(self._store)):
            print(section.title)
            print("-" * len(section.title))
            has_entries = False
            for entry in section.entries:
                has_entries = True
                print(entry)
            if not has_entries:
                print("(empty)")
            print()

    def _build_sections(self, snapshot: OverviewSnapshot) -> List[ConsoleSection]:
        return [
            ConsoleSection(
                title="Collections",
                entries=[
                    f"  {label.split(' ', 1)[-1]}: {snapshot.counts.get(key, 0)}"
                    for key, label in COLLECTION_LABELS.items()
                ],
            ),
            ConsoleSection(
                title="Open alerts",
                entries=[
                    f"  [{alert.severity}] {alert.title}" for alert in snapshot.open_alerts
                ],
            ),
            ConsoleSection(
                title="Course files",
                entries=[
                    f"  {item.course_file.id}: {item.course_file.subject} (review: {item.review_status})"
                    for item in snapshot.reviews
                ],
            ),
        ]


__all__ = ["ConsoleUI"]
