"""
Progress bars for the long-running CLI commands, drawn with Rich.

Every bar counts per-item outcomes and shows them next to the bar:

    Importing       ✓ 120  ✗ 3  ⊘ 5        ━━━━━━━━━━━━━━━━━  64%
    Converting      ✓ 12  ✗ 1              ━━━━━━━━━━━━━━━━━  48%

Usage:
    from bardic_forge.core.progress import ImportProgressBar

    with ImportProgressBar(total=len(files)) as progress:
        for path in files:
            ...
            progress.update(success=True)
"""

from dataclasses import dataclass
from typing import Optional, Sequence

from rich import get_console
from rich.progress import BarColumn, Progress, TaskID, TextColumn
from rich.table import Column
from rich.theme import Theme


PROGRESS_THEME = Theme({
    "bar.back": "grey23",
    "bar.complete": "rgb(196,140,52)",  # Brass
    "bar.finished": "rgb(114,156,31)",
    "bar.pulse": "rgb(196,140,52)",
    "progress.percentage": "white",
})

DESCRIPTION_WIDTH = 15
STATUS_WIDTH = 35


@dataclass(frozen=True)
class Outcome:
    """A counted result kind: its key, the symbol shown and a Rich color."""
    key: str
    symbol: str
    color: str
    always_shown: bool = True


class OutcomeProgressBar:
    """
    Progress bar that tallies how each processed item ended.

    Args:
        total: Number of items to process.
        description: Label on the left of the bar.
        outcomes: Result kinds to count, in display order. Outcomes with
                  always_shown=False appear once their count is non-zero.
    """

    def __init__(self, total: int, description: str, outcomes: Sequence[Outcome]) -> None:
        self.total = total
        self.description = description
        self.outcomes = tuple(outcomes)
        self.counts = {outcome.key: 0 for outcome in self.outcomes}
        self.completed = 0

        self.console = get_console()
        self.progress = Progress(
            TextColumn(
                "[white]{task.description}",
                table_column=Column(width=DESCRIPTION_WIDTH, no_wrap=True, overflow="ellipsis"),
            ),
            TextColumn(
                "{task.fields[status]}",
                table_column=Column(width=STATUS_WIDTH, no_wrap=True),
            ),
            BarColumn(bar_width=40, finished_style="green"),
            "[progress.percentage]{task.percentage:>3.0f}%",
            console=self.console,
            refresh_per_second=10,
        )
        self.task_id: Optional[TaskID] = None

    def __enter__(self) -> "OutcomeProgressBar":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()

    def start(self) -> None:
        if self.task_id is not None:
            return
        self.console.push_theme(PROGRESS_THEME)
        self.progress.start()
        self.task_id = self.progress.add_task(
            self.description,
            total=self.total,
            status=self.status_text(),
        )

    def stop(self) -> None:
        if self.task_id is None:
            return
        self.progress.stop()
        self.console.pop_theme()
        self.task_id = None

    def status_text(self) -> str:
        parts = [
            f"[{outcome.color}]{outcome.symbol} {self.counts[outcome.key]}[/{outcome.color}]"
            for outcome in self.outcomes
            if outcome.always_shown or self.counts[outcome.key]
        ]
        return "  ".join(parts)

    def record(self, key: str) -> None:
        """Count one finished item under the given outcome key."""
        self.counts[key] += 1
        self.completed += 1
        if self.task_id is not None:
            self.progress.update(self.task_id, completed=self.completed, status=self.status_text())


class ImportProgressBar(OutcomeProgressBar):
    """Import command: ✓ imported, ✗ failed, ⊘ skipped (shown once non-zero)."""

    def __init__(self, total: int, description: str = "Importing") -> None:
        super().__init__(total, description, (
            Outcome("imported", "✓", "green"),
            Outcome("failed", "✗", "red"),
            Outcome("skipped", "⊘", "yellow", always_shown=False),
        ))

    def update(self, success: bool, skipped: bool = False) -> None:
        if skipped:
            self.record("skipped")
        else:
            self.record("imported" if success else "failed")


class ConversionProgressBar(OutcomeProgressBar):
    """Convert command: ✓ converted, ✗ failed."""

    def __init__(self, total: int, description: str = "Converting") -> None:
        super().__init__(total, description, (
            Outcome("converted", "✓", "green"),
            Outcome("failed", "✗", "red"),
        ))

    def update(self, success: bool) -> None:
        self.record("converted" if success else "failed")


__all__ = [
    "PROGRESS_THEME",
    "Outcome",
    "OutcomeProgressBar",
    "ImportProgressBar",
    "ConversionProgressBar",
]
