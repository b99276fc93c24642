from __future__ import annotations

from typing import Protocol

from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)

from histsplit.models import ChangesetRange


class ProgressReporter(Protocol):
    def __enter__(self) -> "ProgressReporter": ...

    def __exit__(self, exc_type, exc, tb) -> None: ...

    def update(self, index: int, commits_replayed: int) -> None: ...


class NullProgress:
    def __enter__(self) -> "NullProgress":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        return None

    def update(self, index: int, commits_replayed: int) -> None:
        return None


class VerboseProgress:
    """One line per changeset index."""

    def __init__(self, console: Console, changesets: ChangesetRange) -> None:
        self._console = console
        self._range = changesets

    def __enter__(self) -> "VerboseProgress":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        return None

    def update(self, index: int, commits_replayed: int) -> None:
        self._console.print(f"commit {index}/{self._range.end}", highlight=False)


class ReplayProgressUI:
    """Single overwriting percentage bar for interactive terminals."""

    def __init__(self, console: Console, changesets: ChangesetRange) -> None:
        self._range = changesets
        self._progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold]Replaying"),
            BarColumn(),
            TaskProgressColumn(),
            TextColumn("{task.fields[position]}"),
            TextColumn("{task.fields[replayed]} commit(s)"),
            TimeElapsedColumn(),
            console=console,
            transient=True,
            expand=True,
        )
        self._task_id: TaskID | None = None

    def __enter__(self) -> "ReplayProgressUI":
        self._progress.__enter__()
        self._task_id = self._progress.add_task(
            "replay",
            total=len(self._range),
            position=f"{self._range.start}/{self._range.end}",
            replayed=0,
        )
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self._progress.__exit__(exc_type, exc, tb)

    def update(self, index: int, commits_replayed: int) -> None:
        if self._task_id is None:
            return
        self._progress.update(
            self._task_id,
            completed=index - self._range.start + 1,
            position=f"{index}/{self._range.end}",
            replayed=commits_replayed,
        )


def make_progress(
    console: Console,
    changesets: ChangesetRange,
    *,
    verbose: bool,
) -> ProgressReporter:
    if verbose:
        return VerboseProgress(console, changesets)
    if console.is_terminal:
        return ReplayProgressUI(console, changesets)
    return NullProgress()
