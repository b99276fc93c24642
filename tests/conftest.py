"""
Pytest configuration and in-memory VCS doubles.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

import pytest

from histsplit.errors import ExternalToolError
from histsplit.models import ChangesetMetadata


class FakeSource:
    """Source repository whose history is a list of (summary, {path: content})."""

    def __init__(
        self,
        root: Path,
        history: list[tuple[str, dict[str, str]]],
        *,
        merges: tuple[int, ...] = (),
    ) -> None:
        self.root = root
        self.history = history
        self.merges = set(merges)
        self.checkouts: list[int] = []
        self.pending_committed = False
        self.restored = False
        self._current: int | None = None

    def commit_pending(self) -> None:
        self.pending_committed = True

    def tracked_files(self) -> set[str]:
        assert self._current is not None
        return set(self.history[self._current][1])

    def checkout(self, index: int) -> None:
        known = {path for _, files in self.history for path in files}
        # Deepest first so emptied directories are gone before a file reuses the name.
        for path in sorted(known, key=lambda p: p.count("/"), reverse=True):
            file_path = self.root / path
            if not file_path.is_file():
                continue
            file_path.unlink()
            parent = file_path.parent
            while parent != self.root:
                try:
                    parent.rmdir()
                except OSError:
                    break
                parent = parent.parent
        for path, content in self.history[index][1].items():
            file_path = self.root / path
            file_path.parent.mkdir(parents=True, exist_ok=True)
            file_path.write_text(content, encoding="utf-8")
        self._current = index
        self.checkouts.append(index)

    def head_index(self) -> int:
        return len(self.history) - 1

    def changeset_metadata(self, index: int) -> ChangesetMetadata:
        return ChangesetMetadata(
            index=index,
            user="Alice <alice@example.com>",
            date=f"{1700000000 + index * 60} +0000",
            summary=self.history[index][0],
        )

    def is_merge(self, index: int) -> bool:
        return index in self.merges

    def restore(self) -> None:
        self.restored = True


class FakeTarget:
    """Target adapter that records the tree at every commit."""

    def __init__(self, *, fail_on_commit: int | None = None) -> None:
        self.fail_on_commit = fail_on_commit
        self.initialized: list[Path] = []
        self.commits: list[tuple[ChangesetMetadata, dict[str, str]]] = []
        self.added: list[list[str]] = []

    def init(self, path: Path) -> None:
        self.initialized.append(path)

    def commit(self, path: Path, meta: ChangesetMetadata, added: Sequence[str] = ()) -> None:
        if self.fail_on_commit is not None and len(self.commits) == self.fail_on_commit:
            raise ExternalToolError("nothing to commit", command=("fake", "commit"), returncode=1)
        tree = {
            file.relative_to(path).as_posix(): file.read_text(encoding="utf-8")
            for file in sorted(path.rglob("*"))
            if file.is_file()
        }
        self.commits.append((meta, tree))
        self.added.append(list(added))


@pytest.fixture
def source_root(tmp_path: Path) -> Path:
    root = tmp_path / "source"
    root.mkdir()
    return root


@pytest.fixture
def scenario_history() -> list[tuple[str, dict[str, str]]]:
    """Three changesets: create a+b, change b and c, delete a."""
    return [
        ("create a and b", {"a.txt": "x", "b.txt": "y"}),
        ("update b and c", {"a.txt": "x", "b.txt": "z", "c.txt": "c1"}),
        ("drop a", {"b.txt": "z", "c.txt": "c1"}),
    ]


@pytest.fixture
def make_source(source_root: Path):
    def _make(history, **kwargs) -> FakeSource:
        return FakeSource(source_root, history, **kwargs)

    return _make


@pytest.fixture
def make_target():
    def _make(**kwargs) -> FakeTarget:
        return FakeTarget(**kwargs)

    return _make
