from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from histsplit.errors import ConfigurationError


# path -> hex sha256 of the full file content
StateSnapshot = dict[str, str]


class FilterMode(str, Enum):
    LITERAL = "literal"
    REGEX = "regex"


class FilterPolarity(str, Enum):
    INCLUDE = "include"
    EXCLUDE = "exclude"


@dataclass(slots=True, frozen=True)
class FileFilterSpec:
    patterns: tuple[str, ...]
    mode: FilterMode = FilterMode.LITERAL
    polarity: FilterPolarity = FilterPolarity.INCLUDE
    compiled: tuple[re.Pattern[str], ...] = field(default=(), compare=False, repr=False)


@dataclass(slots=True, frozen=True)
class ChangesetRange:
    start: int
    end: int

    def __post_init__(self) -> None:
        if self.start < 0 or self.end < 0:
            raise ConfigurationError(
                f"Changeset indices must be >= 0, got {self.start}..{self.end}."
            )
        if self.start > self.end:
            raise ConfigurationError(
                f"Initial changeset {self.start} is after final changeset {self.end}."
            )

    def __len__(self) -> int:
        return self.end - self.start + 1

    def indices(self) -> range:
        return range(self.start, self.end + 1)


@dataclass(slots=True, frozen=True)
class ChangesetMetadata:
    index: int
    user: str
    date: str
    summary: str


@dataclass(slots=True)
class SnapshotDiff:
    added: list[str]
    modified: list[str]
    removed: list[str]

    @property
    def has_changes(self) -> bool:
        return bool(self.added or self.modified or self.removed)

    @property
    def copied(self) -> list[str]:
        return sorted([*self.added, *self.modified])


@dataclass(slots=True)
class RunState:
    previous_snapshot: StateSnapshot = field(default_factory=dict)
    commits_replayed: int = 0
    current_index: int | None = None
    merges_seen: int = 0


@dataclass(slots=True)
class ChangesetEvent:
    index: int
    replayed: bool
    diff: SnapshotDiff | None = None
    metadata: ChangesetMetadata | None = None


@dataclass(slots=True)
class WalkResult:
    commits_replayed: int
    changesets_scanned: int
    merges_seen: int
    target_root: Path
