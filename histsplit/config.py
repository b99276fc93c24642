from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from histsplit.errors import AlreadyExistsError, ConfigurationError
from histsplit.filters import build_filter_spec
from histsplit.models import ChangesetRange, FileFilterSpec


DEFAULT_SUBREPO = "subrepo"
VCS_ENVVAR = "HISTSPLIT_VCS"


@dataclass(slots=True, frozen=True)
class SplitConfig:
    source_root: Path
    target_root: Path
    file_filter: FileFilterSpec
    initial_commit: int | None = None
    final_commit: int | None = None
    verbose: bool = False
    backend: str | None = None

    def changeset_range(self, head_index: int) -> ChangesetRange:
        """Fix the walk bounds against the head index read before the walk."""
        start = 0 if self.initial_commit is None else self.initial_commit
        end = head_index if self.final_commit is None else self.final_commit
        if end > head_index:
            raise ConfigurationError(
                f"Final changeset {end} is beyond the last changeset ({head_index})."
            )
        return ChangesetRange(start=start, end=end)


def read_file_list(path: Path) -> list[str]:
    """Read a file list, one path or pattern per line. Blank lines are skipped."""
    try:
        with path.open("r", encoding="utf-8") as fh:
            return [line.rstrip("\r\n") for line in fh if line.strip()]
    except OSError as exc:
        raise ConfigurationError(f"Cannot read file list {path}: {exc}") from exc


def build_config(
    *,
    files: Iterable[str] = (),
    list_files: Iterable[Path] = (),
    source_root: Path | None = None,
    target_root: Path | None = None,
    exclude: bool = False,
    regex: bool = False,
    initial_commit: int | None = None,
    final_commit: int | None = None,
    verbose: bool = False,
    backend: str | None = None,
) -> SplitConfig:
    patterns: list[str] = []
    for list_file in list_files:
        patterns.extend(read_file_list(list_file))
    patterns.extend(files)

    file_filter = build_filter_spec(patterns, regex=regex, exclude=exclude)

    source = (source_root or Path.cwd()).expanduser().resolve()
    if not source.is_dir():
        raise ConfigurationError(f"Source repository does not exist: {source}")

    target = (target_root or Path(DEFAULT_SUBREPO)).expanduser().resolve()
    if target.exists():
        raise AlreadyExistsError(f"Target path already exists: {target}")

    for label, value in (("initial", initial_commit), ("final", final_commit)):
        if value is not None and value < 0:
            raise ConfigurationError(f"The {label} changeset index must be >= 0, got {value}.")
    if initial_commit is not None and final_commit is not None and initial_commit > final_commit:
        raise ConfigurationError(
            f"Initial changeset {initial_commit} is after final changeset {final_commit}."
        )

    return SplitConfig(
        source_root=source,
        target_root=target,
        file_filter=file_filter,
        initial_commit=initial_commit,
        final_commit=final_commit,
        verbose=verbose,
        backend=backend.strip().lower() if backend else None,
    )
