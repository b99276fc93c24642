from __future__ import annotations

import logging
import re
import subprocess
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Protocol

from histsplit.errors import ConfigurationError, ExternalToolError
from histsplit.models import ChangesetMetadata


logger = logging.getLogger(__name__)

SUPPORTED_BACKENDS = ("hg", "git")
_LABEL_RE = re.compile(r"^(\S+):(.*)")


class SourceRepository(Protocol):
    root: Path

    def commit_pending(self) -> None: ...

    def tracked_files(self) -> set[str]: ...

    def checkout(self, index: int) -> None: ...

    def head_index(self) -> int: ...

    def changeset_metadata(self, index: int) -> ChangesetMetadata: ...

    def is_merge(self, index: int) -> bool: ...

    def restore(self) -> None: ...


class TargetAdapter(Protocol):
    def init(self, path: Path) -> None: ...

    def commit(
        self, path: Path, meta: ChangesetMetadata, added: Sequence[str] = ()
    ) -> None: ...


def parse_labeled_output(text: str) -> dict[str, str]:
    """Parse ``label: value`` tool output into a dict.

    A line that does not start a new label continues the previous label's
    value and is appended to it after a newline.
    """
    result: dict[str, str] = {}
    last_label: str | None = None

    for line in text.strip().splitlines():
        match = _LABEL_RE.match(line)
        if match:
            last_label = match.group(1)
            result[last_label] = match.group(2).strip()
        elif last_label is not None:
            result[last_label] = f"{result[last_label]}\n{line.strip()}"

    return result


def first_line(message: str) -> str:
    lines = message.strip().splitlines()
    return lines[0].strip() if lines else ""


def run_command(
    args: Sequence[str],
    *,
    cwd: Path,
    env: Mapping[str, str] | None = None,
    ok_codes: tuple[int, ...] = (0,),
) -> str:
    command = tuple(str(arg) for arg in args)
    logger.debug("run %s (in %s)", " ".join(command), cwd)
    try:
        completed = subprocess.run(
            command,
            cwd=cwd,
            env=None if env is None else dict(env),
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="surrogateescape",
            check=False,
        )
    except FileNotFoundError as exc:
        raise ExternalToolError(
            f"{command[0]} executable not found. Is it installed and on PATH?",
            command=command,
        ) from exc

    if completed.returncode not in ok_codes:
        stderr = (completed.stderr or completed.stdout or "").strip()
        raise ExternalToolError(
            f"`{' '.join(command)}` failed with exit status {completed.returncode}: {stderr}",
            command=command,
            returncode=completed.returncode,
            stderr=stderr,
        )
    return completed.stdout


def detect_backend(root: Path) -> str:
    if (root / ".hg").is_dir():
        return "hg"
    if (root / ".git").exists():
        return "git"
    raise ConfigurationError(
        f"No Mercurial or Git repository found at {root}. Use --vcs to pick a backend."
    )


def get_backends(name: str, root: Path) -> tuple[SourceRepository, TargetAdapter]:
    if name == "hg":
        from histsplit.hg_backend import HgSource, HgTarget

        return HgSource(root), HgTarget()
    if name == "git":
        from histsplit.git_backend import GitSource, GitTarget

        return GitSource(root), GitTarget()
    raise ConfigurationError(
        f"Unknown VCS backend {name!r}. Use one of: {', '.join(SUPPORTED_BACKENDS)}."
    )
