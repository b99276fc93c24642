from __future__ import annotations

import os
import re
from collections.abc import Sequence
from pathlib import Path

from histsplit.errors import ConfigurationError, ExternalToolError
from histsplit.models import ChangesetMetadata
from histsplit.vcs import first_line, parse_labeled_output, run_command


PENDING_COMMIT_MESSAGE = "histsplit"
LOG_FORMAT = "user: %an <%ae>%ndate: %ad"
_AUTHOR_RE = re.compile(r"^(?P<name>.*?)\s*<(?P<email>[^>]*)>\s*$")
_RAW_DATE_RE = re.compile(r"^\d+ [+-]\d{4}$")


def _git(
    cwd: Path,
    *args: str,
    env: dict[str, str] | None = None,
    ok_codes: tuple[int, ...] = (0,),
) -> str:
    return run_command(
        ["git", "-c", "commit.gpgsign=false", "-c", "core.quotepath=off", *args],
        cwd=cwd,
        env=env,
        ok_codes=ok_codes,
    )


def commit_date(date: str) -> str:
    # "@" forces small raw timestamps to be read as epoch seconds.
    if _RAW_DATE_RE.match(date):
        return f"@{date}"
    return date


def split_author(user: str) -> tuple[str, str]:
    match = _AUTHOR_RE.match(user)
    if match is None:
        return user.strip(), ""
    return match.group("name"), match.group("email")


class GitSource:
    """Git source repository linearized along the first-parent chain of HEAD.

    Index 0 is the root commit. The revision list is read once, so commits
    made while the walk runs are never picked up.
    """

    def __init__(self, root: Path) -> None:
        self.root = root
        self._revisions: list[str] | None = None
        self._origin: str | None = None

    def _revision_list(self) -> list[str]:
        if self._revisions is None:
            out = _git(self.root, "rev-list", "--reverse", "--first-parent", "HEAD")
            self._revisions = out.split()
        return self._revisions

    def _revision(self, index: int) -> str:
        revisions = self._revision_list()
        if not 0 <= index < len(revisions):
            raise ExternalToolError(
                f"Changeset {index} does not exist (head is {len(revisions) - 1})."
            )
        return revisions[index]

    def commit_pending(self) -> None:
        status = _git(self.root, "status", "--porcelain", "--untracked-files=no")
        if not status.strip():
            return
        _git(self.root, "commit", "-q", "-a", "-m", PENDING_COMMIT_MESSAGE)
        self._revisions = None

    def tracked_files(self) -> set[str]:
        out = _git(self.root, "ls-files", "-z")
        return {path for path in out.split("\0") if path}

    def checkout(self, index: int) -> None:
        if self._origin is None:
            branch = _git(self.root, "symbolic-ref", "-q", "--short", "HEAD", ok_codes=(0, 1)).strip()
            self._origin = branch or _git(self.root, "rev-parse", "HEAD").strip()
        _git(self.root, "checkout", "-q", "-f", self._revision(index))

    def head_index(self) -> int:
        try:
            revisions = self._revision_list()
        except ExternalToolError as exc:
            raise ConfigurationError(f"Source repository {self.root} has no commits.") from exc
        if not revisions:
            raise ConfigurationError(f"Source repository {self.root} has no commits.")
        return len(revisions) - 1

    def changeset_metadata(self, index: int) -> ChangesetMetadata:
        revision = self._revision(index)
        out = _git(self.root, "log", "-1", "--date=raw", f"--format={LOG_FORMAT}", revision)
        log = parse_labeled_output(out)
        # Read separately: body lines may look like `label: value`.
        message = _git(self.root, "log", "-1", "--format=%B", revision)
        return ChangesetMetadata(
            index=index,
            user=log.get("user", ""),
            date=log.get("date", ""),
            summary=first_line(message),
        )

    def is_merge(self, index: int) -> bool:
        out = _git(self.root, "rev-list", "--parents", "-n", "1", self._revision(index))
        return len(out.split()) > 2

    def restore(self) -> None:
        if self._origin:
            _git(self.root, "checkout", "-q", "-f", self._origin)


class GitTarget:
    def init(self, path: Path) -> None:
        _git(path, "init", "-q")

    def commit(self, path: Path, meta: ChangesetMetadata, added: Sequence[str] = ()) -> None:
        name, email = split_author(meta.user)
        env = {
            **os.environ,
            "GIT_AUTHOR_NAME": name,
            "GIT_AUTHOR_EMAIL": email,
            "GIT_AUTHOR_DATE": commit_date(meta.date),
            "GIT_COMMITTER_NAME": name,
            "GIT_COMMITTER_EMAIL": email,
            "GIT_COMMITTER_DATE": commit_date(meta.date),
        }
        # The target holds only mirrored files, so ignore rules must not apply.
        _git(path, "add", "-A", "-f", env=env)
        _git(path, "commit", "-q", "--allow-empty-message", "-m", meta.summary, env=env)
