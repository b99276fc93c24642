from __future__ import annotations

import os
from collections.abc import Sequence
from pathlib import Path

from histsplit.errors import ConfigurationError, ExternalToolError
from histsplit.models import ChangesetMetadata
from histsplit.vcs import first_line, parse_labeled_output, run_command


PENDING_COMMIT_MESSAGE = "histsplit"
# hg refuses empty commit messages
EMPTY_SUMMARY = "(no message)"
ADD_BATCH_SIZE = 200


def _hg_env() -> dict[str, str]:
    # HGPLAIN keeps log/tip output stable regardless of user config.
    return {**os.environ, "HGPLAIN": "1"}


def _hg(cwd: Path, *args: str, ok_codes: tuple[int, ...] = (0,)) -> str:
    return run_command(["hg", *args], cwd=cwd, env=_hg_env(), ok_codes=ok_codes)


class HgSource:
    """Mercurial source repository addressed by local revision numbers."""

    def __init__(self, root: Path) -> None:
        self.root = root
        self._origin: str | None = None

    def commit_pending(self) -> None:
        # Exit status 1 means there was nothing to commit.
        _hg(self.root, "commit", "-m", PENDING_COMMIT_MESSAGE, ok_codes=(0, 1))

    def tracked_files(self) -> set[str]:
        out = _hg(self.root, "status", "--clean", "--no-status", "--print0")
        return {path for path in out.split("\0") if path}

    def checkout(self, index: int) -> None:
        if self._origin is None:
            self._origin = _hg(self.root, "log", "-r", ".", "--template", "{node}").strip()
        _hg(self.root, "update", "--clean", "-r", str(index))

    def head_index(self) -> int:
        tip = parse_labeled_output(_hg(self.root, "tip"))
        changeset = tip.get("changeset", "")
        try:
            head = int(changeset.split(":")[0])
        except ValueError as exc:
            raise ExternalToolError(f"Unexpected `hg tip` output: {changeset!r}") from exc
        if head < 0:
            raise ConfigurationError(f"Source repository {self.root} has no changesets.")
        return head

    def changeset_metadata(self, index: int) -> ChangesetMetadata:
        log = parse_labeled_output(_hg(self.root, "log", "-r", str(index)))
        return ChangesetMetadata(
            index=index,
            user=log.get("user", ""),
            date=log.get("date", ""),
            summary=first_line(log.get("summary", "")),
        )

    def is_merge(self, index: int) -> bool:
        p2rev = _hg(self.root, "log", "-r", str(index), "--template", "{p2rev}").strip()
        return p2rev not in ("", "-1")

    def restore(self) -> None:
        if self._origin:
            _hg(self.root, "update", "--clean", "-r", self._origin)


class HgTarget:
    def init(self, path: Path) -> None:
        _hg(path, "init")

    def commit(self, path: Path, meta: ChangesetMetadata, added: Sequence[str] = ()) -> None:
        # Naming a path explicitly overrides .hgignore; --addremove alone would skip it.
        for start in range(0, len(added), ADD_BATCH_SIZE):
            _hg(path, "add", "--", *added[start : start + ADD_BATCH_SIZE])
        _hg(
            path,
            "commit",
            "--addremove",
            "-u",
            meta.user,
            "-d",
            meta.date,
            "-m",
            meta.summary or EMPTY_SUMMARY,
        )
