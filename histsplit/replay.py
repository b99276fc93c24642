from __future__ import annotations

import logging
import shutil
from pathlib import Path

from histsplit.errors import ExternalToolError, FileSystemError, ReplayError
from histsplit.models import ChangesetMetadata, SnapshotDiff, StateSnapshot
from histsplit.target import TargetRepository


logger = logging.getLogger(__name__)


def diff_snapshots(previous: StateSnapshot, current: StateSnapshot) -> SnapshotDiff:
    added: list[str] = []
    modified: list[str] = []

    for path, digest in current.items():
        old = previous.get(path)
        if old is None:
            added.append(path)
        elif old != digest:
            modified.append(path)

    removed = [path for path in previous if path not in current]

    return SnapshotDiff(
        added=sorted(added),
        modified=sorted(modified),
        removed=sorted(removed),
    )


def _copy_file(source_root: Path, target_root: Path, relative_path: str) -> None:
    source_path = source_root / relative_path
    target_path = target_root / relative_path
    target_path.parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(source_path, target_path)
    shutil.copymode(source_path, target_path)


def _delete_file(target_root: Path, relative_path: str) -> None:
    path = target_root / relative_path
    if not path.exists() or not path.is_file():
        return
    path.unlink()
    current = path.parent
    while current != target_root:
        try:
            current.rmdir()
        except OSError:
            break
        current = current.parent


class ReplayWriter:
    """Mirror snapshot differences into the target and commit them.

    This is the only component that writes to the target repository.
    """

    def __init__(self, source_root: Path, target: TargetRepository) -> None:
        self.source_root = source_root
        self.target = target

    def apply(
        self,
        previous: StateSnapshot,
        current: StateSnapshot,
        meta: ChangesetMetadata,
    ) -> SnapshotDiff:
        diff = diff_snapshots(previous, current)
        target_root = self.target.root

        try:
            # Removals first: a path may turn from a file into a directory or back.
            for path in diff.removed:
                logger.debug(" rm %s", path)
                _delete_file(target_root, path)
            for path in diff.copied:
                logger.debug(" copy %s", path)
                _copy_file(self.source_root, target_root, path)
        except OSError as exc:
            raise FileSystemError(
                f"Cannot mirror changeset {meta.index} into {target_root}: {exc}"
            ) from exc

        try:
            self.target.commit(meta, diff.added)
        except ExternalToolError as exc:
            raise ReplayError(
                f"Commit of changeset {meta.index} in {target_root} failed: {exc}",
                command=exc.command,
                returncode=exc.returncode,
                stderr=exc.stderr,
            ) from exc

        return diff
