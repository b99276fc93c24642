from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

from histsplit.errors import AlreadyExistsError, FileSystemError
from histsplit.models import ChangesetMetadata
from histsplit.vcs import TargetAdapter


logger = logging.getLogger(__name__)


class TargetRepository:
    """The derived repository that receives the replayed commits."""

    def __init__(self, root: Path, adapter: TargetAdapter) -> None:
        self.root = root
        self._adapter = adapter

    @classmethod
    def create(cls, root: Path, adapter: TargetAdapter) -> "TargetRepository":
        root = root.resolve()
        if root.exists():
            raise AlreadyExistsError(f"Target path already exists: {root}")
        try:
            root.mkdir(parents=True)
        except OSError as exc:
            raise FileSystemError(f"Cannot create target directory {root}: {exc}") from exc
        adapter.init(root)
        logger.debug("initialized target repository at %s", root)
        return cls(root, adapter)

    def commit(self, meta: ChangesetMetadata, added: Sequence[str] = ()) -> None:
        self._adapter.commit(self.root, meta, list(added))
