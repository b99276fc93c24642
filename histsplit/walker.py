from __future__ import annotations

import logging
from collections.abc import Iterator

from rich.console import Console

from histsplit.config import SplitConfig
from histsplit.filters import resolve
from histsplit.models import ChangesetEvent, ChangesetRange, RunState, WalkResult
from histsplit.progress_ui import NullProgress, ProgressReporter, make_progress
from histsplit.replay import ReplayWriter
from histsplit.scanner import snapshot
from histsplit.target import TargetRepository
from histsplit.vcs import SourceRepository, detect_backend, get_backends


logger = logging.getLogger(__name__)


class HistoryWalker:
    """Replay the filtered history of ``source`` one changeset at a time.

    The source working tree is checked out in place for every index, so the
    walk is strictly sequential: each "changed?" decision compares against
    the snapshot taken at the previous index.
    """

    def __init__(
        self,
        config: SplitConfig,
        source: SourceRepository,
        writer: ReplayWriter,
        changesets: ChangesetRange,
        *,
        progress: ProgressReporter | None = None,
    ) -> None:
        self.config = config
        self.source = source
        self.writer = writer
        self.changesets = changesets
        self.progress = progress or NullProgress()
        self.state = RunState()

    def _process(self, index: int) -> ChangesetEvent:
        self.source.checkout(index)

        if self.source.is_merge(index):
            self.state.merges_seen += 1
            logger.warning(
                "changeset %d is a merge; its branch history is linearized", index
            )

        active_paths = resolve(self.source.tracked_files(), self.config.file_filter)
        current = snapshot(self.source.root, active_paths)

        # nothing to do if no tracked file changed
        if current == self.state.previous_snapshot:
            logger.debug("changeset %d: no selected file changed", index)
            return ChangesetEvent(index=index, replayed=False)

        meta = self.source.changeset_metadata(index)
        diff = self.writer.apply(self.state.previous_snapshot, current, meta)
        self.state.previous_snapshot = current
        self.state.commits_replayed += 1
        logger.debug(
            "changeset %d replayed: +%d ~%d -%d",
            index,
            len(diff.added),
            len(diff.modified),
            len(diff.removed),
        )
        return ChangesetEvent(index=index, replayed=True, diff=diff, metadata=meta)

    def iter_events(self) -> Iterator[ChangesetEvent]:
        for index in self.changesets.indices():
            self.state.current_index = index
            yield self._process(index)

    def run(self) -> WalkResult:
        scanned = 0
        with self.progress:
            for event in self.iter_events():
                scanned += 1
                self.progress.update(event.index, self.state.commits_replayed)

        self.source.restore()
        return WalkResult(
            commits_replayed=self.state.commits_replayed,
            changesets_scanned=scanned,
            merges_seen=self.state.merges_seen,
            target_root=self.writer.target.root,
        )


def prepare_walker(config: SplitConfig, *, console: Console) -> HistoryWalker:
    """Set up the source, the fresh target repository and the walker."""
    backend = config.backend or detect_backend(config.source_root)
    source, target_adapter = get_backends(backend, config.source_root)
    logger.debug("using %s backend for %s", backend, config.source_root)

    # handle uncommitted changes
    source.commit_pending()
    changesets = config.changeset_range(source.head_index())

    target = TargetRepository.create(config.target_root, target_adapter)
    writer = ReplayWriter(config.source_root, target)
    return HistoryWalker(
        config,
        source,
        writer,
        changesets,
        progress=make_progress(console, changesets, verbose=config.verbose),
    )
