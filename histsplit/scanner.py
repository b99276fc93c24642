from __future__ import annotations

import hashlib
import logging
from collections.abc import Iterable
from pathlib import Path

from histsplit.errors import FileSystemError
from histsplit.models import StateSnapshot


logger = logging.getLogger(__name__)


def _sha256_file(path: Path, chunk_size: int = 1024 * 1024) -> str:
    digest = hashlib.sha256()
    with path.open("rb") as fh:
        while True:
            chunk = fh.read(chunk_size)
            if not chunk:
                break
            digest.update(chunk)
    return digest.hexdigest()


def snapshot(root: Path, paths: Iterable[str]) -> StateSnapshot:
    """Fingerprint every selected path that exists under ``root``.

    Missing paths are left out: at this point in history they were either
    not created yet or already deleted. mtime is too coarse to tell two
    edits in the same second apart, so the full content is always hashed.
    """
    result: StateSnapshot = {}

    for relative_path in sorted(set(paths)):
        normalized = Path(relative_path).as_posix()
        if not normalized:
            continue
        file_path = root / Path(normalized)
        try:
            if not file_path.is_file():
                continue
            result[normalized] = _sha256_file(file_path)
        except FileNotFoundError:
            continue
        except OSError as exc:
            raise FileSystemError(f"Cannot read tracked file {normalized}: {exc}") from exc

    logger.debug("snapshot of %d path(s) under %s", len(result), root)
    return result

