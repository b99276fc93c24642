from __future__ import annotations

import re
from collections.abc import Iterable

from histsplit.errors import ConfigurationError
from histsplit.models import FileFilterSpec, FilterMode, FilterPolarity


def _normalize_pattern(pattern: str) -> str:
    normalized = pattern.strip().replace("\\", "/")
    if normalized.startswith("./"):
        normalized = normalized[2:]
    return normalized


def _compile(patterns: tuple[str, ...]) -> tuple[re.Pattern[str], ...]:
    compiled: list[re.Pattern[str]] = []
    for pattern in patterns:
        try:
            compiled.append(re.compile(pattern))
        except re.error as exc:
            raise ConfigurationError(f"Invalid file pattern {pattern!r}: {exc}") from exc
    return tuple(compiled)


def build_filter_spec(
    patterns: Iterable[str] | None = None,
    *,
    regex: bool = False,
    exclude: bool = False,
) -> FileFilterSpec:
    mode = FilterMode.REGEX if regex else FilterMode.LITERAL
    polarity = FilterPolarity.EXCLUDE if exclude else FilterPolarity.INCLUDE

    if mode is FilterMode.REGEX:
        # Backslashes are escapes here, so only surrounding whitespace goes.
        normalized = tuple(p.strip() for p in (patterns or ()) if p and p.strip())
    else:
        normalized = tuple(_normalize_pattern(p) for p in (patterns or ()) if p and p.strip())

    if not normalized and polarity is FilterPolarity.INCLUDE:
        raise ConfigurationError("no filelist! Pass file names, --list, or use --exclude.")

    compiled = _compile(normalized) if mode is FilterMode.REGEX else ()
    return FileFilterSpec(patterns=normalized, mode=mode, polarity=polarity, compiled=compiled)


def _matches_any(path: str, spec: FileFilterSpec) -> bool:
    compiled = spec.compiled or _compile(spec.patterns)
    return any(pattern.search(path) for pattern in compiled)


def resolve(tracked_files: Iterable[str], spec: FileFilterSpec) -> set[str]:
    """Return the subset of ``tracked_files`` selected by ``spec``."""
    if not spec.patterns and spec.polarity is FilterPolarity.INCLUDE:
        raise ConfigurationError("An include filter needs at least one pattern.")

    tracked = set(tracked_files)
    exclude = spec.polarity is FilterPolarity.EXCLUDE

    if spec.mode is FilterMode.LITERAL:
        listed = set(spec.patterns)
        return tracked - listed if exclude else tracked & listed

    if exclude:
        return {path for path in tracked if not _matches_any(path, spec)}
    return {path for path in tracked if _matches_any(path, spec)}
