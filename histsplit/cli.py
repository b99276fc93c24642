from __future__ import annotations

import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler

from histsplit.config import DEFAULT_SUBREPO, VCS_ENVVAR, SplitConfig, build_config
from histsplit.errors import HistsplitError
from histsplit.walker import HistoryWalker, prepare_walker


app = typer.Typer(
    help="Create a new repository tracking the history of a subset of files.",
    add_completion=False,
)
console = Console()
err_console = Console(stderr=True)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False, markup=False)],
        force=True,
    )


def _render_stopped(walker: HistoryWalker, reason: str) -> None:
    state = walker.state
    if state.current_index is None:
        return
    console.print(
        f"[yellow]{reason} at changeset {state.current_index}[/yellow] after replaying "
        f"{state.commits_replayed} commit(s) into {walker.writer.target.root}. "
        "Discard the target, or inspect it and rerun with --initial-commit to resume."
    )


def _split(config: SplitConfig) -> int:
    try:
        walker = prepare_walker(config, console=err_console)
    except KeyboardInterrupt:
        console.print("[yellow]Interrupted before the walk started.[/yellow]")
        return 130
    except HistsplitError as exc:
        console.print(f"[red]{exc}[/red]")
        return 1

    try:
        result = walker.run()
    except KeyboardInterrupt:
        _render_stopped(walker, "Interrupted")
        return 130
    except HistsplitError as exc:
        console.print(f"[red]Split failed:[/red] {exc}")
        _render_stopped(walker, "Stopped")
        return 1

    console.print(
        f"subrepository saved to {result.target_root}/, saved {result.commits_replayed} "
        f"changes from {result.changesets_scanned} total",
        highlight=False,
    )
    if result.merges_seen:
        console.print(
            f"[yellow]{result.merges_seen} merge changeset(s) were linearized.[/yellow]"
        )
    return 0


@app.command()
def split(
    files: list[str] | None = typer.Argument(
        None,
        help="Files to keep (or to drop with --exclude). Regexps with --regex.",
        show_default=False,
    ),
    subrepo: Path = typer.Option(
        Path(DEFAULT_SUBREPO),
        "--subrepo",
        "-d",
        help="Path to the directory that will hold the new repository (must not exist).",
    ),
    repo: Path | None = typer.Option(
        None,
        "--repo",
        "-s",
        help="Path to the repository to split. Defaults to the current directory.",
    ),
    list_files: list[Path] | None = typer.Option(
        None,
        "--list",
        "-l",
        help="File holding a list of files, one per line (repeatable).",
    ),
    exclude: bool = typer.Option(
        False,
        "--exclude",
        "-x",
        help="Ignore files in the file list, include all others.",
    ),
    regex: bool = typer.Option(
        False,
        "--regex",
        "-r",
        help="The file list is a list of regexps, searched anywhere in the path.",
    ),
    initial_commit: int | None = typer.Option(
        None,
        "--initial-commit",
        "-i",
        help="Start from this linear changeset number (0 is the first changeset).",
    ),
    final_commit: int | None = typer.Option(
        None,
        "--final-commit",
        "-f",
        help="End at this linear changeset number. Defaults to the last one.",
    ),
    vcs: str | None = typer.Option(
        None,
        "--vcs",
        envvar=VCS_ENVVAR,
        help="Version control backend: hg or git. Detected from the repository by default.",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Be verbose."),
) -> None:
    """Replay the history of selected files into a fresh repository."""
    _configure_logging(verbose)
    try:
        config = build_config(
            files=tuple(files or ()),
            list_files=tuple(list_files or ()),
            source_root=repo,
            target_root=subrepo,
            exclude=exclude,
            regex=regex,
            initial_commit=initial_commit,
            final_commit=final_commit,
            verbose=verbose,
            backend=vcs,
        )
    except HistsplitError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1)

    raise typer.Exit(code=_split(config))
