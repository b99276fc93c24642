from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

from histsplit import walker as walker_module
from histsplit.cli import app


runner = CliRunner()


def _flat(output: str) -> str:
    return " ".join(output.split())


@pytest.fixture
def fake_backends(monkeypatch, make_source, make_target, scenario_history):
    source = make_source(scenario_history)
    target = make_target()
    monkeypatch.setattr(walker_module, "detect_backend", lambda root: "fake")
    monkeypatch.setattr(walker_module, "get_backends", lambda name, root: (source, target))
    return source, target


def test_split_reports_summary(tmp_path: Path, source_root: Path, fake_backends) -> None:
    source, target = fake_backends
    subrepo = tmp_path / "split"

    result = runner.invoke(app, ["a.txt", "b.txt", "-s", str(source_root), "-d", str(subrepo)])

    assert result.exit_code == 0, result.output
    assert "saved 3 changes from 3 total" in _flat(result.output)
    assert source.pending_committed
    assert len(target.commits) == 3
    assert subrepo.is_dir()


def test_split_reads_list_file(tmp_path: Path, source_root: Path, fake_backends) -> None:
    _, target = fake_backends
    listing = tmp_path / "files.txt"
    listing.write_text("b.txt\n", encoding="utf-8")

    result = runner.invoke(
        app,
        ["-l", str(listing), "-s", str(source_root), "-d", str(tmp_path / "split"), "-f", "1"],
    )

    assert result.exit_code == 0, result.output
    assert "saved 2 changes from 2 total" in _flat(result.output)
    assert [tree for _, tree in target.commits] == [{"b.txt": "y"}, {"b.txt": "z"}]


def test_split_verbose_prints_each_changeset(tmp_path: Path, source_root: Path, fake_backends) -> None:
    result = runner.invoke(
        app,
        ["b.txt", "-v", "-s", str(source_root), "-d", str(tmp_path / "split")],
    )

    assert result.exit_code == 0, result.output
    assert "commit 2/2" in result.output


def test_missing_file_list_aborts(tmp_path: Path, source_root: Path) -> None:
    result = runner.invoke(app, ["-s", str(source_root), "-d", str(tmp_path / "split")])

    assert result.exit_code == 1
    assert "no filelist" in result.output
    assert not (tmp_path / "split").exists()


def test_existing_target_aborts(tmp_path: Path, source_root: Path) -> None:
    existing = tmp_path / "split"
    existing.mkdir()

    result = runner.invoke(app, ["a.txt", "-s", str(source_root), "-d", str(existing)])

    assert result.exit_code == 1
    assert "already exists" in _flat(result.output)


def test_final_commit_beyond_head_aborts(tmp_path: Path, source_root: Path, fake_backends) -> None:
    result = runner.invoke(
        app,
        ["a.txt", "-s", str(source_root), "-d", str(tmp_path / "split"), "-f", "10"],
    )

    assert result.exit_code == 1
    assert "beyond the last changeset" in _flat(result.output)
    assert not (tmp_path / "split").exists()


def test_failed_commit_reports_resume_point(
    tmp_path: Path, source_root: Path, monkeypatch, make_source, make_target, scenario_history
) -> None:
    source = make_source(scenario_history)
    target = make_target(fail_on_commit=2)
    monkeypatch.setattr(walker_module, "detect_backend", lambda root: "fake")
    monkeypatch.setattr(walker_module, "get_backends", lambda name, root: (source, target))

    result = runner.invoke(app, ["a.txt", "b.txt", "-s", str(source_root), "-d", str(tmp_path / "split")])

    assert result.exit_code == 1
    output = _flat(result.output)
    assert "Split failed" in output
    assert "Stopped at changeset 2 after replaying 2 commit(s)" in output


def test_interrupt_while_preparing_exits_130(tmp_path: Path, source_root: Path, monkeypatch, fake_backends) -> None:
    source, _ = fake_backends

    def interrupted() -> None:
        raise KeyboardInterrupt

    monkeypatch.setattr(source, "commit_pending", interrupted)

    result = runner.invoke(app, ["a.txt", "-s", str(source_root), "-d", str(tmp_path / "split")])

    assert result.exit_code == 130
    assert "Interrupted before the walk started" in _flat(result.output)
    assert not (tmp_path / "split").exists()
