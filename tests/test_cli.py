"""Tests for CLI commands."""

import json
import subprocess
import sys

import pytest
from typer.testing import CliRunner

from treewatch.cli import app


@pytest.fixture
def runner():
    """Create a CliRunner for in-process testing."""
    return CliRunner()


def test_begin_end_json(runner, project):
    result = runner.invoke(app, ["begin", str(project), "--tick-source", "inode"])
    assert result.exit_code == 0, result.output
    assert "Watching" in result.output

    (project / "a.txt").rename(project / "b.txt")

    result = runner.invoke(app, ["end", str(project), "--json"])
    assert result.exit_code == 0, result.output
    data = json.loads(result.stdout)
    assert data["hasChanged"] is True
    assert data["renamed"] == [
        {"prevPath": "a.txt", "path": "b.txt", "moved": False, "similarity": 100.0},
    ]
    assert data["created"] == []
    assert data["deleted"] == []


def test_end_table(runner, project):
    runner.invoke(app, ["begin", str(project), "--tick-source", "inode"])
    (project / "a.txt").write_text("alpha beta gamma delta")

    result = runner.invoke(app, ["end", str(project)])

    assert result.exit_code == 0, result.output
    assert "rewritten" in result.output
    assert "75% match" in result.output


def test_end_no_changes(runner, project):
    runner.invoke(app, ["begin", str(project), "--tick-source", "inode"])

    result = runner.invoke(app, ["end", str(project), "--exit-code"])

    assert result.exit_code == 0
    assert "No changes" in result.output


def test_exit_code_on_change(runner, project):
    runner.invoke(app, ["begin", str(project), "--tick-source", "inode"])
    (project / "notes.txt").write_text("fresh notes")

    result = runner.invoke(app, ["end", str(project), "--exit-code"])

    assert result.exit_code == 1


def test_begin_with_ignore(runner, project):
    result = runner.invoke(app, ["begin", str(project), "-i", "docs", "--tick-source", "inode"])
    assert result.exit_code == 0, result.output

    result = runner.invoke(app, ["status", str(project)])
    assert "docs" in result.output
    assert "Files tracked: 3" in result.output


def test_missing_directory(runner, tmp_path):
    result = runner.invoke(app, ["begin", str(tmp_path / "missing")])

    assert result.exit_code == 1
    assert "Directory not found" in result.output


def test_unknown_tick_source(runner, project):
    result = runner.invoke(app, ["begin", str(project), "--tick-source", "bogus"])

    assert result.exit_code == 1
    assert "Unknown tick source" in result.output


def test_status(runner, project):
    result = runner.invoke(app, ["status", str(project)])
    assert result.exit_code == 0
    assert "Not watched" in result.output

    runner.invoke(app, ["begin", str(project), "--tick-source", "inode"])
    result = runner.invoke(app, ["status", str(project)])
    assert "Watching" in result.output

    runner.invoke(app, ["end", str(project)])
    result = runner.invoke(app, ["status", str(project)])
    assert "Ended" in result.output


def test_score(runner, tmp_path):
    first = tmp_path / "first.txt"
    second = tmp_path / "second.txt"
    first.write_text("a b")
    second.write_text("a b c d")

    result = runner.invoke(app, ["score", str(first), str(second)])

    assert result.exit_code == 0
    assert "50%" in result.output


def test_score_missing_file(runner, tmp_path):
    result = runner.invoke(app, ["score", str(tmp_path / "x"), str(tmp_path / "y")])

    assert result.exit_code == 1
    assert "File not found" in result.output


@pytest.mark.slow
def test_cli_real_subprocess(project):
    """Run the CLI as a module to verify the __main__ path."""
    commands = [
        [sys.executable, "-m", "treewatch.cli", "begin", str(project)],
        [sys.executable, "-m", "treewatch.cli", "end", str(project), "--json"],
    ]
    for cmd in commands:
        result = subprocess.run(cmd, capture_output=True, text=True)
        assert result.returncode == 0, f"Command {' '.join(cmd)} failed: {result.stderr}"

    assert json.loads(result.stdout)["hasChanged"] is False
