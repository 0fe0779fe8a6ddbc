"""Tests for the tapeback command line."""

import json
import tempfile
from pathlib import Path

import pytest
from click.testing import CliRunner
from git import Repo

from tapeback.cli.main import main


def rec_commit(repo: Repo, name: str, minute: int, content: str = None) -> str:
    path = Path(repo.working_tree_dir) / name
    path.write_text(content if content is not None else f"{name}\n")
    repo.index.add([name])
    message = f"chore(tapeback): edit {name} [REC]\n\nTimestamp: 2024-05-01T10:{minute:02d}:00Z"
    return repo.index.commit(message).hexsha


@pytest.fixture
def project(monkeypatch):
    """Repository with a ``test-base`` tag configured as the squash base."""
    with tempfile.TemporaryDirectory() as temp_dir:
        project_path = Path(temp_dir)
        repo = Repo.init(project_path)
        with repo.config_writer() as config:
            config.set_value("user", "name", "Test User")
            config.set_value("user", "email", "test@example.com")
        (project_path / "main.py").write_text("print('hello')\n")
        repo.index.add(["main.py"])
        repo.index.commit("Initial commit")
        repo.create_tag("test-base")

        (project_path / ".tapeback.json").write_text(json.dumps({"squashBaseRef": "test-base"}))
        monkeypatch.chdir(project_path)
        yield repo


@pytest.fixture
def runner():
    return CliRunner()


def test_list_shows_recordings(project, runner):
    """list prints the branch's recordings with their capture times."""
    rec_commit(project, "a.py", 1)
    rec_commit(project, "b.py", 2)

    result = runner.invoke(main, ["list"])

    assert result.exit_code == 0
    assert "Recordings on" in result.output
    assert "2024-05-01 10:02" in result.output
    assert "2024-05-01 10:01" in result.output


def test_list_without_recordings(project, runner):
    """list explains when the branch has no recordings."""
    result = runner.invoke(main, ["list"])

    assert result.exit_code == 0
    assert "No [REC] recordings on this branch" in result.output


def test_rewind_defaults_to_one(project, runner):
    """rewind with no selector drops the most recent recording."""
    first = rec_commit(project, "a.py", 1)
    rec_commit(project, "b.py", 2)

    result = runner.invoke(main, ["rewind", "--yes"])

    assert result.exit_code == 0, result.output
    assert project.head.commit.hexsha == first
    assert "Undo with: git reset --hard tapeback/pre-rewind-" in result.output


def test_rewind_to_identifier_prefix(project, runner):
    """rewind --to accepts an abbreviated hash."""
    first = rec_commit(project, "a.py", 1)
    rec_commit(project, "b.py", 2)
    rec_commit(project, "c.py", 3)

    result = runner.invoke(main, ["rewind", "--to", first[:8], "--yes"])

    assert result.exit_code == 0, result.output
    assert project.head.commit.hexsha == first


def test_rewind_at_timestamp(project, runner):
    """rewind --at lands on the last recording at or before the time."""
    rec_commit(project, "a.py", 1)
    second = rec_commit(project, "b.py", 2)
    rec_commit(project, "c.py", 3)

    result = runner.invoke(main, ["rewind", "--at", "2024-05-01T10:02:30Z", "--yes"])

    assert result.exit_code == 0, result.output
    assert project.head.commit.hexsha == second


def test_rewind_reports_unknown_identifier(project, runner):
    """An unknown hash is reported and history is left alone."""
    rec_commit(project, "a.py", 1)
    head = project.head.commit.hexsha

    result = runner.invoke(main, ["rewind", "--to", "deadbeef", "--yes"])

    assert result.exit_code == 1
    assert "No commit deadbeef" in result.output
    assert project.head.commit.hexsha == head


def test_rewind_out_of_range(project, runner):
    """Skipping more recordings than exist fails."""
    rec_commit(project, "a.py", 1)

    result = runner.invoke(main, ["rewind", "5", "--yes"])

    assert result.exit_code == 1
    assert "Cannot skip 5 recording(s)" in result.output


def test_rewind_rejects_multiple_selectors(project, runner):
    """COUNT, --to and --at are mutually exclusive."""
    result = runner.invoke(main, ["rewind", "1", "--to", "abcd"])
    assert result.exit_code == 2
    assert "Use only one of" in result.output


def test_rewind_rejects_bad_time(project, runner):
    """An unparseable --at value is a usage error."""
    result = runner.invoke(main, ["rewind", "--at", "teatime"])
    assert result.exit_code == 2


def test_rewind_count_zero_is_already_there(project, runner):
    """Rewinding to the current recording does nothing."""
    rec_commit(project, "a.py", 1)

    result = runner.invoke(main, ["rewind", "0"])

    assert result.exit_code == 0
    assert "Already at" in result.output


def test_rewind_declined_leaves_history(project, runner):
    """Answering no at the prompt keeps HEAD where it was."""
    rec_commit(project, "a.py", 1)
    rec_commit(project, "b.py", 2)
    head = project.head.commit.hexsha

    result = runner.invoke(main, ["rewind"], input="n\n")

    assert result.exit_code == 1
    assert project.head.commit.hexsha == head


def test_rewind_prompts_for_dirty_tree(project, runner):
    """A dirty tree prompts for a policy and stash keeps the edits."""
    first = rec_commit(project, "a.py", 1)
    rec_commit(project, "b.py", 2)
    (Path(project.working_tree_dir) / "main.py").write_text("edited\n")

    result = runner.invoke(main, ["rewind", "--yes"], input="stash\n")

    assert result.exit_code == 0, result.output
    assert project.head.commit.hexsha == first
    assert (Path(project.working_tree_dir) / "main.py").read_text() == "edited\n"


def test_squash_dry_run_prints_todo(project, runner):
    """squash --dry-run prints the rebase todo without rewriting."""
    rec_commit(project, "a.py", 1)
    rec_commit(project, "b.py", 2)
    head = project.head.commit.hexsha

    result = runner.invoke(main, ["squash", "--dry-run", "-m", "feat: both"])

    assert result.exit_code == 0, result.output
    assert "reword" in result.output
    assert "fixup" in result.output
    assert project.head.commit.hexsha == head


def test_squash_rewrites_history(project, runner):
    """squash -m collapses the recordings into one commit."""
    rec_commit(project, "a.py", 1)
    rec_commit(project, "b.py", 2)

    result = runner.invoke(main, ["squash", "-m", "feat: both files", "--yes"])

    assert result.exit_code == 0, result.output
    assert [c.summary for c in project.iter_commits("test-base..HEAD")] == ["feat: both files"]
    assert "Squashed into" in result.output


def test_squash_prompts_for_message(project, runner):
    """squash asks for a message when -m is missing."""
    rec_commit(project, "a.py", 1)
    rec_commit(project, "b.py", 2)

    result = runner.invoke(main, ["squash"], input="feat: prompted\ny\n")

    assert result.exit_code == 0, result.output
    assert project.head.commit.summary == "feat: prompted"


def test_squash_nothing_to_do(project, runner):
    """squash without recordings stops with advice."""
    result = runner.invoke(main, ["squash", "-m", "x"])

    assert result.exit_code == 0
    assert "nothing to squash" in result.output


def test_squash_single_recording_is_noop(project, runner):
    """A single recording is never rewritten."""
    rec_commit(project, "a.py", 1)
    head = project.head.commit.hexsha

    result = runner.invoke(main, ["squash", "-m", "x", "--yes"])

    assert result.exit_code == 0
    assert "Only one recording" in result.output
    assert project.head.commit.hexsha == head


def test_graph_renders_lanes(project, runner):
    """graph draws lane markers including the diverge point."""
    rec_commit(project, "a.py", 1)

    result = runner.invoke(main, ["graph"])

    assert result.exit_code == 0, result.output
    assert "shared" in result.output
    assert "◎" in result.output
    assert "●" in result.output


def test_init_wires_hook_and_config(project, runner):
    """init writes the hook and config once and is idempotent."""
    root = Path(project.working_tree_dir)
    (root / ".tapeback.json").unlink()

    result = runner.invoke(main, ["init"])

    assert result.exit_code == 0, result.output
    settings = json.loads((root / ".claude" / "settings.json").read_text())
    [group] = settings["hooks"]["PostToolUse"]
    assert group["hooks"][0]["command"] == "tapeback-record"
    assert json.loads((root / ".tapeback.json").read_text())["recTag"] == "[REC]"

    again = runner.invoke(main, ["init"])
    assert "already wired" in again.output
    assert len(json.loads((root / ".claude" / "settings.json").read_text())["hooks"]["PostToolUse"]) == 1


def test_commands_outside_repository(monkeypatch, runner):
    """Commands outside a git repository exit with an error."""
    with tempfile.TemporaryDirectory() as temp_dir:
        monkeypatch.chdir(temp_dir)
        result = runner.invoke(main, ["list"])
    assert result.exit_code == 1
    assert "Error" in result.output
