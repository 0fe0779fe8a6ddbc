"""Tests for recording headline generation."""

import subprocess
from unittest.mock import Mock, patch

from tapeback.core.headline import (
    build_prompt,
    deterministic_headline,
    generate_ai_headline,
    resolve_headline,
)


def test_build_prompt_includes_files_stat_and_message():
    """The prompt carries files, diff stat and agent message."""
    prompt = build_prompt(["src/auth.js", "tests/auth.test.js"], "3 files changed", "add login")
    assert "src/auth.js" in prompt
    assert "tests/auth.test.js" in prompt
    assert "3 files changed" in prompt
    assert "add login" in prompt


def test_build_prompt_caps_files_and_message():
    """The prompt caps the file list and the agent message."""
    prompt = build_prompt(["a.js", "b.js", "c.js", "d.js", "e.js", "f.js"], "", "x" * 300)
    assert "f.js" not in prompt
    assert "x" * 200 in prompt
    assert "x" * 201 not in prompt


def test_build_prompt_empty_context():
    """A prompt without context still reads sensibly."""
    prompt = build_prompt([], "", "")
    assert "unknown files" in prompt
    assert "Diff summary" not in prompt


def test_deterministic_headline_uses_basenames():
    """Deterministic headlines list file basenames."""
    headline = deterministic_headline(["src/auth/jwt.py", "tests/test_auth.py"])
    assert headline == "edit jwt.py, test_auth.py"


def test_deterministic_headline_notes_overflow():
    """More than three files are summarised as a count."""
    headline = deterministic_headline(["a.js", "b.js", "c.js", "d.js", "e.js"])
    assert headline == "edit a.js, b.js, c.js (+2 more)"


def test_deterministic_headline_without_files():
    """Without files the headline is generic."""
    assert deterministic_headline([]) == "edit files"
    assert deterministic_headline(None) == "edit files"


def _completed(stdout: str) -> Mock:
    return Mock(stdout=stdout, returncode=0)


def test_ai_headline_strips_quotes_and_takes_first_line():
    """Claude's answer is trimmed to its first unquoted line."""
    with patch("tapeback.core.headline.subprocess.run", return_value=_completed('"add JWT middleware"\nextra')):
        assert generate_ai_headline(["a.py"]) == "add JWT middleware"


def test_ai_headline_rejects_long_output():
    """Answers longer than a subject line are rejected."""
    with patch("tapeback.core.headline.subprocess.run", return_value=_completed("x" * 200 + "\n")):
        assert generate_ai_headline(["a.py"]) is None


def test_ai_headline_handles_missing_binary_and_timeout():
    """A missing claude binary or a timeout gives None."""
    with patch("tapeback.core.headline.subprocess.run", side_effect=FileNotFoundError("claude")):
        assert generate_ai_headline(["a.py"]) is None
    with patch(
        "tapeback.core.headline.subprocess.run",
        side_effect=subprocess.TimeoutExpired(cmd="claude", timeout=0.001),
    ):
        assert generate_ai_headline(["a.py"], timeout_ms=1) is None


def test_ai_headline_passes_timeout_in_seconds():
    """The millisecond timeout is handed to subprocess in seconds."""
    with patch("tapeback.core.headline.subprocess.run", return_value=_completed("fix it")) as run:
        generate_ai_headline(["a.py"], timeout_ms=2500)
    assert run.call_args.kwargs["timeout"] == 2.5
    assert run.call_args.args[0][:2] == ["claude", "-p"]


def test_resolve_headline_deterministic_never_calls_claude():
    """The deterministic style never spawns claude."""
    with patch("tapeback.core.headline.subprocess.run") as run:
        assert resolve_headline(["src/app.js"]) == "edit app.js"
    run.assert_not_called()


def test_resolve_headline_ai_falls_back():
    """The ai style falls back to the deterministic headline."""
    with patch("tapeback.core.headline.subprocess.run", side_effect=FileNotFoundError("claude")):
        assert resolve_headline(["src/fallback.js"], style="ai") == "edit fallback.js"


def test_resolve_headline_ai_success():
    """The ai style uses Claude's headline when it works."""
    with patch("tapeback.core.headline.subprocess.run", return_value=_completed("add login endpoint")):
        assert resolve_headline(["src/auth.js"], style="ai") == "add login endpoint"
