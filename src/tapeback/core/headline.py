"""Commit headline generation for recorded edits."""

import logging
import subprocess
from pathlib import PurePosixPath
from typing import List, Optional, Sequence

logger = logging.getLogger(__name__)

MAX_HEADLINE_LENGTH = 72
DEFAULT_TIMEOUT_MS = 5000


def build_prompt(file_names: Sequence[str], diff_stat: str = "", agent_message: str = "") -> str:
    """Prompt asking ``claude -p`` for a conventional commit headline."""
    files = ", ".join(list(file_names)[:5]) or "unknown files"
    message = (agent_message or "")[:200]

    parts: List[str] = [
        "Generate a single concise conventional commit headline "
        "(max 72 chars, no quotes, no period at end) describing these code changes. "
        "Use imperative mood. "
        'Examples: "add JWT middleware", "fix token expiry validation", '
        '"extract auth helper functions". ',
        f"Changed files: {files}. ",
    ]
    if diff_stat:
        parts.append(f"Diff summary: {diff_stat}. ")
    if message:
        parts.append(f"Agent instruction: {message}. ")
    parts.append("Output ONLY the headline text, nothing else.")
    return "".join(parts)


def generate_ai_headline(
    file_names: Sequence[str],
    diff_stat: str = "",
    agent_message: str = "",
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
) -> Optional[str]:
    """Ask the ``claude`` CLI for a headline.

    Returns None on timeout, a missing binary, a non-zero exit, or output
    that is empty or longer than ``MAX_HEADLINE_LENGTH``.
    """
    prompt = build_prompt(file_names, diff_stat, agent_message)
    try:
        result = subprocess.run(  # noqa: S603, S607
            ["claude", "-p", prompt],
            capture_output=True,
            text=True,
            timeout=timeout_ms / 1000,
            check=True,
        )
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug("AI headline unavailable: %s", e)
        return None

    lines = result.stdout.splitlines()
    headline = lines[0].strip().strip("\"'") if lines else ""
    if not headline or len(headline) > MAX_HEADLINE_LENGTH:
        return None
    return headline


def deterministic_headline(file_names: Optional[Sequence[str]]) -> str:
    """``edit a.py, b.py, c.py (+N more)`` from basenames, or ``edit files``."""
    if not file_names:
        return "edit files"

    names = ", ".join(PurePosixPath(f).name for f in list(file_names)[:3])
    extra = len(file_names) - 3
    suffix = f" (+{extra} more)" if extra > 0 else ""
    return f"edit {names}{suffix}"


def resolve_headline(
    file_names: Sequence[str],
    diff_stat: str = "",
    agent_message: str = "",
    style: str = "deterministic",
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
) -> str:
    """Headline for a recording; always non-empty."""
    if style == "ai":
        headline = generate_ai_headline(file_names, diff_stat, agent_message, timeout_ms)
        if headline:
            return headline
    return deterministic_headline(file_names)
