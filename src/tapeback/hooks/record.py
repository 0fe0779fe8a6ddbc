#!/usr/bin/env python3
"""Claude Code PostToolUse hook - records every file edit as a [REC] commit.

This hook must never block Claude: every failure is logged to the debug
file and the process always exits 0.
"""

import json
import logging
import string
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import git
from git import Repo

from tapeback.core.config import TapebackConfig, load_config
from tapeback.core.errors import NotARepositoryError
from tapeback.core.headline import resolve_headline
from tapeback.core.history import open_repository
from tapeback.log import configure_hook_logging

logger = logging.getLogger(__name__)

HOOK_NAME = "tapeback"
RECORDED_TOOLS = {"Write", "Edit", "MultiEdit"}
MAX_SESSION_ID = 128
MAX_AGENT_MESSAGE = 100
MAX_STAT_LINES = 20

_PRINTABLE = set(string.printable) - set("\n\r\x0b\x0c")


def _printable(text: str, limit: int) -> str:
    return "".join(ch for ch in text if ch in _PRINTABLE)[:limit]


def parse_hook_input(raw: str) -> Dict[str, Any]:
    """Decode the hook payload; anything unusable becomes an empty dict."""
    if not raw.strip():
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        logger.debug("Hook input is not JSON")
        return {}
    return data if isinstance(data, dict) else {}


def extract_agent_message(hook_data: Dict[str, Any]) -> str:
    """First printable characters of the written content or replacement."""
    tool_input = hook_data.get("tool_input") or {}
    if not isinstance(tool_input, dict):
        return ""
    content = tool_input.get("content") or tool_input.get("new_string") or ""
    flattened = str(content).replace("\n", " ").replace("\r", " ")
    return _printable(flattened, MAX_AGENT_MESSAGE)


def extract_session_id(hook_data: Dict[str, Any]) -> str:
    session_id = _printable(str(hook_data.get("session_id") or ""), MAX_SESSION_ID)
    return session_id or "unknown"


def stage_changes(repo: Repo, ignore: List[str]) -> None:
    """``git add -A`` excluding the ignore globs."""
    excludes = [f":!{pattern}" for pattern in ignore if pattern]
    if not excludes:
        repo.git.add("-A")
        return
    try:
        repo.git.add("-A", "--", *excludes)
    except git.GitCommandError as e:
        logger.debug("Pathspec add failed (%s), staging everything", e)
        repo.git.add("-A")


def has_staged_changes(repo: Repo) -> bool:
    return bool(repo.git.diff("--cached", "--name-only").strip())


def build_commit_message(
    headline: str,
    config: TapebackConfig,
    changed_files: str,
    timestamp: datetime,
    session_id: str,
    agent_message: str = "",
) -> str:
    """Subject line plus the recorder body read back by rewind targeting."""
    subject = f"chore({HOOK_NAME}): {headline} {config.rec_tag}"

    body: List[str] = []
    if agent_message:
        body.append(f'Agent message: "{agent_message}"')
    body.append("Changed files:")
    body.append(changed_files)
    body.append("")
    body.append(f"Timestamp: {timestamp.strftime('%Y-%m-%dT%H:%M:%SZ')}")
    if config.session_tag:
        body.append(f"Session: {session_id}")

    return subject + "\n\n" + "\n".join(body)


def record(hook_data: Dict[str, Any], cwd: Path, now: Optional[datetime] = None) -> Optional[str]:
    """Commit the pending edit described by ``hook_data``.

    Returns:
        The new commit hash, or None when nothing was recorded.
    """
    tool_name = hook_data.get("tool_name")
    if tool_name not in RECORDED_TOOLS:
        logger.debug("Ignoring tool %r", tool_name)
        return None

    try:
        repo = open_repository(cwd)
    except NotARepositoryError:
        logger.debug("Not in a git repository: %s", cwd)
        return None

    project_root = Path(repo.working_tree_dir)
    config = load_config(project_root)

    stage_changes(repo, config.ignore)
    if not has_staged_changes(repo):
        logger.debug("Nothing staged after %s", tool_name)
        return None

    stat_lines = repo.git.diff("--cached", "--stat").splitlines()
    changed_files = "\n".join(stat_lines[:MAX_STAT_LINES]) or "  (unable to stat)"
    diff_stat = stat_lines[-1].strip() if stat_lines else ""
    file_names = repo.git.diff("--cached", "--name-only").splitlines()[:5]

    agent_message = extract_agent_message(hook_data)
    headline = resolve_headline(
        file_names,
        diff_stat=diff_stat,
        agent_message=agent_message,
        style=config.message_style,
        timeout_ms=config.ai_timeout_ms,
    )

    message = build_commit_message(
        headline,
        config,
        changed_files,
        now or datetime.now(timezone.utc),
        extract_session_id(hook_data),
        agent_message,
    )
    repo.git.commit("--no-verify", "-m", message)
    commit_hash = repo.head.commit.hexsha
    logger.info("Recorded %s: %s", commit_hash[:8], message.splitlines()[0])
    return commit_hash


def main():
    """Handle a Claude Code PostToolUse event."""
    try:
        configure_hook_logging()
    except OSError:
        pass

    try:
        hook_data = parse_hook_input(sys.stdin.read() if not sys.stdin.isatty() else "")
        record(hook_data, Path.cwd())
    except Exception:
        # Claude must keep working whatever happens here
        logger.exception("Recorder hook failed")
    sys.exit(0)


if __name__ == "__main__":
    main()
