"""Install the tapeback recorder into Claude Code settings."""

import json
import logging
import shutil
from pathlib import Path
from typing import Any, Dict, List

from tapeback.core.config import CONFIG_FILENAME, TapebackConfig

logger = logging.getLogger(__name__)

RECORD_COMMAND = "tapeback-record"
RECORD_MATCHER = "Write|Edit|MultiEdit"


def get_claude_config_dir() -> Path:
    """Get Claude configuration directory."""
    return Path.home() / ".claude"


def get_project_claude_dir(project_root: Path) -> Path:
    """Get project-specific Claude directory."""
    return project_root / ".claude"


def create_hook_config() -> Dict[str, Any]:
    """Claude Code hook configuration wiring the recorder."""
    return {
        "hooks": {
            "PostToolUse": [
                {
                    "matcher": RECORD_MATCHER,
                    "hooks": [{"type": "command", "command": RECORD_COMMAND}],
                }
            ]
        }
    }


def _already_wired(existing: List[Dict[str, Any]], group: Dict[str, Any]) -> bool:
    commands = {h.get("command") for h in group.get("hooks", [])}
    for entry in existing:
        if entry.get("matcher") != group.get("matcher"):
            continue
        if any(h.get("command") in commands for h in entry.get("hooks", [])):
            return True
    return False


def merge_settings(settings_file: Path, incoming: Dict[str, Any]) -> bool:
    """Merge ``incoming`` hooks into ``settings_file`` without duplicates.

    An unparseable settings file is copied to ``<name>.bak`` and replaced.

    Returns:
        True if any hook group was added.
    """
    existing: Dict[str, Any] = {}
    if settings_file.exists():
        try:
            existing = json.loads(settings_file.read_text(encoding="utf-8"))
            if not isinstance(existing, dict):
                raise ValueError("settings root is not an object")
        except ValueError as e:
            backup = settings_file.with_name(settings_file.name + ".bak")
            logger.warning("Could not parse %s (%s), backing it up to %s", settings_file, e, backup)
            shutil.copyfile(settings_file, backup)
            existing = {}

    hooks = existing.setdefault("hooks", {})
    added = False
    for event, groups in incoming.get("hooks", {}).items():
        event_hooks = hooks.setdefault(event, [])
        for group in groups:
            if not _already_wired(event_hooks, group):
                event_hooks.append(group)
                added = True

    settings_file.parent.mkdir(parents=True, exist_ok=True)
    settings_file.write_text(json.dumps(existing, indent=2) + "\n", encoding="utf-8")
    return added


def write_default_config(project_root: Path) -> bool:
    """Create ``.tapeback.json`` with defaults; returns False if it exists."""
    config_file = project_root / CONFIG_FILENAME
    if config_file.exists():
        return False
    config_file.write_text(json.dumps(TapebackConfig().to_file_dict(), indent=2) + "\n", encoding="utf-8")
    return True
