"""Destructive history operations: backup tags, rewind and squash replay.

Every operation here creates a backup tag at the current tip before it
touches history. Backup tags are never deleted automatically.
"""

import logging
import shlex
import tempfile
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import List, Optional

import git
from git import Repo
from pydantic import BaseModel

from tapeback.core.errors import DirtyWorkingTreeError, RewriteConflictError
from tapeback.models.plan import SquashPlan

logger = logging.getLogger(__name__)

BACKUP_TAG_PREFIX = "tapeback/pre-"
STASH_MESSAGE = "tapeback: pre-rewind stash"


class DirtyPolicy(str, Enum):
    """What to do with uncommitted changes before a rewind."""

    REFUSE = "refuse"
    STASH = "stash"
    DISCARD = "discard"


class RewindResult(BaseModel):
    """Outcome of a rewind."""

    backup_tag: str
    target: str
    stashed: bool = False
    stash_restored: bool = False


class SquashResult(BaseModel):
    """Outcome of replaying a squash plan."""

    backup_tag: str
    new_head: str


def todo_lines(plan: SquashPlan) -> List[str]:
    """Render a plan as interactive-rebase todo lines, oldest first."""
    return [f"{e.action.value} {e.commit_id} {e.subject}" for e in plan.entries]


class HistoryRewriter:
    """Executes rewinds and squash plans against a single repository."""

    def __init__(self, repo: Repo):
        self.repo = repo

    def _is_dirty(self) -> bool:
        return self.repo.is_dirty(index=True, working_tree=True, untracked_files=False)

    def create_backup_tag(self, kind: str, now: Optional[datetime] = None) -> str:
        """Tag HEAD as ``tapeback/pre-<kind>-<UTC stamp>``."""
        stamp = (now or datetime.now(timezone.utc)).strftime("%Y%m%dT%H%M%SZ")
        base_name = f"{BACKUP_TAG_PREFIX}{kind}-{stamp}"
        existing = {t.name for t in self.repo.tags}

        name = base_name
        suffix = 2
        while name in existing:
            name = f"{base_name}-{suffix}"
            suffix += 1

        self.repo.create_tag(name, ref="HEAD")
        logger.info("Created backup tag %s at %s", name, self.repo.head.commit.hexsha[:8])
        return name

    def list_backup_tags(self) -> List[str]:
        return sorted(t.name for t in self.repo.tags if t.name.startswith(BACKUP_TAG_PREFIX))

    def rewind(self, target: str, dirty_policy: DirtyPolicy = DirtyPolicy.REFUSE) -> RewindResult:
        """Hard-reset the current branch to ``target``.

        Uncommitted changes are refused, stashed and re-applied afterwards,
        or discarded, depending on ``dirty_policy``.
        """
        dirty = self._is_dirty()
        if dirty and dirty_policy == DirtyPolicy.REFUSE:
            raise DirtyWorkingTreeError(
                "Uncommitted changes present; stash or discard them before rewinding"
            )

        backup_tag = self.create_backup_tag("rewind")

        stashed = False
        if dirty and dirty_policy == DirtyPolicy.STASH:
            self.repo.git.stash("push", "-m", STASH_MESSAGE)
            stashed = True
            logger.info("Stashed uncommitted changes")

        logger.info("Resetting to %s", target[:8])
        self.repo.git.reset("--hard", target)

        stash_restored = False
        if stashed:
            try:
                self.repo.git.stash("pop")
                stash_restored = True
            except git.GitCommandError as e:
                logger.warning("Stash could not be re-applied cleanly, it is kept in the stash list: %s", e.stderr)

        return RewindResult(
            backup_tag=backup_tag,
            target=target,
            stashed=stashed,
            stash_restored=stash_restored,
        )

    def execute(self, plan: SquashPlan, onto: Optional[str]) -> SquashResult:
        """Replay ``plan`` on top of ``onto`` (or from the root when None).

        Raises:
            DirtyWorkingTreeError: Tracked files have uncommitted changes.
            RewriteConflictError: The replay stopped; it has been aborted.
        """
        if self._is_dirty():
            raise DirtyWorkingTreeError("Uncommitted changes present; commit or stash them before squashing")

        backup_tag = self.create_backup_tag("squash")

        with tempfile.TemporaryDirectory(prefix="tapeback_") as tmp:
            todo_file = Path(tmp) / "git-rebase-todo"
            message_file = Path(tmp) / "message.txt"
            todo_file.write_text("\n".join(todo_lines(plan)) + "\n", encoding="utf-8")
            message_file.write_text(plan.message.rstrip("\n") + "\n", encoding="utf-8")

            args = ["-i", onto] if onto else ["-i", "--root"]
            env = {
                "GIT_SEQUENCE_EDITOR": f"cp {shlex.quote(str(todo_file))}",
                "GIT_EDITOR": f"cp {shlex.quote(str(message_file))}",
            }

            logger.info("Replaying %d commits onto %s", len(plan.entries), onto[:8] if onto else "root")
            try:
                with self.repo.git.custom_environment(**env):
                    self.repo.git.rebase(*args)
            except git.GitCommandError as e:
                self._abort_rebase()
                raise RewriteConflictError(
                    f"Squash stopped and was aborted: {e.stderr.strip() if e.stderr else e}",
                    backup_tag=backup_tag,
                ) from e

        new_head = self.repo.head.commit.hexsha
        logger.info("Squash complete, HEAD is now %s", new_head[:8])
        return SquashResult(backup_tag=backup_tag, new_head=new_head)

    def _abort_rebase(self) -> None:
        try:
            self.repo.git.rebase("--abort")
        except git.GitCommandError as e:
            logger.warning("git rebase --abort failed: %s", e.stderr)
