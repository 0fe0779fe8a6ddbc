"""Squash plan models."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel


class PlanAction(str, Enum):
    """Rebase action applied to a single commit."""

    PICK = "pick"
    REWORD = "reword"
    FIXUP = "fixup"


class PlanEntry(BaseModel):
    """One commit of the replay sequence and what happens to it."""

    commit_id: str
    subject: str
    action: PlanAction
    message: Optional[str] = None  # Only set for reword

    model_config = {"frozen": True}


class SquashPlan(BaseModel):
    """Oldest-first replay sequence collapsing the recording zone.

    Executing a plan is destructive. Callers must create a backup
    reference at the current tip before replaying it.
    """

    entries: List[PlanEntry]
    message: str

    model_config = {"frozen": True}

    @property
    def zone(self) -> List[PlanEntry]:
        """Entries collapsed into the new commit (reword plus fixups)."""
        return [e for e in self.entries if e.action != PlanAction.PICK]

    @property
    def head(self) -> PlanEntry:
        """The entry that becomes the squashed commit."""
        return next(e for e in self.entries if e.action == PlanAction.REWORD)

    @property
    def kept(self) -> List[PlanEntry]:
        """Entries replayed unchanged outside the zone."""
        return [e for e in self.entries if e.action == PlanAction.PICK]


class NoRewriteReason(str, Enum):
    """Planner outcomes that leave history alone."""

    EMPTY = "empty"
    SINGLE_NOOP = "single_noop"


class NoRewrite(BaseModel):
    """Planner result when there is nothing to squash."""

    reason: NoRewriteReason
    marked_ids: List[str] = []

    model_config = {"frozen": True}
