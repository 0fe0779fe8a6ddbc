"""Commit models shared by classification, targeting and layout."""

from datetime import datetime
from enum import Enum
from typing import List

from pydantic import BaseModel


class Lane(str, Enum):
    """Which side of the branch/base comparison a commit lives on."""

    FEATURE = "feature"
    BASE = "base"
    SHARED = "shared"


class CommitKind(str, Enum):
    """Display kind of a classified commit."""

    FEATURE = "feature"
    BASE = "base"
    SHARED = "shared"
    DIVERGE = "diverge"


class Commit(BaseModel):
    """Read-only snapshot of a commit as reported by git."""

    id: str
    parent_ids: List[str] = []
    subject: str
    body: str = ""
    author: str = ""
    authored_at: datetime

    model_config = {"frozen": True}

    @property
    def short_id(self) -> str:
        return self.id[:7]

    @property
    def is_root(self) -> bool:
        return not self.parent_ids

    @property
    def is_merge(self) -> bool:
        return len(self.parent_ids) > 1


class ClassifiedCommit(Commit):
    """A commit tagged with its lane, kind, marker flag and display order."""

    lane: Lane
    kind: CommitKind
    is_marked: bool
    order: int


class PositionedCommit(BaseModel):
    """A classified commit placed on the rendering grid."""

    commit: ClassifiedCommit
    lane_index: int
    row_index: int

    model_config = {"frozen": True}
