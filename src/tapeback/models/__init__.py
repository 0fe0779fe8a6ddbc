"""Data models for tapeback."""

from .commit import ClassifiedCommit, Commit, CommitKind, Lane, PositionedCommit
from .criterion import (
    AtCriterion,
    CountCriterion,
    FailureKind,
    IdentifierCriterion,
    ResolutionFailure,
    SelectionCriterion,
)
from .plan import NoRewrite, NoRewriteReason, PlanAction, PlanEntry, SquashPlan

__all__ = [
    "AtCriterion",
    "ClassifiedCommit",
    "Commit",
    "CommitKind",
    "CountCriterion",
    "FailureKind",
    "IdentifierCriterion",
    "Lane",
    "NoRewrite",
    "NoRewriteReason",
    "PlanAction",
    "PlanEntry",
    "PositionedCommit",
    "ResolutionFailure",
    "SelectionCriterion",
    "SquashPlan",
]
