"""Selection criteria and failure values for rewind targeting."""

from datetime import datetime
from enum import Enum
from typing import Union

from pydantic import BaseModel, Field


class CountCriterion(BaseModel):
    """Skip the ``count`` most recent recordings and land on the next one."""

    count: int = Field(ge=0)

    model_config = {"frozen": True}


class IdentifierCriterion(BaseModel):
    """Target a recording by its commit hash (full or unique prefix)."""

    identifier: str = Field(min_length=1)

    model_config = {"frozen": True}


class AtCriterion(BaseModel):
    """Target the latest recording captured at or before ``at``."""

    at: datetime

    model_config = {"frozen": True}


SelectionCriterion = Union[CountCriterion, IdentifierCriterion, AtCriterion]


class FailureKind(str, Enum):
    """Why a selection criterion matched no recording."""

    OUT_OF_RANGE = "out_of_range"
    NOT_FOUND = "not_found"
    NOT_A_MARKED_COMMIT = "not_a_marked_commit"
    OUTSIDE_BRANCH = "outside_branch"
    NONE_BEFORE_TIMESTAMP = "none_before_timestamp"


class ResolutionFailure(BaseModel):
    """Typed result returned instead of a commit when targeting fails."""

    kind: FailureKind
    detail: str

    model_config = {"frozen": True}
