"""Rewind target resolution.

Only recordings unique to the current branch (feature lane) can ever be
returned. Failures come back as ``ResolutionFailure`` values, never as
exceptions.
"""

import logging
import re
from datetime import date, datetime, time, timezone
from typing import List, Optional, Sequence, Union

from tapeback.core.classifier import parse_body_timestamp
from tapeback.models.commit import ClassifiedCommit, Lane
from tapeback.models.criterion import (
    AtCriterion,
    CountCriterion,
    FailureKind,
    IdentifierCriterion,
    ResolutionFailure,
    SelectionCriterion,
)

logger = logging.getLogger(__name__)

MIN_PREFIX_LENGTH = 4

_TIME_ONLY = re.compile(r"^\d{1,2}:\d{2}(:\d{2})?$")

Resolution = Union[ClassifiedCommit, ResolutionFailure]


def marked_targets(commits: Sequence[ClassifiedCommit]) -> List[ClassifiedCommit]:
    """Feature-lane recordings, newest first."""
    return sorted(
        (c for c in commits if c.is_marked and c.lane == Lane.FEATURE),
        key=lambda c: c.order,
    )


def _find_by_identifier(
    commits: Sequence[ClassifiedCommit], identifier: str
) -> Optional[ClassifiedCommit]:
    for commit in commits:
        if commit.id == identifier:
            return commit

    if len(identifier) < MIN_PREFIX_LENGTH:
        return None

    matches = [c for c in commits if c.id.startswith(identifier)]
    if len(matches) == 1:
        return matches[0]
    if len(matches) > 1:
        logger.debug("Identifier %s is ambiguous (%d matches)", identifier, len(matches))
    return None


def _resolve_count(
    targets: List[ClassifiedCommit], criterion: CountCriterion
) -> Resolution:
    if criterion.count >= len(targets):
        return ResolutionFailure(
            kind=FailureKind.OUT_OF_RANGE,
            detail=(
                f"Cannot skip {criterion.count} recording(s): "
                f"only {len(targets)} on this branch"
            ),
        )
    return targets[criterion.count]


def _resolve_identifier(
    commits: Sequence[ClassifiedCommit], criterion: IdentifierCriterion
) -> Resolution:
    commit = _find_by_identifier(commits, criterion.identifier)
    if commit is None:
        return ResolutionFailure(
            kind=FailureKind.NOT_FOUND,
            detail=f"No commit {criterion.identifier} in the inspected history",
        )
    if not commit.is_marked:
        return ResolutionFailure(
            kind=FailureKind.NOT_A_MARKED_COMMIT,
            detail=f"Commit {commit.short_id} is not a recording: {commit.subject}",
        )
    if commit.lane != Lane.FEATURE:
        return ResolutionFailure(
            kind=FailureKind.OUTSIDE_BRANCH,
            detail=f"Recording {commit.short_id} is not unique to this branch",
        )
    return commit


def _resolve_at(
    targets: List[ClassifiedCommit], criterion: AtCriterion
) -> Resolution:
    cutoff = criterion.at
    if cutoff.tzinfo is None:
        cutoff = cutoff.replace(tzinfo=timezone.utc)

    best = None
    best_stamp = None
    for commit in targets:
        stamp = parse_body_timestamp(commit.body)
        if stamp is None:
            logger.debug("Recording %s has no Timestamp field, skipping", commit.short_id)
            continue
        if stamp <= cutoff and (best_stamp is None or stamp > best_stamp):
            best, best_stamp = commit, stamp

    if best is None:
        return ResolutionFailure(
            kind=FailureKind.NONE_BEFORE_TIMESTAMP,
            detail=f"No recording captured at or before {cutoff.isoformat()}",
        )
    return best


def resolve(
    commits: Sequence[ClassifiedCommit], criterion: SelectionCriterion
) -> Resolution:
    """Find the single recording matching ``criterion``.

    Args:
        commits: Classifier output. Identifier lookups search all of it so
            that unmarked or non-branch commits are reported precisely;
            every result is a feature-lane recording.
        criterion: Count, identifier or timestamp selection.
    """
    targets = marked_targets(commits)

    if isinstance(criterion, CountCriterion):
        result = _resolve_count(targets, criterion)
    elif isinstance(criterion, IdentifierCriterion):
        result = _resolve_identifier(commits, criterion)
    elif isinstance(criterion, AtCriterion):
        result = _resolve_at(targets, criterion)
    else:
        raise TypeError(f"Unsupported criterion: {criterion!r}")

    if isinstance(result, ResolutionFailure):
        logger.debug("Resolution failed (%s): %s", result.kind.value, result.detail)
    else:
        logger.debug("Resolved %r to %s", criterion, result.short_id)
    return result


def parse_target_time(text: str, today: Optional[date] = None) -> datetime:
    """Parse a ``--at`` value.

    Accepts a full ISO-8601 datetime (``Z`` suffix allowed) or a bare
    ``HH:MM[:SS]`` time, which is taken on ``today`` (UTC date by default).
    Naive values are UTC.
    """
    text = text.strip()
    if _TIME_ONLY.match(text):
        parts = [int(p) for p in text.split(":")]
        clock = time(*parts)
        day = today or datetime.now(timezone.utc).date()
        return datetime.combine(day, clock, tzinfo=timezone.utc)

    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    stamp = datetime.fromisoformat(text)
    if stamp.tzinfo is None:
        stamp = stamp.replace(tzinfo=timezone.utc)
    return stamp
