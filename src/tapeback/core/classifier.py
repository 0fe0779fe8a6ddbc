"""History classification for the current branch versus its base.

The three input lists come pre-fetched from the history layer; this module
only tags and orders them. It walks no ancestry of its own.
"""

import logging
import re
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from tapeback.models.commit import ClassifiedCommit, Commit, CommitKind, Lane

logger = logging.getLogger(__name__)

TIMESTAMP_FIELD = re.compile(r"^Timestamp:[ \t]*(.+?)[ \t]*$", re.MULTILINE)


def is_marked(commit: Commit, marker: str) -> bool:
    """Case-sensitive substring match of ``marker`` in the subject."""
    return marker in commit.subject


def parse_body_timestamp(body: str) -> Optional[datetime]:
    """Extract the recorder's ``Timestamp:`` field from a commit body.

    Naive values are taken as UTC. Returns None when the field is missing or
    unparseable.
    """
    match = TIMESTAMP_FIELD.search(body or "")
    if not match:
        return None

    raw = match.group(1)
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        stamp = datetime.fromisoformat(raw)
    except ValueError:
        logger.warning("Unparseable Timestamp field: %r", match.group(1))
        return None

    if stamp.tzinfo is None:
        stamp = stamp.replace(tzinfo=timezone.utc)
    return stamp


def _classify_one(
    commit: Commit, lane: Lane, kind: CommitKind, marker: str, order: int
) -> ClassifiedCommit:
    return ClassifiedCommit(
        **commit.model_dump(),
        lane=lane,
        kind=kind,
        is_marked=is_marked(commit, marker),
        order=order,
    )


def classify(
    branch_commits: Sequence[Commit],
    base_commits: Sequence[Commit],
    shared_commits: Sequence[Commit],
    marker: str,
) -> List[ClassifiedCommit]:
    """Tag every commit with its lane and kind and assign a display order.

    Args:
        branch_commits: Commits reachable from the branch tip but not the base.
        base_commits: Commits reachable from the base but not the branch tip.
        shared_commits: Newest-first ancestry starting at the merge-base.
        marker: Subject substring that flags a recording.

    Returns:
        Feature and base commits interleaved newest first (ties broken by id),
        followed by the shared commits in their given order. ``order`` runs
        0..n-1 over that sequence. The first shared commit is the diverge
        point.
    """
    upper = [(c, Lane.FEATURE, CommitKind.FEATURE) for c in branch_commits]
    upper += [(c, Lane.BASE, CommitKind.BASE) for c in base_commits]
    # Two stable passes: id ascending, then time descending.
    upper.sort(key=lambda item: item[0].id)
    upper.sort(key=lambda item: item[0].authored_at, reverse=True)

    lower = [
        (c, Lane.SHARED, CommitKind.DIVERGE if i == 0 else CommitKind.SHARED)
        for i, c in enumerate(shared_commits)
    ]

    classified = [
        _classify_one(commit, lane, kind, marker, order)
        for order, (commit, lane, kind) in enumerate(upper + lower)
    ]

    logger.debug(
        "Classified %d commits (%d feature, %d base, %d shared), %d marked",
        len(classified),
        len(branch_commits),
        len(base_commits),
        len(shared_commits),
        sum(1 for c in classified if c.is_marked),
    )
    return classified
