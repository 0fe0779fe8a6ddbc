"""Squash-zone planning.

The zone spans the first through the last recording in replay order.
Unmarked commits sandwiched between two recordings belong to the same
unit of work and are squashed along with them; commits outside the zone
are replayed untouched.
"""

import logging
from typing import Sequence, Union

from tapeback.core.classifier import is_marked
from tapeback.models.commit import Commit
from tapeback.models.plan import (
    NoRewrite,
    NoRewriteReason,
    PlanAction,
    PlanEntry,
    SquashPlan,
)

logger = logging.getLogger(__name__)


def plan(
    ordered_commits: Sequence[Commit], marker: str, final_message: str
) -> Union[SquashPlan, NoRewrite]:
    """Build the rebase plan collapsing the recording zone into one commit.

    Args:
        ordered_commits: Oldest-first commits after the base up to and
            including the branch tip.
        marker: Subject substring that flags a recording.
        final_message: Message for the squashed commit.

    Returns:
        ``NoRewrite(EMPTY)`` without recordings, ``NoRewrite(SINGLE_NOOP)``
        with exactly one, otherwise a ``SquashPlan``. The plan is only safe
        to execute after a backup reference to the current tip exists.
    """
    marked = [i for i, c in enumerate(ordered_commits) if is_marked(c, marker)]

    if not marked:
        logger.debug("No recordings among %d commits", len(ordered_commits))
        return NoRewrite(reason=NoRewriteReason.EMPTY)

    if len(marked) == 1:
        logger.debug("Single recording %s, nothing to squash", ordered_commits[marked[0]].short_id)
        return NoRewrite(
            reason=NoRewriteReason.SINGLE_NOOP,
            marked_ids=[ordered_commits[marked[0]].id],
        )

    first_idx, last_idx = marked[0], marked[-1]
    entries = []
    for i, commit in enumerate(ordered_commits):
        if i < first_idx or i > last_idx:
            entry = PlanEntry(commit_id=commit.id, subject=commit.subject, action=PlanAction.PICK)
        elif i == first_idx:
            entry = PlanEntry(
                commit_id=commit.id,
                subject=commit.subject,
                action=PlanAction.REWORD,
                message=final_message,
            )
        else:
            entry = PlanEntry(commit_id=commit.id, subject=commit.subject, action=PlanAction.FIXUP)
        entries.append(entry)

    logger.debug(
        "Zone [%d, %d] of %d commits: %d recordings, %d interleaved",
        first_idx,
        last_idx,
        len(ordered_commits),
        len(marked),
        (last_idx - first_idx + 1) - len(marked),
    )
    return SquashPlan(entries=entries, message=final_message)
