"""Grid placement of classified commits for graph rendering."""

from typing import Dict, List, Sequence

from tapeback.models.commit import ClassifiedCommit, Lane, PositionedCommit

# Left to right: base | shared | feature
LANE_INDEX: Dict[Lane, int] = {
    Lane.BASE: 0,
    Lane.SHARED: 1,
    Lane.FEATURE: 2,
}


def layout(commits: Sequence[ClassifiedCommit]) -> List[PositionedCommit]:
    """Place each commit at ``(LANE_INDEX[lane], order)``."""
    return [
        PositionedCommit(commit=c, lane_index=LANE_INDEX[c.lane], row_index=c.order)
        for c in sorted(commits, key=lambda c: c.order)
    ]
