"""Read-only git queries feeding the classifier, resolver and planner."""

import logging
from pathlib import Path
from typing import List, NamedTuple, Optional, Tuple

import git
from git import Repo
from git.exc import BadName, InvalidGitRepositoryError, NoSuchPathError

from tapeback.core.errors import NotARepositoryError
from tapeback.models.commit import Commit

logger = logging.getLogger(__name__)

MAX_BRANCH_COMMITS = 30
MAX_SHARED_COMMITS = 10


class HistorySnapshot(NamedTuple):
    """The three classifier inputs captured together."""

    branch: List[Commit]
    base: List[Commit]
    shared: List[Commit]
    base_found: bool


def to_commit(commit: git.Commit) -> Commit:
    """Convert a GitPython commit into the immutable domain model."""
    message = commit.message
    if isinstance(message, bytes):
        message = message.decode("utf-8", errors="replace")
    subject, _, body = message.partition("\n")
    return Commit(
        id=commit.hexsha,
        parent_ids=[p.hexsha for p in commit.parents],
        subject=subject.strip(),
        body=body.strip("\n"),
        author=commit.author.email or commit.author.name or "",
        authored_at=commit.authored_datetime,
    )


def open_repository(path: Path) -> Repo:
    """Open the repository enclosing ``path``."""
    try:
        return Repo(path, search_parent_directories=True)
    except (InvalidGitRepositoryError, NoSuchPathError) as e:
        raise NotARepositoryError(f"Not inside a git repository: {path}") from e


class HistoryReader:
    """Bounded commit listings for the current branch and a base ref."""

    def __init__(self, repo: Repo):
        self.repo = repo

    @classmethod
    def from_path(cls, path: Path) -> "HistoryReader":
        return cls(open_repository(path))

    @property
    def project_root(self) -> Path:
        return Path(self.repo.working_tree_dir)

    def resolve_ref(self, ref: str) -> Optional[str]:
        """Full hash ``ref`` points at, or None if it does not resolve."""
        try:
            return self.repo.commit(ref).hexsha
        except (BadName, ValueError, git.GitCommandError):
            return None

    def current_branch(self) -> str:
        try:
            return self.repo.active_branch.name
        except TypeError:
            return "HEAD"

    def has_commits(self) -> bool:
        return self.resolve_ref("HEAD") is not None

    def is_dirty(self) -> bool:
        """Whether tracked files have staged or unstaged changes."""
        return self.repo.is_dirty(index=True, working_tree=True, untracked_files=False)

    def _list(
        self, rev: str, limit: Optional[int] = None, reverse: bool = False, no_merges: bool = False
    ) -> List[Commit]:
        kwargs = {}
        if no_merges:
            kwargs["no_merges"] = True
        if limit is not None:
            kwargs["max_count"] = limit
        if reverse:
            kwargs["reverse"] = True
        return [to_commit(c) for c in self.repo.iter_commits(rev, **kwargs)]

    def ancestry_exclusive(self, ref_a: str, ref_b: str, limit: int = MAX_BRANCH_COMMITS) -> List[Commit]:
        """Commits reachable from ``ref_a`` but not ``ref_b``, newest first."""
        return self._list(f"{ref_b}..{ref_a}", limit=limit)

    def merge_base(self, ref_a: str, ref_b: str) -> Optional[str]:
        bases = self.repo.merge_base(ref_a, ref_b)
        return bases[0].hexsha if bases else None

    def common_ancestor_chain(self, ref_a: str, ref_b: str, limit: int = MAX_SHARED_COMMITS) -> List[Commit]:
        """Ancestry from the merge-base of the two refs, newest first."""
        base = self.merge_base(ref_a, ref_b)
        if base is None:
            return []
        return self._list(base, limit=limit)

    def linear_range(
        self, base_ref: Optional[str], tip_ref: str = "HEAD", no_merges: bool = False
    ) -> List[Commit]:
        """Oldest-first commits after ``base_ref`` up to ``tip_ref``.

        With no base, the whole ancestry of the tip is returned.
        """
        rev = f"{base_ref}..{tip_ref}" if base_ref else tip_ref
        return self._list(rev, reverse=True, no_merges=no_merges)

    def snapshot(
        self,
        base_ref: str,
        branch_limit: int = MAX_BRANCH_COMMITS,
        shared_limit: int = MAX_SHARED_COMMITS,
    ) -> HistorySnapshot:
        """Capture branch, base and shared listings in one pass.

        If ``base_ref`` does not resolve, every commit reachable from HEAD
        counts as branch history.
        """
        if not self.has_commits():
            return HistorySnapshot([], [], [], base_found=False)

        if self.resolve_ref(base_ref) is None:
            logger.warning("Base ref %r not found; treating all of HEAD as branch history", base_ref)
            return HistorySnapshot(self._list("HEAD", limit=branch_limit), [], [], base_found=False)

        snapshot = HistorySnapshot(
            branch=self.ancestry_exclusive("HEAD", base_ref, limit=branch_limit),
            base=self.ancestry_exclusive(base_ref, "HEAD", limit=branch_limit),
            shared=self.common_ancestor_chain("HEAD", base_ref, limit=shared_limit),
            base_found=True,
        )
        logger.debug(
            "Snapshot vs %s: %d branch, %d base, %d shared",
            base_ref,
            len(snapshot.branch),
            len(snapshot.base),
            len(snapshot.shared),
        )
        return snapshot

    def squash_range(self, base_ref: str) -> Tuple[Optional[str], List[Commit]]:
        """Replay start point and the oldest-first commits to replay.

        The start point is the merge-base with ``base_ref`` so commits that
        landed on the base after the fork are never pulled in. It is None
        when the base cannot be resolved, meaning replay from the root.
        Merge commits are left out, as in a plain interactive rebase todo.
        """
        onto = None
        if self.resolve_ref(base_ref) is not None:
            onto = self.merge_base("HEAD", base_ref)
        return onto, self.linear_range(onto, "HEAD", no_merges=True)
