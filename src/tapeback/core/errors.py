"""Exceptions raised by the git-facing layers of tapeback."""

from typing import Optional


class TapebackError(Exception):
    """Base exception for tapeback operations."""


class NotARepositoryError(TapebackError):
    """Raised when no git repository encloses the working directory."""


class DirtyWorkingTreeError(TapebackError):
    """Raised when uncommitted changes would be lost or block a rewrite."""


class RewriteConflictError(TapebackError):
    """Raised when replaying a squash plan stops on a conflict.

    The rebase has already been aborted; ``backup_tag`` still points at the
    pre-rewrite tip.
    """

    def __init__(self, message: str, backup_tag: Optional[str] = None):
        super().__init__(message)
        self.backup_tag = backup_tag
