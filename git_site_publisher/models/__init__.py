"""Data models for git-site-publisher."""

from .target import PublishTarget
from .worktree import Worktree, WorktreeInfo
from .sync import SyncPlan
from .commit import ChangeSet, Commit
from .result import PublishOutcome, PublishResult, PublishState

__all__ = [
    "PublishTarget",
    "Worktree",
    "WorktreeInfo",
    "SyncPlan",
    "ChangeSet",
    "Commit",
    "PublishOutcome",
    "PublishResult",
    "PublishState",
]
