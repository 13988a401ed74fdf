"""Publish run states and results."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .commit import ChangeSet, Commit
from .sync import SyncPlan
from .target import PublishTarget


class PublishState(Enum):
    """Phases of a publish run."""
    START = "start"
    BUILD = "build"
    ACQUIRE_WORKTREE = "acquire worktree"
    SYNC = "sync"
    CHECK_DIRTY = "check dirty"
    COMMIT = "commit"
    PUSH = "push"
    RELEASE_WORKTREE = "release worktree"


class PublishOutcome(Enum):
    """Terminal state of a successful run."""
    DONE_NOOP = "noop"
    DONE_PUBLISHED = "published"
    DONE_DRY_RUN = "dry-run"


@dataclass
class PublishResult:
    """What a publish run did."""
    outcome: PublishOutcome
    target: PublishTarget
    plan: Optional[SyncPlan] = None
    changes: Optional[ChangeSet] = None
    commit: Optional[Commit] = None
