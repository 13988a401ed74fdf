"""Worktree data models."""

from dataclasses import dataclass
from pathlib import Path


@dataclass
class WorktreeInfo:
    """Information about a git worktree, as listed by `git worktree list`."""

    path: str
    branch_name: str  # Empty when detached
    commit_sha: str
    is_main: bool  # Is this the main working tree?
    is_locked: bool = False
    is_prunable: bool = False  # Directory missing or otherwise stale

    def __str__(self) -> str:
        """String representation of worktree."""
        flags = []
        if self.is_main:
            flags.append("main")
        if self.is_locked:
            flags.append("locked")
        if self.is_prunable:
            flags.append("prunable")
        suffix = f" [{', '.join(flags)}]" if flags else ""
        return f"{self.branch_name or '(detached)'} @ {self.path}{suffix}"


@dataclass
class Worktree:
    """The on-disk checkout a publish run works in."""

    path: Path
    bound_branch: str
    exists: bool = True
    reused: bool = False  # True when an existing checkout was kept
    locked: bool = False
