"""Sync plan model."""

from dataclasses import dataclass, field
from typing import List


@dataclass
class SyncPlan:
    """File operations that make a worktree mirror the build output.

    Paths are relative POSIX paths; version control metadata never appears.
    """

    added: List[str] = field(default_factory=list)
    updated: List[str] = field(default_factory=list)
    deleted: List[str] = field(default_factory=list)

    @property
    def copies(self) -> List[str]:
        """Every path copied from the source, new or overwritten."""
        return sorted(self.added + self.updated)

    def __len__(self) -> int:
        return len(self.added) + len(self.updated) + len(self.deleted)
