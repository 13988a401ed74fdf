"""Change set and commit models."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional


@dataclass
class ChangeSet:
    """Paths that differ between the worktree and its last commit."""

    added: List[str] = field(default_factory=list)
    modified: List[str] = field(default_factory=list)
    deleted: List[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.modified or self.deleted)

    @property
    def paths(self) -> List[str]:
        return sorted(self.added + self.modified + self.deleted)

    def __len__(self) -> int:
        return len(self.added) + len(self.modified) + len(self.deleted)


@dataclass
class Commit:
    """A commit created on the publish branch."""

    sha: str
    message: str
    timestamp: datetime  # UTC
    parent: Optional[str] = None  # None for the first commit of an orphan branch
