"""Git-related services for git-site-publisher."""

from .gateway import GitGateway, RepositoryGateway
from .worktrees import WorktreeManager

__all__ = [
    "GitGateway",
    "RepositoryGateway",
    "WorktreeManager",
]
