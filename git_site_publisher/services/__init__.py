"""Services for git-site-publisher."""

from .build_service import BuildRunner
from .sync_service import SyncEngine

__all__ = ["BuildRunner", "SyncEngine"]
