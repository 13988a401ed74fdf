"""Publish worktree management for git-site-publisher."""

import os
import shutil
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from git_site_publisher.exceptions import NetworkError, VcsError, WorktreeError
from git_site_publisher.logging_config import get_logger
from git_site_publisher.models.target import PublishTarget
from git_site_publisher.models.worktree import Worktree, WorktreeInfo
from git_site_publisher.services.git.gateway import RepositoryGateway

logger = get_logger(__name__)


def _same_path(a, b) -> bool:
    return os.path.realpath(str(a)) == os.path.realpath(str(b))


class WorktreeManager:
    """Keeps a dedicated checkout of the publish branch ready for a run."""

    def __init__(self, gateway: RepositoryGateway):
        """Initialize the worktree manager.

        Args:
            gateway: Git capabilities of the source repository
        """
        self.gateway = gateway

    @contextmanager
    def checkout(self, target: PublishTarget) -> Iterator[Worktree]:
        """Acquire the publish worktree and release it on every exit path.

        Example:
            with manager.checkout(target) as worktree:
                engine.mirror(output, worktree)
        """
        worktree = self.acquire(target)
        try:
            yield worktree
        finally:
            self.release(worktree)

    def acquire(self, target: PublishTarget) -> Worktree:
        """Return a locked worktree at the target path bound to the target branch.

        Raises:
            NetworkError: the remote could not be fetched; nothing was changed
            WorktreeError: the checkout could not be created, even after one
                discard-and-recreate attempt
        """
        path = Path(target.working_directory_path)
        branch = target.branch_name

        # A stale view of the remote would make the branch bootstrap decision wrong
        self.gateway.fetch(target.remote_name)
        remote_ref = f"{target.remote_name}/{branch}"
        has_remote = self.gateway.remote_branch_exists(target.remote_name, branch)

        worktrees = self._list_worktrees(path)
        existing = self._find_at(worktrees, path)

        reusable = existing is not None and self._is_reusable(existing, path, branch)
        if reusable and not has_remote and self.gateway.local_branch_exists(branch):
            # Remote branch deleted, or never pushed: start over from an orphan
            logger.info(f"Not reusing {path}: {branch} has commits but no remote branch")
            reusable = False

        if reusable:
            logger.info(f"Reusing worktree at {path} on {branch}")
            if has_remote:
                self._reset(path, remote_ref)
            worktree = Worktree(path=path, bound_branch=branch, reused=True)
        else:
            if existing is None and (path.exists() or path.is_symlink()):
                self._ensure_disposable(path)
            if existing is not None or path.exists():
                logger.warning(f"Discarding inconsistent worktree at {path} ({existing or 'unregistered directory'})")
                self._discard(path)
            # Git refuses to check one branch out twice
            for info in worktrees:
                if info.branch_name == branch and not _same_path(info.path, path) and not info.is_main:
                    logger.warning(f"Removing stale worktree {info}")
                    self._discard(Path(info.path))
            worktree = self._create_with_retry(path, branch, remote_ref if has_remote else None)

        self._lock(worktree)
        return worktree

    def release(self, worktree: Worktree) -> None:
        """Unlock the worktree so the next run can acquire it.

        The checkout and the branch are both kept as a cache for the next run.
        """
        if not worktree.locked:
            return
        try:
            self.gateway.unlock_worktree(worktree.path)
        except VcsError as e:
            raise WorktreeError(str(worktree.path), f"could not unlock ({e.diagnostic})") from e
        worktree.locked = False
        logger.debug(f"Released worktree at {worktree.path}")

    def _list_worktrees(self, path: Path) -> list[WorktreeInfo]:
        try:
            return self.gateway.list_worktrees()
        except VcsError as e:
            raise WorktreeError(str(path), f"could not list worktrees ({e.diagnostic})") from e

    @staticmethod
    def _find_at(worktrees: list[WorktreeInfo], path: Path) -> Optional[WorktreeInfo]:
        for info in worktrees:
            if _same_path(info.path, path):
                return info
        return None

    @staticmethod
    def _is_reusable(info: WorktreeInfo, path: Path, branch: str) -> bool:
        """Fast path check: registered, present, on the branch, and not locked."""
        if info.is_main or info.is_locked or info.is_prunable:
            return False
        if info.branch_name != branch:
            return False
        return (path / ".git").exists()

    @staticmethod
    def _ensure_disposable(path: Path) -> None:
        """Refuse to delete an unregistered path unless it is empty or a worktree checkout."""
        if path.is_dir() and not path.is_symlink():
            if (path / ".git").is_file() or not any(path.iterdir()):
                return
        raise WorktreeError(
            str(path), "exists and is not a worktree; move it away or choose another worktree directory"
        )

    def _reset(self, path: Path, ref: str) -> None:
        try:
            self.gateway.reset_worktree(path, ref)
        except VcsError as e:
            raise WorktreeError(str(path), f"could not reset to {ref} ({e.diagnostic})") from e

    def _lock(self, worktree: Worktree) -> None:
        try:
            self.gateway.lock_worktree(worktree.path)
        except VcsError as e:
            raise WorktreeError(str(worktree.path), f"could not lock ({e.diagnostic})") from e
        worktree.locked = True

    def _discard(self, path: Path) -> None:
        """Force-remove a worktree, falling back to deleting the directory.

        Structured removal fails when git's administrative files for the
        worktree are gone; pruning afterwards drops whatever metadata is left.
        """
        try:
            self.gateway.remove_worktree(path)
        except VcsError as e:
            logger.debug(f"git worktree remove failed, deleting {path} directly: {e.diagnostic}")
            try:
                if path.is_dir() and not path.is_symlink():
                    shutil.rmtree(path)
                elif path.exists() or path.is_symlink():
                    path.unlink()
            except OSError as os_error:
                raise WorktreeError(str(path), f"could not delete directory ({os_error})") from os_error
            try:
                # prune skips locked entries
                self.gateway.unlock_worktree(path)
            except VcsError:
                logger.debug(f"No lock to clear for {path}")
        try:
            self.gateway.prune_worktrees()
        except VcsError as e:
            raise WorktreeError(str(path), f"could not prune worktree metadata ({e.diagnostic})") from e

    def _create_with_retry(self, path: Path, branch: str, remote_ref: Optional[str]) -> Worktree:
        """Create the worktree, discarding and recreating once on failure."""
        try:
            return self._create(path, branch, remote_ref)
        except WorktreeError as first_error:
            logger.warning(f"{first_error}; discarding and recreating once")
            self._discard(path)
            return self._create(path, branch, remote_ref)

    def _create(self, path: Path, branch: str, remote_ref: Optional[str]) -> Worktree:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise WorktreeError(str(path), f"could not create parent directory ({e})") from e

        try:
            if remote_ref:
                # Tracks the published history; -B moves a leftover local branch to the remote tip
                logger.info(f"Creating worktree at {path} from {remote_ref}")
                self.gateway.add_worktree(path, branch, start_point=remote_ref)
            else:
                if self.gateway.local_branch_exists(branch):
                    # Its history is not published and may come from any branch
                    logger.warning(f"Deleting local branch {branch}; the remote has no branch of that name")
                    self.gateway.delete_local_branch(branch)
                logger.info(f"Creating worktree at {path} on new orphan branch {branch}")
                self.gateway.add_orphan_worktree(path, branch)
        except NetworkError:
            raise
        except VcsError as e:
            raise WorktreeError(str(path), e.diagnostic or str(e)) from e

        return Worktree(path=path, bound_branch=branch, exists=True, reused=False)
