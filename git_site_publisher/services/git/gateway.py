"""Repository gateway: the git capabilities the publish pipeline relies on."""

from abc import abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Protocol, Union, runtime_checkable

import git

from git_site_publisher.constants import (
    LOCK_REASON,
    NETWORK_ERROR_MARKERS,
    PUSH_CONFLICT_MARKERS,
)
from git_site_publisher.exceptions import NetworkError, PushConflictError, VcsError
from git_site_publisher.logging_config import get_logger
from git_site_publisher.models.commit import ChangeSet, Commit
from git_site_publisher.models.worktree import Worktree, WorktreeInfo

logger = get_logger(__name__)

PathLike = Union[str, Path]


@runtime_checkable
class RepositoryGateway(Protocol):
    """Capabilities the publish controller and worktree manager need from git.

    Every call is synchronous and either succeeds or raises VcsError (or one
    of its subclasses) carrying git's diagnostic text. Nothing is retried here.
    """

    @abstractmethod
    def list_remotes(self) -> list[str]:
        ...

    @abstractmethod
    def fetch(self, remote: str) -> None:
        """Refresh remote-tracking refs for ``remote``, pruning deleted branches."""
        ...

    @abstractmethod
    def remote_branch_exists(self, remote: str, branch: str) -> bool:
        ...

    @abstractmethod
    def local_branch_exists(self, branch: str) -> bool:
        ...

    @abstractmethod
    def list_worktrees(self) -> list[WorktreeInfo]:
        ...

    @abstractmethod
    def add_worktree(self, path: PathLike, branch: str, start_point: Optional[str] = None) -> None:
        """Check out ``branch`` at ``path``, resetting it to ``start_point`` if given."""
        ...

    @abstractmethod
    def add_orphan_worktree(self, path: PathLike, branch: str) -> None:
        """Create a worktree at ``path`` on a new branch with no history and no files."""
        ...

    @abstractmethod
    def delete_local_branch(self, branch: str) -> None:
        """Delete ``branch`` even if it has commits no other ref contains."""
        ...

    @abstractmethod
    def remove_worktree(self, path: PathLike) -> None:
        ...

    @abstractmethod
    def prune_worktrees(self) -> None:
        ...

    @abstractmethod
    def lock_worktree(self, path: PathLike) -> None:
        ...

    @abstractmethod
    def unlock_worktree(self, path: PathLike) -> None:
        ...

    @abstractmethod
    def reset_worktree(self, path: PathLike, ref: str) -> None:
        ...

    @abstractmethod
    def diff_working_tree(self, worktree: Worktree) -> ChangeSet:
        ...

    @abstractmethod
    def is_working_tree_dirty(self, worktree: Worktree) -> bool:
        ...

    @abstractmethod
    def stage_all(self, worktree: Worktree) -> None:
        ...

    @abstractmethod
    def commit(self, worktree: Worktree, message: str) -> Commit:
        ...

    @abstractmethod
    def push(self, worktree: Worktree, remote: str, branch: str) -> None:
        ...


def _diagnostic(error: git.exc.GitCommandError) -> str:
    """Extract git's own error output from a GitCommandError."""
    stderr = (error.stderr if getattr(error, "stderr", None) else str(error)).strip()
    status = error.status if hasattr(error, "status") else "unknown"
    if stderr:
        return f"exit {status}: {stderr}"
    return f"exit code {status}"


def _matches(diagnostic: str, markers: tuple[str, ...]) -> bool:
    lowered = diagnostic.lower()
    return any(marker in lowered for marker in markers)


class GitGateway:
    """RepositoryGateway backed by GitPython."""

    def __init__(self, repo_path: PathLike, network_timeout: Optional[int] = None):
        """Initialize the gateway.

        Args:
            repo_path: Path to the source git repository
            network_timeout: Seconds after which fetch and push are killed
        """
        self.repo_path = str(repo_path)
        self.network_timeout = network_timeout
        try:
            # Validate once up front so a bad path fails before any phase starts
            git.Repo(self.repo_path).close()
        except (git.exc.InvalidGitRepositoryError, git.exc.NoSuchPathError) as e:
            raise VcsError("open_repository", f"'{self.repo_path}' is not a git repository ({e})")

    def _get_repo(self, path: Optional[PathLike] = None) -> git.Repo:
        """Open the source repository, or the checkout at ``path``."""
        return git.Repo(str(path) if path is not None else self.repo_path)

    def _run(self, operation: str, *args, path: Optional[PathLike] = None, branch: Optional[str] = None, **kwargs) -> str:
        """Run a git subcommand, translating failures into VcsError."""
        repo = self._get_repo(path)
        try:
            return repo.git.execute(["git", *args], **kwargs)
        except git.exc.GitCommandError as e:
            raise VcsError(operation, _diagnostic(e), branch) from e
        finally:
            repo.close()

    def _run_remote(self, operation: str, *args, path: Optional[PathLike] = None, branch: Optional[str] = None) -> str:
        """Run a git subcommand that talks to a remote.

        Bounded by the network timeout, with credential prompts disabled so a
        missing credential fails instead of blocking.
        """
        repo = self._get_repo(path)
        kwargs = {}
        if self.network_timeout:
            kwargs["kill_after_timeout"] = self.network_timeout
        try:
            with repo.git.custom_environment(GIT_TERMINAL_PROMPT="0"):
                return repo.git.execute(["git", *args], **kwargs)
        except git.exc.GitCommandError as e:
            diagnostic = _diagnostic(e)
            if _matches(diagnostic, NETWORK_ERROR_MARKERS):
                raise NetworkError(operation, diagnostic, branch) from e
            raise VcsError(operation, diagnostic, branch) from e
        finally:
            repo.close()

    def list_remotes(self) -> list[str]:
        repo = self._get_repo()
        try:
            return [remote.name for remote in repo.remotes]
        finally:
            repo.close()

    def fetch(self, remote: str) -> None:
        logger.debug(f"Fetching {remote} with prune")
        self._run_remote("fetch", "fetch", "--prune", remote)

    def remote_branch_exists(self, remote: str, branch: str) -> bool:
        """Check the remote-tracking ref; accurate only after fetch()."""
        try:
            self._run("show_ref", "show-ref", "--verify", "--quiet", f"refs/remotes/{remote}/{branch}")
            return True
        except VcsError:
            return False

    def local_branch_exists(self, branch: str) -> bool:
        try:
            self._run("show_ref", "show-ref", "--verify", "--quiet", f"refs/heads/{branch}")
            return True
        except VcsError:
            return False

    def list_worktrees(self) -> list[WorktreeInfo]:
        """Get detailed information about all worktrees of the repository."""
        output = self._run("worktree_list", "worktree", "list", "--porcelain")

        # Porcelain format, one blank-line separated stanza per worktree:
        # worktree /path/to/worktree
        # HEAD commit_sha
        # branch refs/heads/branch-name | detached
        # locked [reason]
        # prunable [reason]
        worktrees: list[WorktreeInfo] = []
        current: Optional[dict] = None
        for line in output.splitlines() + [""]:
            line = line.strip()
            if not line:
                if current and current.get("path"):
                    worktrees.append(WorktreeInfo(
                        path=current["path"],
                        branch_name=current.get("branch", ""),
                        commit_sha=current.get("HEAD", ""),
                        is_main=not worktrees,  # First entry is always the main worktree
                        is_locked=current.get("locked", False),
                        is_prunable=current.get("prunable", False),
                    ))
                current = None
                continue

            key, _, value = line.partition(" ")
            if key == "worktree":
                current = {"path": value}
            elif current is None:
                continue
            elif key == "HEAD":
                current["HEAD"] = value
            elif key == "branch":
                current["branch"] = value[len("refs/heads/"):] if value.startswith("refs/heads/") else ""
            elif key in ("locked", "prunable"):
                current[key] = True

        logger.debug(f"Found {len(worktrees)} worktrees")
        for wt in worktrees:
            logger.debug(f"  {wt}")
        return worktrees

    def add_worktree(self, path: PathLike, branch: str, start_point: Optional[str] = None) -> None:
        if start_point:
            self._run("worktree_add", "worktree", "add", "-B", branch, str(path), start_point, branch=branch)
        else:
            self._run("worktree_add", "worktree", "add", str(path), branch, branch=branch)
        logger.info(f"Created worktree at {path} for branch {branch}")

    def add_orphan_worktree(self, path: PathLike, branch: str) -> None:
        self._run("worktree_add", "worktree", "add", "--detach", str(path), branch=branch)
        # switch --orphan also removes the tracked files of the detached checkout
        self._run("switch_orphan", "switch", "--orphan", branch, path=path, branch=branch)
        logger.info(f"Created worktree at {path} on new orphan branch {branch}")

    def delete_local_branch(self, branch: str) -> None:
        self._run("branch_delete", "branch", "-D", branch, branch=branch)
        logger.info(f"Deleted local branch {branch}")

    def remove_worktree(self, path: PathLike) -> None:
        # Forcing twice also removes locked worktrees
        self._run("worktree_remove", "worktree", "remove", "--force", "--force", str(path))
        logger.info(f"Removed worktree at {path}")

    def prune_worktrees(self) -> None:
        self._run("worktree_prune", "worktree", "prune")
        logger.debug("Pruned stale worktree metadata")

    def lock_worktree(self, path: PathLike) -> None:
        self._run("worktree_lock", "worktree", "lock", "--reason", LOCK_REASON, str(path))

    def unlock_worktree(self, path: PathLike) -> None:
        self._run("worktree_unlock", "worktree", "unlock", str(path))

    def reset_worktree(self, path: PathLike, ref: str) -> None:
        self._run("reset", "reset", "--hard", "--quiet", ref, path=path)
        logger.debug(f"Reset worktree at {path} to {ref}")

    def diff_working_tree(self, worktree: Worktree) -> ChangeSet:
        """Compare the worktree (index and files) against its last commit."""
        output = self._run(
            "status",
            "status", "--porcelain", "-z", "--no-renames", "--untracked-files=all",
            path=worktree.path,
        )
        changes = ChangeSet()
        for entry in output.split("\0"):
            # Each entry is "XY path"; X = index status, Y = working tree status
            if len(entry) < 4:
                continue
            code, file_path = entry[:2], entry[3:]
            if code == "??" or "A" in code:
                changes.added.append(file_path)
            elif "D" in code:
                changes.deleted.append(file_path)
            else:
                changes.modified.append(file_path)
        return changes

    def is_working_tree_dirty(self, worktree: Worktree) -> bool:
        return not self.diff_working_tree(worktree).is_empty

    def stage_all(self, worktree: Worktree) -> None:
        self._run("add", "add", "--all", ".", path=worktree.path)

    def commit(self, worktree: Worktree, message: str) -> Commit:
        repo = self._get_repo(worktree.path)
        try:
            parent = repo.head.commit.hexsha if repo.head.is_valid() else None
            repo.git.commit("--quiet", "--no-verify", "-m", message)
            head = repo.head.commit
            return Commit(
                sha=head.hexsha,
                message=message,
                timestamp=datetime.fromtimestamp(head.committed_date, tz=timezone.utc),
                parent=parent,
            )
        except git.exc.GitCommandError as e:
            raise VcsError("commit", _diagnostic(e), worktree.bound_branch) from e
        finally:
            repo.close()

    def push(self, worktree: Worktree, remote: str, branch: str) -> None:
        try:
            self._run_remote(
                "push", "push", remote, f"HEAD:refs/heads/{branch}",
                path=worktree.path, branch=branch,
            )
        except VcsError as e:
            if not isinstance(e, NetworkError) and _matches(e.diagnostic or "", PUSH_CONFLICT_MARKERS):
                raise PushConflictError(remote, branch, e.diagnostic) from e
            raise
        logger.info(f"Pushed {worktree.path} to {remote}/{branch}")
