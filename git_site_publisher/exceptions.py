"""Custom exceptions for git-site-publisher"""

from typing import Optional


class SitePublisherError(Exception):
    """Base exception for all git-site-publisher errors."""

    # Pipeline phase the error surfaced in, filled in by the publish controller
    phase: Optional[str] = None


class ConfigError(SitePublisherError):
    """Exception raised for invalid or unresolvable configuration."""
    pass


class BuildError(SitePublisherError):
    """Exception raised when a site build command fails."""

    def __init__(self, command: str, returncode: Optional[int] = None, message: Optional[str] = None):
        self.command = command
        self.returncode = returncode
        self.message = message

        error_msg = f"Build command '{command}' failed"
        if returncode is not None:
            error_msg += f" with exit code {returncode}"
        if message:
            error_msg += f": {message}"

        super().__init__(error_msg)


class MissingOutputError(SitePublisherError):
    """Exception raised when the build output directory is absent or empty."""

    def __init__(self, path: str, reason: str = "does not exist"):
        self.path = path
        self.reason = reason
        super().__init__(f"Build output '{path}' {reason}; did the site build run?")


class WorktreeError(SitePublisherError):
    """Exception raised when the publish worktree cannot be prepared or cleaned up."""

    def __init__(self, path: str, message: Optional[str] = None):
        self.path = path
        self.message = message

        error_msg = f"Worktree at '{path}' is unusable"
        if message:
            error_msg += f": {message}"

        super().__init__(error_msg)


class VcsError(SitePublisherError):
    """Exception raised for errors in Git operations.

    ``diagnostic`` holds git's own output, passed through unmodified.
    """

    def __init__(self, operation: str, diagnostic: Optional[str] = None, branch: Optional[str] = None):
        self.operation = operation
        self.diagnostic = diagnostic
        self.branch = branch

        error_msg = f"Git operation '{operation}' failed"
        if branch:
            error_msg += f" for branch '{branch}'"
        if diagnostic:
            error_msg += f": {diagnostic}"

        super().__init__(error_msg)


class NetworkError(VcsError):
    """Exception raised when the remote is unreachable or a transfer timed out."""
    pass


class PushConflictError(VcsError):
    """Exception raised when the remote branch moved ahead and the push was rejected."""

    def __init__(self, remote: str, branch: str, diagnostic: Optional[str] = None):
        self.remote = remote
        super().__init__("push", diagnostic, branch)

    def __str__(self) -> str:
        return (
            f"Push to {self.remote}/{self.branch} was rejected because the remote branch "
            f"has new commits; re-run the publish to rebase onto them"
            + (f" ({self.diagnostic})" if self.diagnostic else "")
        )
