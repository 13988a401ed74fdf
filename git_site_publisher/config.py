"""Configuration handling for git-site-publisher"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from git_site_publisher.constants import (
    DEFAULT_BRANCH,
    DEFAULT_MESSAGE_PREFIX,
    DEFAULT_NETWORK_TIMEOUT,
    DEFAULT_OUTPUT_DIR,
    DEFAULT_WORKTREE_ROOT,
)
from git_site_publisher.exceptions import ConfigError
from git_site_publisher.models.target import PublishTarget


@dataclass
class Config:
    """Configuration for a publish run with validation."""

    # Locations, relative paths are resolved against repo_path
    repo_path: str = "."
    output_dir: str = DEFAULT_OUTPUT_DIR
    worktree_dir: Optional[str] = None  # None = <repo>/.publish/<remote>-<branch>

    # Publish target
    branch: str = DEFAULT_BRANCH
    remote: Optional[str] = None  # None = the sole configured remote

    # Site generator commands run before publishing, in order
    build_commands: List[str] = field(default_factory=list)

    message_prefix: str = DEFAULT_MESSAGE_PREFIX
    network_timeout: int = DEFAULT_NETWORK_TIMEOUT  # seconds, applies to fetch and push

    # Execution modes
    dry_run: bool = False
    verbose: bool = False
    debug: bool = False

    def __post_init__(self):
        """Validate configuration after initialization."""
        self._validate_branch()
        self._validate_remote()
        self._validate_message_prefix()
        self._validate_network_timeout()
        self._validate_build_commands()

    def _validate_branch(self):
        """Validate branch is a non-empty name."""
        if not self.branch or not self.branch.strip():
            raise ConfigError("branch cannot be empty")
        self.branch = self.branch.strip()
        if self.branch.startswith("-") or " " in self.branch:
            raise ConfigError(f"branch is not a valid branch name: '{self.branch}'")

    def _validate_remote(self):
        """Normalise an empty remote to 'not configured'."""
        if self.remote is not None:
            self.remote = self.remote.strip() or None

    def _validate_message_prefix(self):
        """Validate message_prefix is not empty."""
        if not self.message_prefix or not self.message_prefix.strip():
            raise ConfigError("message_prefix cannot be empty")
        self.message_prefix = self.message_prefix.strip()

    def _validate_network_timeout(self):
        """Validate network_timeout is positive."""
        if self.network_timeout <= 0:
            raise ConfigError(f"network_timeout must be positive, got {self.network_timeout}")

    def _validate_build_commands(self):
        """Validate build_commands list."""
        if not isinstance(self.build_commands, list):
            raise ConfigError("build_commands must be a list")
        self.build_commands = [cmd for cmd in self.build_commands if cmd and cmd.strip()]

    @property
    def repo_root(self) -> Path:
        """Absolute path of the source repository."""
        return Path(self.repo_path).expanduser().resolve()

    @property
    def output_path(self) -> Path:
        """Absolute path of the build output directory."""
        return self._resolve(self.output_dir)

    def worktree_path(self, remote: str) -> Path:
        """Absolute worktree location for this branch on the given remote.

        The default location is keyed by (remote, branch) so different targets
        never share a checkout.
        """
        if self.worktree_dir:
            return self._resolve(self.worktree_dir)
        sanitized = f"{remote}-{self.branch}".replace("/", "-")
        return self.repo_root / DEFAULT_WORKTREE_ROOT / sanitized

    def to_target(self, remote: str) -> PublishTarget:
        """Build the immutable publish target once the remote is known."""
        path = self.worktree_path(remote)
        if path == self.repo_root or path in self.repo_root.parents:
            raise ConfigError(f"worktree directory '{path}' must not contain the repository")
        output = self.output_path
        if path == output or output in path.parents or path in output.parents:
            raise ConfigError(f"worktree directory '{path}' must not overlap the output directory '{output}'")
        return PublishTarget(
            remote_name=remote,
            branch_name=self.branch,
            working_directory_path=path,
        )

    def _resolve(self, value: str) -> Path:
        path = Path(value).expanduser()
        if not path.is_absolute():
            path = self.repo_root / path
        return path.resolve()

    def to_dict(self) -> dict:
        """Convert config to dictionary."""
        return {
            "repo_path": self.repo_path,
            "output_dir": self.output_dir,
            "worktree_dir": self.worktree_dir,
            "branch": self.branch,
            "remote": self.remote,
            "build_commands": self.build_commands,
            "message_prefix": self.message_prefix,
            "network_timeout": self.network_timeout,
            "dry_run": self.dry_run,
            "verbose": self.verbose,
            "debug": self.debug,
        }

    def get(self, key: str, default=None):
        """Get config value by key."""
        return getattr(self, key, default)

    @classmethod
    def from_dict(cls, config_dict: dict) -> "Config":
        """Create Config from dictionary, ignoring unknown keys."""
        known_fields = {
            "repo_path",
            "output_dir",
            "worktree_dir",
            "branch",
            "remote",
            "build_commands",
            "message_prefix",
            "network_timeout",
            "dry_run",
            "verbose",
            "debug",
        }

        filtered = {k: v for k, v in config_dict.items() if k in known_fields}
        return cls(**filtered)
