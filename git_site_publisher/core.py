"""Core functionality for git-site-publisher"""

from datetime import datetime, timezone
from typing import Callable, Optional, Union

from rich.console import Console
from rich.markup import escape

from git_site_publisher.config import Config
from git_site_publisher.constants import PREFERRED_REMOTE
from git_site_publisher.exceptions import (
    ConfigError,
    MissingOutputError,
    SitePublisherError,
    WorktreeError,
)
from git_site_publisher.formatters import format_changes, format_commit_message, format_sync_plan
from git_site_publisher.logging_config import get_logger
from git_site_publisher.models.result import PublishOutcome, PublishResult, PublishState
from git_site_publisher.models.target import PublishTarget
from git_site_publisher.models.worktree import Worktree
from git_site_publisher.services.build_service import BuildRunner
from git_site_publisher.services.git.gateway import GitGateway, RepositoryGateway
from git_site_publisher.services.git.worktrees import WorktreeManager
from git_site_publisher.services.sync_service import SyncEngine

console = Console()
logger = get_logger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class PublishController:
    """Publishes a built site to its branch.

    One run walks START -> [BUILD] -> ACQUIRE_WORKTREE -> SYNC -> CHECK_DIRTY,
    then either stops (nothing changed) or goes on to COMMIT -> PUSH. The
    worktree is released before the run ends, whichever way it ends.
    """

    def __init__(
        self,
        config: Union[Config, dict],
        gateway: Optional[RepositoryGateway] = None,
        worktree_manager: Optional[WorktreeManager] = None,
        sync_engine: Optional[SyncEngine] = None,
        build_runner: Optional[BuildRunner] = None,
        clock: Callable[[], datetime] = _utc_now,
        quiet: bool = False,
    ):
        """Initialize the controller.

        Args:
            config: Configuration dict or Config object
            gateway: Git capabilities; defaults to GitPython on config.repo_path
            worktree_manager: Defaults to a manager over ``gateway``
            sync_engine: Defaults to a SyncEngine writing the .nojekyll marker
            build_runner: Defaults to running config.build_commands
            clock: Source of the commit timestamp
            quiet: If True, suppress progress lines on stdout
        """
        if isinstance(config, dict):
            config = Config.from_dict(config)
        self.config = config
        self.quiet = quiet
        self.clock = clock

        self.gateway = gateway or GitGateway(config.repo_root, network_timeout=config.network_timeout)
        self.worktree_manager = worktree_manager or WorktreeManager(self.gateway)
        self.sync_engine = sync_engine or SyncEngine()
        self.build_runner = build_runner or BuildRunner(
            config.build_commands, config.repo_root
        )

        self.state = PublishState.START

    def _console_print(self, message: str) -> None:
        if not self.quiet:
            console.print(message)

    def _enter(self, state: PublishState, message: str) -> None:
        self.state = state
        logger.debug(f"Entering {state.name}")
        self._console_print(f"[cyan]{state.value:>16}[/cyan]  {escape(message)}")

    def resolve_remote(self) -> str:
        """Configured remote, else the sole remote, else 'origin' if present."""
        if self.config.remote:
            return self.config.remote
        remotes = self.gateway.list_remotes()
        if len(remotes) == 1:
            return remotes[0]
        if PREFERRED_REMOTE in remotes:
            return PREFERRED_REMOTE
        if not remotes:
            raise ConfigError("repository has no remotes; add one or pass --remote")
        raise ConfigError(f"repository has several remotes ({', '.join(remotes)}); pass --remote")

    def resolve_target(self) -> PublishTarget:
        return self.config.to_target(self.resolve_remote())

    def run(self) -> PublishResult:
        """Run the pipeline once.

        Returns:
            PublishResult whose outcome is DONE_NOOP, DONE_PUBLISHED or DONE_DRY_RUN

        Raises:
            SitePublisherError: with ``phase`` naming the phase that failed
        """
        self.state = PublishState.START
        try:
            target = self.resolve_target()
            if self.build_runner.commands:
                self._enter(PublishState.BUILD, f"running {len(self.build_runner.commands)} build command(s)")
                self.build_runner.run()

            try:
                # An absent or empty build must not cost the worktree anything
                self.sync_engine.validate_source(self.config.output_path)
            except MissingOutputError as e:
                e.phase = PublishState.SYNC.value
                raise

            self._enter(PublishState.ACQUIRE_WORKTREE, f"preparing {target.working_directory_path} for {target}")
            worktree = self.worktree_manager.acquire(target)
            try:
                result = self._publish(target, worktree)
            except BaseException:
                # Also runs on KeyboardInterrupt; the original error wins
                self._release(worktree, propagate=False)
                raise
            self._release(worktree, propagate=True)
        except SitePublisherError as e:
            if e.phase is None:
                e.phase = self.state.value
            raise

        if result.outcome is PublishOutcome.DONE_PUBLISHED:
            self._console_print(f"[green]Published {result.commit.sha[:7]} to {target}[/green]")
        elif result.outcome is PublishOutcome.DONE_DRY_RUN:
            self._console_print(f"[yellow]Dry run: would publish {format_changes(result.changes)} to {target}[/yellow]")
        else:
            self._console_print(f"[green]Nothing to publish; {target} is up to date[/green]")
        return result

    def _publish(self, target: PublishTarget, worktree: Worktree) -> PublishResult:
        self._enter(PublishState.SYNC, f"mirroring {self.config.output_path}")
        plan = self.sync_engine.mirror(self.config.output_path, worktree)
        logger.info(f"Synced: {format_sync_plan(plan)}")

        self._enter(PublishState.CHECK_DIRTY, "comparing with the last published commit")
        if not self.gateway.is_working_tree_dirty(worktree):
            return PublishResult(PublishOutcome.DONE_NOOP, target, plan=plan)
        changes = self.gateway.diff_working_tree(worktree)
        logger.info(f"Changes: {format_changes(changes)}")

        if self.config.dry_run:
            return PublishResult(PublishOutcome.DONE_DRY_RUN, target, plan=plan, changes=changes)

        message = format_commit_message(self.config.message_prefix, self.clock())
        self._enter(PublishState.COMMIT, message)
        self.gateway.stage_all(worktree)
        commit = self.gateway.commit(worktree, message)

        self._enter(PublishState.PUSH, f"pushing {commit.sha[:7]} to {target}")
        self.gateway.push(worktree, target.remote_name, target.branch_name)

        return PublishResult(PublishOutcome.DONE_PUBLISHED, target, plan=plan, changes=changes, commit=commit)

    def _release(self, worktree: Worktree, propagate: bool) -> None:
        previous = self.state
        self._enter(PublishState.RELEASE_WORKTREE, str(worktree.path))
        try:
            self.worktree_manager.release(worktree)
        except WorktreeError as e:
            if propagate:
                raise
            logger.error(f"Could not release worktree after failure in {previous.value}: {e}")
        finally:
            if not propagate:
                # Keep the failed phase for the error report
                self.state = previous
