"""Tests for WorktreeManager"""
import shutil
from pathlib import Path
from unittest.mock import patch

import git
import pytest

from git_site_publisher.exceptions import NetworkError, VcsError, WorktreeError
from git_site_publisher.models.target import PublishTarget
from git_site_publisher.services.git.worktrees import WorktreeManager

from conftest import read_tree, write_files


def current_branch(path: Path) -> str:
    repo = git.Repo(path)
    try:
        return repo.git.symbolic_ref("--short", "HEAD")
    finally:
        repo.close()


def entry_for(gateway, path: Path):
    for info in gateway.list_worktrees():
        if Path(info.path) == path:
            return info
    return None


@pytest.fixture
def target(git_repo):
    return PublishTarget(
        remote_name="origin",
        branch_name="gh-pages",
        working_directory_path=Path(git_repo.working_dir) / ".publish" / "origin-gh-pages",
    )


@pytest.fixture
def manager(gateway):
    return WorktreeManager(gateway)


class TestBranchBootstrap:
    """Test creating the worktree when none exists."""

    def test_creates_orphan_branch_when_remote_has_none(self, manager, target):
        """Test a new publish branch starts with no history and no files."""
        worktree = manager.acquire(target)
        try:
            assert worktree.path == target.working_directory_path
            assert worktree.bound_branch == "gh-pages"
            assert worktree.reused is False
            assert current_branch(worktree.path) == "gh-pages"
            assert read_tree(worktree.path) == {}
        finally:
            manager.release(worktree)

    def test_tracks_existing_remote_branch(self, manager, target, other_clone):
        """Test an existing publish branch is checked out with its history."""
        published = other_clone("gh-pages", {"index.html": "live"})

        worktree = manager.acquire(target)
        try:
            repo = git.Repo(worktree.path)
            assert repo.head.commit.hexsha == published
            repo.close()
            assert read_tree(worktree.path) == {"index.html": "live"}
        finally:
            manager.release(worktree)

    def test_stale_local_branch_is_replaced_by_orphan(self, manager, gateway, target, git_repo):
        """Test a local-only publish branch never carries its history to the new branch."""
        git_repo.git.branch("gh-pages", "main")

        worktree = manager.acquire(target)
        try:
            assert current_branch(worktree.path) == "gh-pages"
            assert read_tree(worktree.path) == {}
            # Unborn until the first commit
            assert gateway.local_branch_exists("gh-pages") is False
        finally:
            manager.release(worktree)

    def test_unreachable_remote(self, gateway, git_repo, temp_dir):
        """Test a failed fetch aborts before anything is created."""
        git_repo.create_remote("broken", str(temp_dir / "missing.git"))
        target = PublishTarget("broken", "gh-pages", Path(git_repo.working_dir) / ".publish" / "broken")

        with pytest.raises(NetworkError):
            WorktreeManager(gateway).acquire(target)

        assert not target.working_directory_path.exists()
        assert len(gateway.list_worktrees()) == 1


class TestReuse:
    """Test the fast path."""

    def test_second_acquire_reuses(self, manager, target):
        """Test a released worktree on the right branch is kept."""
        first = manager.acquire(target)
        (first.path / "cached.txt").write_text("still here")
        manager.release(first)

        second = manager.acquire(target)
        try:
            assert second.reused is True
            assert (second.path / "cached.txt").exists()
        finally:
            manager.release(second)

    def test_reuse_catches_up_with_remote(self, manager, target, other_clone):
        """Test a reused worktree is moved to the remote tip."""
        other_clone("gh-pages", {"index.html": "v1"})
        manager.release(manager.acquire(target))
        latest = other_clone("gh-pages", {"index.html": "v2"})

        worktree = manager.acquire(target)
        try:
            assert worktree.reused is True
            repo = git.Repo(worktree.path)
            assert repo.head.commit.hexsha == latest
            repo.close()
            assert (worktree.path / "index.html").read_text() == "v2"
        finally:
            manager.release(worktree)

    def test_not_reused_after_remote_branch_deleted(self, manager, gateway, git_repo, target, other_clone):
        """Test a cached checkout is rebuilt as an orphan once its remote branch is gone."""
        other_clone("gh-pages", {"index.html": "old history"})
        manager.release(manager.acquire(target))
        git_repo.git.push("origin", "--delete", "gh-pages")

        worktree = manager.acquire(target)
        try:
            assert worktree.reused is False
            assert current_branch(worktree.path) == "gh-pages"
            assert read_tree(worktree.path) == {}
            assert gateway.local_branch_exists("gh-pages") is False
        finally:
            manager.release(worktree)


class TestRecovery:
    """Test recovering from inconsistent worktree states."""

    def test_locked_worktree_is_recreated(self, manager, gateway, target):
        """Test a lock left by a crashed run forces recreation."""
        manager.acquire(target)  # never released

        worktree = manager.acquire(target)
        try:
            assert worktree.reused is False
            assert current_branch(worktree.path) == "gh-pages"
        finally:
            manager.release(worktree)
        assert entry_for(gateway, target.working_directory_path).is_locked is False

    def test_wrong_branch_is_recreated(self, manager, git_repo, target):
        """Test a worktree bound to another branch is replaced."""
        git_repo.git.worktree("add", "-b", "scratch", str(target.working_directory_path))

        worktree = manager.acquire(target)
        try:
            assert worktree.reused is False
            assert current_branch(worktree.path) == "gh-pages"
        finally:
            manager.release(worktree)

    def test_orphaned_checkout_is_replaced(self, manager, target):
        """Test an unregistered checkout with a .git file is cleared away."""
        write_files(target.working_directory_path, {
            ".git": "gitdir: /nowhere/worktrees/origin-gh-pages\n",
            "junk.txt": "junk",
        })

        worktree = manager.acquire(target)
        try:
            assert read_tree(worktree.path) == {}
        finally:
            manager.release(worktree)

    def test_empty_directory_is_replaced(self, manager, target):
        """Test an empty directory at the path is taken over."""
        target.working_directory_path.mkdir(parents=True)

        worktree = manager.acquire(target)
        try:
            assert current_branch(worktree.path) == "gh-pages"
        finally:
            manager.release(worktree)

    def test_user_directory_is_left_alone(self, manager, gateway, target):
        """Test a directory of user content at the path is never deleted."""
        write_files(target.working_directory_path, {"post.md": "# Draft\n"})

        with pytest.raises(WorktreeError, match="is not a worktree"):
            manager.acquire(target)

        assert (target.working_directory_path / "post.md").read_text() == "# Draft\n"
        assert entry_for(gateway, target.working_directory_path) is None

    def test_missing_admin_metadata(self, manager, git_repo, target):
        """Test a checkout whose git metadata was deleted is rebuilt."""
        manager.release(manager.acquire(target))
        shutil.rmtree(Path(git_repo.git_dir) / "worktrees")

        worktree = manager.acquire(target)
        try:
            assert worktree.reused is False
            assert current_branch(worktree.path) == "gh-pages"
        finally:
            manager.release(worktree)

    def test_deleted_directory(self, manager, gateway, target):
        """Test a registered worktree whose directory vanished is rebuilt."""
        manager.release(manager.acquire(target))
        shutil.rmtree(target.working_directory_path)

        worktree = manager.acquire(target)
        try:
            assert worktree.reused is False
            assert worktree.path.is_dir()
        finally:
            manager.release(worktree)

    def test_branch_checked_out_elsewhere(self, manager, gateway, git_repo, target):
        """Test only one worktree stays bound to the publish branch."""
        old = PublishTarget("origin", "gh-pages", Path(git_repo.working_dir) / ".publish" / "old")
        manager.release(manager.acquire(old))

        worktree = manager.acquire(target)
        try:
            bound = [info for info in gateway.list_worktrees() if info.branch_name == "gh-pages"]
            assert [Path(info.path) for info in bound] == [target.working_directory_path]
            assert not old.working_directory_path.exists()
        finally:
            manager.release(worktree)

    def test_creation_retried_once(self, manager, gateway, target):
        """Test a failed creation is discarded and attempted a second time."""
        original = gateway.add_orphan_worktree
        calls = []

        def flaky(path, branch):
            calls.append(path)
            if len(calls) == 1:
                Path(path).mkdir(parents=True)
                raise VcsError("worktree_add", "simulated failure")
            return original(path, branch)

        with patch.object(gateway, "add_orphan_worktree", side_effect=flaky):
            worktree = manager.acquire(target)
        try:
            assert len(calls) == 2
            assert current_branch(worktree.path) == "gh-pages"
        finally:
            manager.release(worktree)

    def test_creation_gives_up_after_retry(self, manager, gateway, target):
        """Test a persistent creation failure surfaces as WorktreeError."""
        with patch.object(gateway, "add_orphan_worktree", side_effect=VcsError("worktree_add", "disk full")) as add:
            with pytest.raises(WorktreeError, match="disk full"):
                manager.acquire(target)
        assert add.call_count == 2


class TestRelease:
    """Test releasing the worktree."""

    def test_release_unlocks(self, manager, gateway, target):
        """Test the lock taken by acquire is dropped by release."""
        worktree = manager.acquire(target)
        assert worktree.locked is True
        assert entry_for(gateway, target.working_directory_path).is_locked is True

        manager.release(worktree)

        assert worktree.locked is False
        assert entry_for(gateway, target.working_directory_path).is_locked is False

    def test_release_keeps_branch_and_directory(self, manager, git_repo, target):
        """Test release never deletes the checkout or the branch."""
        manager.release(manager.acquire(target))

        assert target.working_directory_path.is_dir()
        # The orphan branch has no commit yet, so it lives only in the worktree HEAD
        assert current_branch(target.working_directory_path) == "gh-pages"

    def test_release_twice_is_harmless(self, manager, target):
        """Test releasing an already released worktree does nothing."""
        worktree = manager.acquire(target)
        manager.release(worktree)
        manager.release(worktree)

    def test_checkout_releases_on_error(self, manager, gateway, target):
        """Test the context manager releases when the body fails."""
        with pytest.raises(RuntimeError):
            with manager.checkout(target):
                raise RuntimeError("sync blew up")

        assert entry_for(gateway, target.working_directory_path).is_locked is False

    def test_unlock_failure(self, manager, gateway, target):
        """Test a failed unlock is reported as WorktreeError."""
        worktree = manager.acquire(target)
        with patch.object(gateway, "unlock_worktree", side_effect=VcsError("worktree_unlock", "denied")):
            with pytest.raises(WorktreeError, match="could not unlock"):
                manager.release(worktree)
        manager.release(worktree)
