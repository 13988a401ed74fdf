"""Mirrors build output into the publish worktree."""

import os
import shutil
from pathlib import Path
from typing import Set

from git_site_publisher.constants import MARKER_FILE, VCS_METADATA_NAMES
from git_site_publisher.exceptions import MissingOutputError, WorktreeError
from git_site_publisher.logging_config import get_logger
from git_site_publisher.models.sync import SyncPlan
from git_site_publisher.models.worktree import Worktree

logger = get_logger(__name__)


def list_files(root: Path) -> Set[str]:
    """Relative POSIX paths of every file under root, skipping VCS metadata.

    Symlinks are reported as files and never followed.
    """
    files: Set[str] = set()
    for dirpath, dirnames, filenames in os.walk(root):
        current = Path(dirpath)
        kept_dirs = []
        for name in dirnames:
            if name in VCS_METADATA_NAMES:
                continue
            if (current / name).is_symlink():
                files.add((current / name).relative_to(root).as_posix())
            else:
                kept_dirs.append(name)
        dirnames[:] = kept_dirs
        for name in filenames:
            if name in VCS_METADATA_NAMES:
                continue
            files.add((current / name).relative_to(root).as_posix())
    return files


class SyncEngine:
    """Makes a worktree's file tree an exact copy of the build output."""

    def __init__(self, marker_file: str = MARKER_FILE):
        self.marker_file = marker_file

    @staticmethod
    def validate_source(source: Path) -> None:
        """Raise MissingOutputError unless source is a directory holding files."""
        source = Path(source)
        if not source.exists():
            raise MissingOutputError(str(source))
        if not source.is_dir():
            raise MissingOutputError(str(source), "is not a directory")
        if not list_files(source):
            raise MissingOutputError(str(source), "is empty")

    def plan(self, source: Path, destination: Path) -> SyncPlan:
        """Work out the copies and deletions without touching anything."""
        source_files = list_files(source)
        destination_files = list_files(destination)
        return SyncPlan(
            added=sorted(source_files - destination_files),
            updated=sorted(source_files & destination_files),
            deleted=sorted(destination_files - source_files - {self.marker_file}),
        )

    def mirror(self, source: Path, destination: Worktree) -> SyncPlan:
        """Mirror ``source`` into the worktree and write the marker file.

        Raises:
            MissingOutputError: source is missing, not a directory, or empty.
                Raised before the worktree is touched.
            WorktreeError: a file in the worktree could not be written or removed
        """
        source = Path(source)
        root = Path(destination.path)
        self.validate_source(source)

        plan = self.plan(source, root)

        logger.debug(
            f"Sync plan for {root}: {len(plan.added)} new, "
            f"{len(plan.updated)} overwritten, {len(plan.deleted)} deleted"
        )
        try:
            for rel in plan.deleted:
                self._remove(root / rel)
            self._prune_empty_dirs(root)
            for rel in plan.copies:
                self._copy(source / rel, root / rel, root)
            # Zero bytes even if an earlier file of that name had content
            (root / self.marker_file).write_bytes(b"")
        except OSError as e:
            raise WorktreeError(str(root), f"sync failed ({e})") from e

        return plan

    @staticmethod
    def _remove(path: Path) -> None:
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        elif path.exists() or path.is_symlink():
            path.unlink()

    def _copy(self, src: Path, dst: Path, root: Path) -> None:
        # A file in the worktree may occupy a path the source uses as a directory
        for parent in reversed(dst.relative_to(root).parents):
            candidate = root / parent
            if candidate != root and (candidate.is_file() or candidate.is_symlink()):
                candidate.unlink()
        dst.parent.mkdir(parents=True, exist_ok=True)
        if dst.is_dir() and not dst.is_symlink():
            shutil.rmtree(dst)
        elif dst.is_symlink():
            dst.unlink()
        shutil.copy2(src, dst, follow_symlinks=False)

    @staticmethod
    def _prune_empty_dirs(root: Path) -> None:
        for dirpath, dirnames, filenames in os.walk(root, topdown=False):
            current = Path(dirpath)
            if current == root or VCS_METADATA_NAMES.intersection(current.relative_to(root).parts):
                continue
            if not any(current.iterdir()):
                current.rmdir()
