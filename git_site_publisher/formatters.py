"""Formatting utilities for git-site-publisher output and commit messages."""

import re
from datetime import datetime, timezone
from typing import List

from git_site_publisher.constants import COMMIT_TIMESTAMP_FORMAT
from git_site_publisher.models.commit import ChangeSet
from git_site_publisher.models.sync import SyncPlan


def format_commit_message(prefix: str, when: datetime) -> str:
    """
    Build the deterministic publish commit message.

    Args:
        prefix: Fixed message prefix, e.g. "deploy"
        when: Instant of the run; naive datetimes are taken to be UTC

    Returns:
        "<prefix> YYYY-MM-DDTHH:MM:SSZ"
    """
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return f"{prefix} {when.astimezone(timezone.utc).strftime(COMMIT_TIMESTAMP_FORMAT)}"


def commit_message_pattern(prefix: str) -> "re.Pattern[str]":
    """Regex matching messages produced by format_commit_message for prefix."""
    return re.compile(rf"^{re.escape(prefix)} \d{{4}}-\d{{2}}-\d{{2}}T\d{{2}}:\d{{2}}:\d{{2}}Z$")


def format_sync_plan(plan: SyncPlan) -> str:
    """One-line summary of a sync plan."""
    return f"{len(plan.added)} new, {len(plan.updated)} copied over, {len(plan.deleted)} removed"


def format_changes(changes: ChangeSet) -> str:
    """One-line summary of a change set."""
    if changes.is_empty:
        return "no changes"
    parts: List[str] = []
    if changes.added:
        parts.append(f"{len(changes.added)} added")
    if changes.modified:
        parts.append(f"{len(changes.modified)} modified")
    if changes.deleted:
        parts.append(f"{len(changes.deleted)} deleted")
    return ", ".join(parts)
