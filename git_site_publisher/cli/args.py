"""Command-line argument parsing for git-site-publisher."""

import argparse
import os
from typing import Mapping, Optional, Sequence

from git_site_publisher.__version__ import __version__
from git_site_publisher.constants import (
    DEFAULT_BRANCH,
    DEFAULT_MESSAGE_PREFIX,
    DEFAULT_NETWORK_TIMEOUT,
    DEFAULT_OUTPUT_DIR,
    ENV_BRANCH,
    ENV_OUTPUT_DIR,
    ENV_REMOTE,
    ENV_WORKTREE,
)


def parse_args(argv: Optional[Sequence[str]] = None, environ: Optional[Mapping[str, str]] = None):
    """Parse command-line arguments, falling back to environment variables."""
    env = os.environ if environ is None else environ

    parser = argparse.ArgumentParser(
        prog="git-site-publish",
        description="Publish a built static site to a dedicated branch of a git repository",
        epilog="Only commits and pushes when the build output changed. "
        f"Target options fall back to {ENV_OUTPUT_DIR}, {ENV_BRANCH}, {ENV_REMOTE} and {ENV_WORKTREE}.",
    )
    parser.add_argument("--version", action="version", version=f"git-site-publisher {__version__}")
    parser.add_argument(
        "-o",
        "--output-dir",
        default=env.get(ENV_OUTPUT_DIR, DEFAULT_OUTPUT_DIR),
        help=f"Build output directory to publish (default: {DEFAULT_OUTPUT_DIR})",
    )
    parser.add_argument(
        "-b",
        "--branch",
        default=env.get(ENV_BRANCH, DEFAULT_BRANCH),
        help=f"Branch to publish to (default: {DEFAULT_BRANCH})",
    )
    parser.add_argument(
        "-r",
        "--remote",
        default=env.get(ENV_REMOTE),
        help="Remote to push to (default: the only configured remote, or origin)",
    )
    parser.add_argument(
        "-w",
        "--worktree-dir",
        default=env.get(ENV_WORKTREE),
        help="Where to keep the publish checkout (default: .publish/<remote>-<branch>)",
    )
    parser.add_argument("--repo", default=".", help="Path to the source repository (default: current directory)")
    parser.add_argument(
        "--build-command",
        action="append",
        default=[],
        metavar="CMD",
        help=(
            "Command that builds the site, run from the repository root before publishing "
            "(repeatable). Run without a shell: &&, pipes and $VARS are not expanded, "
            "so pass one --build-command per step or wrap it in sh -c '...'"
        ),
    )
    parser.add_argument(
        "-m",
        "--message-prefix",
        default=DEFAULT_MESSAGE_PREFIX,
        help=f"Commit message prefix, followed by a UTC timestamp (default: {DEFAULT_MESSAGE_PREFIX})",
    )
    parser.add_argument(
        "--timeout",
        type=int,
        default=DEFAULT_NETWORK_TIMEOUT,
        metavar="SECONDS",
        help=f"Give up on fetch or push after this many seconds (default: {DEFAULT_NETWORK_TIMEOUT})",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Sync and report what would be published without committing or pushing",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Show verbose output")
    parser.add_argument(
        "--debug", action="store_true", help="Show debug information for troubleshooting"
    )

    return parser.parse_args(argv)
