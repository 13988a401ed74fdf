"""Shared constants for git-site-publisher."""

# Publish target defaults
DEFAULT_BRANCH = "gh-pages"
DEFAULT_OUTPUT_DIR = "public"
DEFAULT_WORKTREE_ROOT = ".publish"
DEFAULT_MESSAGE_PREFIX = "deploy"
DEFAULT_NETWORK_TIMEOUT = 120  # seconds
PREFERRED_REMOTE = "origin"

# Zero-byte file telling GitHub Pages style hosts to skip their own build step
MARKER_FILE = ".nojekyll"

# Version control metadata never mirrored, listed, or deleted
VCS_METADATA_NAMES = frozenset({".git"})

# Commit timestamps, equivalent to `date -u +%FT%TZ`
COMMIT_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

LOCK_REASON = "git-site-publisher run in progress"

# Environment variables consulted when the matching CLI option is absent
ENV_OUTPUT_DIR = "SITE_PUBLISH_OUTPUT"
ENV_BRANCH = "SITE_PUBLISH_BRANCH"
ENV_REMOTE = "SITE_PUBLISH_REMOTE"
ENV_WORKTREE = "SITE_PUBLISH_WORKTREE"

# Lower-cased fragments of git's stderr that identify a failure category
NETWORK_ERROR_MARKERS = (
    "could not read from remote repository",
    "does not appear to be a git repository",
    "unable to access",
    "could not resolve host",
    "connection timed out",
    "connection refused",
    "network is unreachable",
    "the remote end hung up",
    "early eof",
    "timeout:",
)

PUSH_CONFLICT_MARKERS = (
    "non-fast-forward",
    "fetch first",
    "updates were rejected",
    "stale info",
)
