"""Version information for git-site-publisher."""

try:
    from git_site_publisher._version import __version__
except ImportError:
    # Fallback for development without tags or when running from source
    __version__ = "0.0.0+unknown"
