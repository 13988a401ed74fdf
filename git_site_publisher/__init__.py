"""
git-site-publisher - Publish a built static site to a dedicated git branch
"""

from .__version__ import __version__
from .core import PublishController
from .cli.main import main

__all__ = ["PublishController", "main", "__version__"]
