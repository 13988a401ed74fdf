"""Allow running as `python -m git_site_publisher`."""
import sys

from git_site_publisher.cli.main import main

sys.exit(main())
