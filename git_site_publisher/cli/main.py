"""Command-line entry point for git-site-publisher"""

import sys
from typing import Optional, Sequence

from rich.console import Console
from rich.markup import escape

from git_site_publisher.cli.args import parse_args
from git_site_publisher.config import Config
from git_site_publisher.core import PublishController
from git_site_publisher.exceptions import SitePublisherError
from git_site_publisher.logging_config import setup_logging

console = Console()
error_console = Console(stderr=True)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point for the application."""
    parsed_args = parse_args(argv)
    setup_logging(verbose=parsed_args.verbose, debug=parsed_args.debug)

    try:
        config = Config(
            repo_path=parsed_args.repo,
            output_dir=parsed_args.output_dir,
            worktree_dir=parsed_args.worktree_dir,
            branch=parsed_args.branch,
            remote=parsed_args.remote,
            build_commands=parsed_args.build_command,
            message_prefix=parsed_args.message_prefix,
            network_timeout=parsed_args.timeout,
            dry_run=parsed_args.dry_run,
            verbose=parsed_args.verbose,
            debug=parsed_args.debug,
        )

        if parsed_args.debug:
            console.print("[yellow]Configuration:[/yellow]")
            for key, value in config.to_dict().items():
                console.print(f"  {key}: {value}")

        PublishController(config).run()
        return 0
    except KeyboardInterrupt:
        error_console.print("\n[yellow]Publish cancelled by user[/yellow]")
        return 130
    except SitePublisherError as e:
        phase = f" during {e.phase}" if e.phase else ""
        error_console.print(f"[red]Publish failed{phase}: {escape(str(e))}[/red]", highlight=False)
        if parsed_args.debug:
            error_console.print_exception()
        return 1
    except Exception as e:
        error_console.print(f"[red]Error: {escape(str(e))}[/red]", highlight=False)
        if parsed_args.debug:
            error_console.print_exception()
        return 1


if __name__ == "__main__":
    sys.exit(main())
