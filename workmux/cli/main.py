"""Command-line entry point for workmux"""

import sys

from rich.console import Console
from rich.markup import escape

from workmux.cli.args import parse_args
from workmux.cli.commands import COMMANDS
from workmux.exceptions import WorkmuxError
from workmux.logging_config import get_logger, setup_logging

console = Console(stderr=True)
logger = get_logger(__name__)


def main(argv=None):
    """Main entry point for the application."""
    parsed_args = parse_args(argv)
    setup_logging(verbose=parsed_args.verbose, debug=parsed_args.debug)

    if parsed_args.debug:
        console.print("[yellow]Debug mode enabled[/yellow]")

    handler = COMMANDS[parsed_args.command]
    try:
        return handler(parsed_args)
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/yellow]")
        return 130
    except WorkmuxError as e:
        logger.debug(f"{parsed_args.command} failed: {e!r}")
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        if parsed_args.debug:
            console.print_exception()
        return 1


if __name__ == "__main__":
    sys.exit(main())
