"""labctl CLI entry point."""

import logging

import click
from rich.console import Console
from rich.logging import RichHandler

console = Console()


def setup_logging(verbose: bool = False) -> None:
    """Configure logging with rich handler."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, console=console)],
    )
    # Request lines are noise unless debugging
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose logging")
def cli(verbose: bool) -> None:
    """labctl - manage container lab tooling."""
    setup_logging(verbose)


def build_cli() -> click.Group:
    """Attach subcommand groups to the root group.

    Called once at startup; repeated calls are no-ops.
    """
    from labctl.version import register_commands

    if "version" not in cli.commands:
        register_commands(cli)
    return cli


def main() -> None:
    """Main entry point."""
    build_cli()()


if __name__ == "__main__":
    main()
