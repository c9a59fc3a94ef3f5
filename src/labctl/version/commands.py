"""``labctl version`` command group."""

import os
from collections.abc import Callable
from typing import Any, NoReturn

import click

from labctl.cli import console
from labctl.updater import (
    UpgradeConfig,
    UpgradeError,
    get_current_version,
    parse_tag_version,
    parse_version,
    perform_upgrade,
    resolve_latest_version,
)
from labctl.updater.config import INSTALLER_URL, TAGS_URL, VERSION_ENV_VAR


def check_root_privileges() -> None:
    """Fail unless running with an effective uid of 0."""
    geteuid = getattr(os, "geteuid", None)
    if geteuid is None or geteuid() != 0:
        raise click.ClickException(
            "this command requires root privileges, re-run it with sudo"
        )


def _report_failure(context: str, exc: UpgradeError) -> NoReturn:
    console.print(f"[red]✗[/red] {context}: {exc}")
    if exc.__cause__ is not None:
        console.print(f"  [dim]{type(exc.__cause__).__name__}: {exc.__cause__}[/dim]")
    raise SystemExit(1)


def _release_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Options shared by commands that talk to the release channel."""
    func = click.option(
        "--timeout",
        type=float,
        default=None,
        envvar="LABCTL_HTTP_TIMEOUT",
        help="HTTP timeout in seconds (default: wait indefinitely)",
    )(func)
    func = click.option(
        "--tags-url",
        default=TAGS_URL,
        show_default=True,
        envvar="LABCTL_TAGS_URL",
        help="Tag listing endpoint",
    )(func)
    return func


def _is_newer(tag: str, current: str) -> bool:
    latest = parse_tag_version(tag)
    installed = parse_version(current)
    if installed is None:
        return True
    return latest is not None and latest > installed


@click.group(invoke_without_command=True)
@click.pass_context
def version(ctx: click.Context) -> None:
    """Show the installed version or upgrade to the latest release."""
    if ctx.invoked_subcommand is None:
        ctx.invoke(version_show)


@version.command("show")
def version_show() -> None:
    """Show the installed version."""
    console.print(f"labctl [cyan]{get_current_version()}[/cyan]")


@version.command("check")
@_release_options
def version_check(tags_url: str, timeout: float | None) -> None:
    """Check whether a newer release is published."""
    config = UpgradeConfig(tags_url=tags_url, timeout=timeout)
    current = get_current_version()

    try:
        latest = resolve_latest_version(config)
    except UpgradeError as exc:
        _report_failure("failed to determine latest version", exc)

    if _is_newer(latest, current):
        console.print(f"[yellow]→[/yellow] Update available: {current} → {latest}")
        console.print("\nRun [cyan]sudo labctl version upgrade[/cyan] to update")
    else:
        console.print("[green]✓[/green] labctl is up to date")
        console.print(f"  Current: [cyan]{current}[/cyan]")
        console.print(f"  Latest:  [cyan]{latest}[/cyan]")


@version.command("upgrade")
@_release_options
@click.option(
    "--installer-url",
    default=INSTALLER_URL,
    show_default=True,
    envvar="LABCTL_INSTALLER_URL",
    help="Installer script location",
)
@click.option(
    "--version-env",
    default=VERSION_ENV_VAR,
    show_default=True,
    envvar="LABCTL_VERSION_ENV",
    help="Variable the installer reads the target version from",
)
@click.option("--dry-run", is_flag=True, help="Resolve the latest version without installing")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
def version_upgrade(
    tags_url: str,
    timeout: float | None,
    installer_url: str,
    version_env: str,
    dry_run: bool,
    yes: bool,
) -> None:
    """Upgrade labctl to the latest available version.

    Downloads the installer script and runs it with sudo.
    """
    if not dry_run:
        check_root_privileges()

    config = UpgradeConfig(
        tags_url=tags_url,
        installer_url=installer_url,
        version_env=version_env,
        timeout=timeout,
    )

    try:
        latest = resolve_latest_version(config)
    except UpgradeError as exc:
        _report_failure("failed to determine latest version", exc)

    console.print(f"Latest version: [cyan]{latest}[/cyan]")

    if dry_run:
        console.print(
            f"Would run [dim]{installer_url}[/dim] with {version_env}={latest}"
        )
        return

    if not yes and not click.confirm(f"Upgrade labctl {get_current_version()} → {latest}?"):
        console.print("Aborted")
        return

    console.print("Running installer...")
    try:
        perform_upgrade(latest, config)
    except UpgradeError as exc:
        _report_failure("upgrade failed", exc)

    console.print(f"[green]✓[/green] Upgraded to {latest}")


def register_commands(parent: click.Group) -> None:
    """Attach the ``version`` group to ``parent``."""
    parent.add_command(version)
