"""Installer staging and privileged execution.

The upgrade flow is:
1. Create an exclusively owned temporary file
2. Download the installer script into it and rewind
3. Make it executable
4. Run it with elevated rights, the target tag exported in the environment
5. Delete the file, whatever happened before

Each step raises its own ``UpgradeError`` subclass and nothing is retried.
"""

import contextlib
import logging
import os
import subprocess
import tempfile
from abc import ABC, abstractmethod
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO

import httpx

from labctl.updater.config import UpgradeConfig, open_client
from labctl.updater.errors import (
    NetworkError,
    ScriptPermissionError,
    SeekError,
    SubprocessError,
    TempFileError,
    WriteError,
)

logger = logging.getLogger(__name__)

STAGING_PREFIX = "labctl-installer-"
STAGING_SUFFIX = ".sh"


@dataclass
class Invocation:
    """A command to run with elevated rights."""

    program: str
    args: list[str] = field(default_factory=list)
    env_overlay: dict[str, str] = field(default_factory=dict)

    @property
    def argv(self) -> list[str]:
        return [self.program, *self.args]

    def environment(self) -> dict[str, str]:
        """Current process environment plus the overlay."""
        env = os.environ.copy()
        env.update(self.env_overlay)
        return env


class PrivilegedRunner(ABC):
    """Runs an invocation with elevated rights.

    Implementations inherit stdout and stderr from the caller and block
    until the process exits.
    """

    @abstractmethod
    def run(self, invocation: Invocation) -> int:
        """Run the invocation and return its exit code.

        Raises:
            OSError: If the process could not be started.
        """
        ...


class SudoRunner(PrivilegedRunner):
    """Elevates through sudo."""

    def __init__(self, sudo: str = "sudo"):
        self._sudo = sudo

    def command(self, invocation: Invocation) -> list[str]:
        cmd = [self._sudo]
        # sudo resets the environment unless told to keep the overlay
        if invocation.env_overlay:
            cmd.append("--preserve-env=" + ",".join(invocation.env_overlay))
        cmd.extend(invocation.argv)
        return cmd

    def run(self, invocation: Invocation) -> int:
        cmd = self.command(invocation)
        logger.info("Running %s", " ".join(cmd))
        completed = subprocess.run(cmd, env=invocation.environment(), check=False)
        return completed.returncode


@contextlib.contextmanager
def staged_script() -> Iterator[IO[bytes]]:
    """Yield an open, empty temporary file that is removed on exit.

    Raises:
        TempFileError: If the file could not be created.
    """
    try:
        handle = tempfile.NamedTemporaryFile(
            prefix=STAGING_PREFIX,
            suffix=STAGING_SUFFIX,
            delete=False,
        )
    except OSError as exc:
        raise TempFileError(f"failed to create temp file: {exc}") from exc

    logger.debug("Staging installer at %s", handle.name)
    try:
        yield handle
    finally:
        try:
            handle.close()
        finally:
            with contextlib.suppress(FileNotFoundError):
                os.unlink(handle.name)


def download_script(client: httpx.Client, url: str, handle: IO[bytes]) -> int:
    """Stream the installer at ``url`` into ``handle`` and rewind it.

    Returns the number of bytes written. A failure partway leaves the
    file partially written.

    Raises:
        NetworkError: On transport failure or an error status.
        WriteError: If the local write fails.
        SeekError: If the file cannot be rewound.
    """
    written = 0
    try:
        with client.stream("GET", url) as response:
            response.raise_for_status()
            for chunk in response.iter_bytes():
                try:
                    handle.write(chunk)
                except OSError as exc:
                    raise WriteError(f"failed to write upgrade script: {exc}") from exc
                written += len(chunk)
    except httpx.HTTPError as exc:
        raise NetworkError(f"failed to download upgrade script from {url}: {exc}") from exc

    try:
        handle.flush()
    except OSError as exc:
        raise WriteError(f"failed to write upgrade script: {exc}") from exc

    try:
        handle.seek(0)
    except OSError as exc:
        raise SeekError(f"failed to rewind upgrade script: {exc}") from exc

    logger.debug("Downloaded %d bytes from %s", written, url)
    return written


def make_executable(path: Path, mode: int) -> None:
    """Set ``mode`` on the staged script.

    Raises:
        ScriptPermissionError: If the mode cannot be changed.
    """
    try:
        path.chmod(mode)
    except OSError as exc:
        raise ScriptPermissionError(
            f"failed to set script as executable: {exc}"
        ) from exc


def build_invocation(script: Path, tag: str, version_env: str) -> Invocation:
    """Describe running ``script`` under bash with ``tag`` exported."""
    return Invocation(
        program="bash",
        args=[str(script)],
        env_overlay={version_env: tag},
    )


def run_installer(runner: PrivilegedRunner, invocation: Invocation) -> None:
    """Run the installer and wait for it.

    Raises:
        SubprocessError: If it cannot start or exits non-zero.
    """
    try:
        returncode = runner.run(invocation)
    except OSError as exc:
        raise SubprocessError(f"could not start installer: {exc}") from exc

    if returncode != 0:
        raise SubprocessError(
            f"installer exited with status {returncode}",
            returncode=returncode,
        )


def perform_upgrade(
    tag: str,
    config: UpgradeConfig | None = None,
    runner: PrivilegedRunner | None = None,
    client: httpx.Client | None = None,
) -> None:
    """Download and run the installer for ``tag``.

    Args:
        tag: Full release tag exported to the installer, e.g. ``"v0.55.0"``.
        config: Installer URL, variable name and file mode.
        runner: Privileged execution capability. Defaults to sudo.
        client: HTTP client to use instead of creating one.

    Raises:
        UpgradeError: The first failing step's error. The staged file is
            removed in every case.
    """
    config = config or UpgradeConfig()
    runner = runner or SudoRunner()

    with staged_script() as handle:
        script = Path(handle.name)

        with open_client(config, client) as http:
            download_script(http, config.installer_url, handle)

        make_executable(script, config.script_mode)

        invocation = build_invocation(script, tag, config.version_env)
        run_installer(runner, invocation)

    logger.info("Installer for %s completed", tag)
