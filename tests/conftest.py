"""Pytest configuration and fixtures."""

import stat
import tempfile
from collections.abc import Callable, Iterator
from pathlib import Path

import httpx
import pytest

from labctl.updater import Invocation, PrivilegedRunner


class RecordingRunner(PrivilegedRunner):
    """Runner that records invocations instead of elevating anything."""

    def __init__(self, returncode: int = 0, error: OSError | None = None):
        self.returncode = returncode
        self.error = error
        self.invocations: list[Invocation] = []
        self.script_existed: bool | None = None
        self.script_content: bytes | None = None
        self.script_mode: int | None = None

    def run(self, invocation: Invocation) -> int:
        self.invocations.append(invocation)
        script = Path(invocation.args[0])
        self.script_existed = script.exists()
        if self.script_existed:
            self.script_content = script.read_bytes()
            self.script_mode = stat.S_IMODE(script.stat().st_mode)
        if self.error is not None:
            raise self.error
        return self.returncode


@pytest.fixture
def runner() -> RecordingRunner:
    """A runner that succeeds."""
    return RecordingRunner()


@pytest.fixture
def make_runner() -> type[RecordingRunner]:
    """The recording runner class, for non-default outcomes."""
    return RecordingRunner


@pytest.fixture
def make_client() -> Iterator[Callable[[Callable[[httpx.Request], httpx.Response]], httpx.Client]]:
    """Build an httpx client served by a handler function."""
    clients: list[httpx.Client] = []

    def factory(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.Client:
        client = httpx.Client(transport=httpx.MockTransport(handler))
        clients.append(client)
        return client

    yield factory

    for client in clients:
        client.close()


@pytest.fixture
def staging_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point temporary file creation at an isolated directory."""
    directory = tmp_path / "staging"
    directory.mkdir()
    monkeypatch.setattr(tempfile, "tempdir", str(directory))
    return directory


def pytest_addoption(parser):
    """Add custom command line options."""
    parser.addoption(
        "--run-live",
        action="store_true",
        default=False,
        help="run live tests that query the public release channel",
    )


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "live: mark test as requiring network access (deselect with '-m \"not live\"')",
    )


def pytest_collection_modifyitems(config, items):
    """Skip live tests unless --run-live is specified."""
    if config.getoption("--run-live"):
        return

    skip_live = pytest.mark.skip(reason="need --run-live option to run")
    for item in items:
        if "live" in item.keywords:
            item.add_marker(skip_live)
