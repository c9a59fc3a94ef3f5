"""Upgrade endpoints, defaults and the HTTP client factory."""

import contextlib
import logging
from dataclasses import dataclass, field
from importlib import metadata
from typing import Final

import httpx

logger = logging.getLogger(__name__)

# Release channel for lab binaries
GITHUB_REPO: Final = "srl-labs/containerlab"
GITHUB_API_URL: Final = "https://api.github.com/repos"
TAGS_URL: Final = f"{GITHUB_API_URL}/{GITHUB_REPO}/tags"
INSTALLER_URL: Final = f"https://github.com/{GITHUB_REPO}/raw/main/get.sh"

# The installer reads the version to install from this variable
VERSION_ENV_VAR: Final = "CLAB_VERSION"

# Owner rwx, group and other rx
SCRIPT_MODE: Final = 0o755

PACKAGE_NAME: Final = "labctl"


def get_current_version() -> str:
    """Get the installed version of labctl.

    Reads from package metadata, falling back to the package attribute.
    """
    try:
        return metadata.version(PACKAGE_NAME)
    except metadata.PackageNotFoundError:
        logger.debug("No distribution metadata for %s", PACKAGE_NAME)

    import labctl

    return getattr(labctl, "__version__", "0.0.0-dev")


def _default_user_agent() -> str:
    return f"labctl-updater/{get_current_version()}"


@dataclass
class UpgradeConfig:
    """Where to look for releases and how to run the installer."""

    tags_url: str = TAGS_URL
    installer_url: str = INSTALLER_URL
    version_env: str = VERSION_ENV_VAR
    # None disables HTTP timeouts entirely
    timeout: float | None = None
    script_mode: int = SCRIPT_MODE
    user_agent: str = field(default_factory=_default_user_agent)

    @property
    def headers(self) -> dict[str, str]:
        return {
            "User-Agent": self.user_agent,
            "Accept": "application/vnd.github.v3+json",
        }


def open_client(
    config: UpgradeConfig,
    client: httpx.Client | None = None,
) -> contextlib.AbstractContextManager[httpx.Client]:
    """Return a context manager yielding an HTTP client.

    An injected client is yielded as-is and left open for its owner;
    otherwise a fresh client is created and closed on exit.
    """
    if client is not None:
        return contextlib.nullcontext(client)
    return httpx.Client(
        timeout=config.timeout,
        follow_redirects=True,
        headers=config.headers,
    )
