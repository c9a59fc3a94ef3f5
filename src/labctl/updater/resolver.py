"""Latest release discovery from the remote tag listing.

Tags that do not look like ``v<digit>...`` or whose remainder does not
parse as a version are skipped without error; only an empty candidate set
is a failure.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Final

import httpx
from semver import Version

from labctl.updater.config import UpgradeConfig, open_client
from labctl.updater.errors import DecodeError, NetworkError, NoValidVersionError

logger = logging.getLogger(__name__)

TAG_PREFIX: Final = "v"


@dataclass
class TagInfo:
    """A tag record from the listing."""

    name: str


def parse_version(text: str) -> Version | None:
    """Parse a semantic version, allowing a missing minor or patch.

    Returns None if ``text`` is not a semantic version.
    """
    try:
        return Version.parse(text, optional_minor_and_patch=True)
    except (TypeError, ValueError):
        return None


def parse_tag_version(name: str) -> Version | None:
    """Parse a ``v``-prefixed tag name into a version.

    Build metadata is kept on the result but does not affect ordering.
    Returns None if the name is not a release tag.
    """
    if len(name) < 2 or not name.startswith(TAG_PREFIX):
        return None
    # Only ASCII digits; str.isdigit() also accepts superscripts
    if not "0" <= name[1] <= "9":
        return None

    return parse_version(name[len(TAG_PREFIX) :])


def select_latest_tag(names: Iterable[str]) -> str:
    """Return the name with the highest version.

    Equal versions keep the earlier name.

    Raises:
        NoValidVersionError: If no name parses as a release version.
    """
    latest_name: str | None = None
    latest_version: Version | None = None

    for name in names:
        version = parse_tag_version(name)
        if version is None:
            logger.debug("Skipping tag %r", name)
            continue
        if latest_version is None or version > latest_version:
            latest_version = version
            latest_name = name

    if latest_name is None:
        raise NoValidVersionError("no valid version tag found")

    return latest_name


def _decode_tags(payload: object) -> list[TagInfo]:
    # A null body decodes to an empty listing
    if payload is None:
        return []
    if not isinstance(payload, list):
        raise DecodeError(
            f"expected a list of tag records, got {type(payload).__name__}"
        )

    tags = []
    for record in payload:
        if not isinstance(record, dict):
            raise DecodeError(f"expected a tag record, got {type(record).__name__}")
        # A missing or null name decodes to an empty name and is filtered later
        name = record.get("name")
        if name is None:
            name = ""
        if not isinstance(name, str):
            raise DecodeError(f"tag name must be a string, got {name!r}")
        tags.append(TagInfo(name=name))
    return tags


def fetch_tags(client: httpx.Client, url: str) -> list[TagInfo]:
    """Fetch and decode the tag listing.

    Only the first page of the listing is read.
    """
    try:
        response = client.get(url)
        response.raise_for_status()
    except httpx.HTTPError as exc:
        raise NetworkError(f"failed to fetch tags from {url}: {exc}") from exc

    try:
        payload = response.json()
    except ValueError as exc:
        raise DecodeError(f"malformed tag listing from {url}: {exc}") from exc

    return _decode_tags(payload)


def resolve_latest_version(
    config: UpgradeConfig | None = None,
    client: httpx.Client | None = None,
) -> str:
    """Determine the latest release tag, e.g. ``"v0.55.0"``.

    Args:
        config: Endpoints and HTTP settings. Defaults to the public channel.
        client: HTTP client to use instead of creating one.

    Returns:
        The full tag name, prefix included.

    Raises:
        NetworkError: If the listing could not be fetched.
        DecodeError: If the listing is not a list of tag records.
        NoValidVersionError: If no tag is a parseable release version.
    """
    config = config or UpgradeConfig()

    with open_client(config, client) as http:
        tags = fetch_tags(http, config.tags_url)

    logger.debug("Fetched %d tags from %s", len(tags), config.tags_url)
    latest = select_latest_tag(tag.name for tag in tags)
    logger.info("Latest release tag: %s", latest)
    return latest
