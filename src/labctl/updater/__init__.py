"""Self-upgrade for labctl.

Finds the newest release tag in the published tag listing, downloads the
installer script and runs it with elevated rights so it installs exactly
that release.
"""

from labctl.updater.config import UpgradeConfig, get_current_version
from labctl.updater.errors import (
    DecodeError,
    NetworkError,
    NoValidVersionError,
    ScriptPermissionError,
    SeekError,
    SubprocessError,
    TempFileError,
    UpgradeError,
    WriteError,
)
from labctl.updater.executor import (
    Invocation,
    PrivilegedRunner,
    SudoRunner,
    perform_upgrade,
)
from labctl.updater.resolver import (
    TagInfo,
    parse_tag_version,
    parse_version,
    resolve_latest_version,
    select_latest_tag,
)

__all__ = [
    "UpgradeConfig",
    "get_current_version",
    "resolve_latest_version",
    "select_latest_tag",
    "parse_tag_version",
    "parse_version",
    "TagInfo",
    "perform_upgrade",
    "Invocation",
    "PrivilegedRunner",
    "SudoRunner",
    "UpgradeError",
    "NetworkError",
    "DecodeError",
    "NoValidVersionError",
    "TempFileError",
    "WriteError",
    "SeekError",
    "ScriptPermissionError",
    "SubprocessError",
]
