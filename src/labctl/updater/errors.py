"""Error taxonomy for the self-upgrade pipeline.

Every failure raised by the resolver or the executor derives from
``UpgradeError`` so the command layer can report it in one place. The
underlying cause, when there is one, is chained via ``raise ... from``.
"""


class UpgradeError(Exception):
    """Base class for all upgrade failures."""

    pass


class NetworkError(UpgradeError):
    """An HTTP request could not be completed."""

    pass


class DecodeError(UpgradeError):
    """The tag listing was not a list of records with a name."""

    pass


class NoValidVersionError(UpgradeError):
    """No tag in the listing parsed as a release version."""

    pass


class TempFileError(UpgradeError):
    """The staging file could not be created."""

    pass


class WriteError(UpgradeError):
    """The installer body could not be written to the staging file."""

    pass


class SeekError(UpgradeError):
    """The staging file could not be rewound."""

    pass


class ScriptPermissionError(UpgradeError):
    """The staging file could not be made executable."""

    pass


class SubprocessError(UpgradeError):
    """The installer failed to start or exited non-zero."""

    def __init__(self, message: str, returncode: int | None = None):
        super().__init__(message)
        self.returncode = returncode
