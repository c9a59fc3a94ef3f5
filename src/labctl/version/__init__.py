"""Version reporting and self-upgrade commands."""

from labctl.version.commands import register_commands, version

__all__ = ["register_commands", "version"]
