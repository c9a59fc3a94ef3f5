"""labctl - command-line companion for container lab deployments."""

__version__ = "0.1.0"
