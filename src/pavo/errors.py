"""Error types shared by the pavo CLI and its subsystems.

Usage errors (``ParseError``, ``UnknownCommand``) subclass
``click.UsageError`` so that click renders them as usage guidance with
exit status 2 instead of a traceback. Everything raised while a command
runs is a ``PavoError`` or is wrapped into a ``SubsystemError`` by the
dispatcher before it reaches the exit coordinator.
"""
from __future__ import annotations

import click


class PavoError(Exception):
    """Base class for runtime errors raised by pavo subsystems."""


class ConfigError(PavoError):
    """Raised when a configuration file cannot be loaded or is malformed."""

    def __init__(self, message: str, path: str | None = None) -> None:
        self.path = path
        if path is not None:
            message = f"{message} ({path})"
        super().__init__(message)


class BuildError(PavoError):
    """Raised by the builder for invalid build options or missing inputs."""


class ServerError(PavoError):
    """Raised when the dev or preview server cannot start."""


class SubsystemError(PavoError):
    """A failure raised while a command handler was running.

    Parameters
    ----------
    command:
        Name of the command whose handler failed.
    context:
        The human-readable context line logged before the traceback,
        e.g. ``"error during build"``.
    """

    def __init__(self, command: str, context: str) -> None:
        self.command = command
        self.context = context
        super().__init__(f"{context} (command {command!r})")


class ParseError(click.UsageError):
    """Raised when argv cannot be parsed against the option registry."""


class UnknownCommand(click.UsageError):
    """Raised when no handler is registered for a command name."""

    def __init__(self, command_name: str, available: list[str] | None = None) -> None:
        self.command_name = command_name
        self.available = sorted(available or [])
        message = f"No such command {command_name!r}."
        if self.available:
            message += f" Available commands: {', '.join(self.available)}."
        super().__init__(message)
