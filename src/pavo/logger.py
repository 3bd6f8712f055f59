"""User-facing logger for pavo commands.

This is the logger a command talks to the user through, not the stdlib
``logging`` tree used for debug diagnostics (see ``pavo.debug``). It
knows four thresholds, ``silent < error < warn < info``; ``all`` is
accepted as a synonym for ``info``.

Example
-------
::

    from pavo.logger import create_logger

    logger = create_logger("warn")
    logger.info("hidden")            # below threshold
    logger.warn("shown on stderr")
"""
from __future__ import annotations

from rich.console import Console
from rich.text import Text

LOG_LEVELS: dict[str, int] = {
    "silent": 0,
    "error": 1,
    "warn": 2,
    "info": 3,
}

DEFAULT_LOG_LEVEL = "info"

_LEVEL_ALIASES = {"all": "info", "warning": "warn"}


def normalize_log_level(level: str | None) -> str:
    """Return a valid level name, falling back to ``info`` for anything unknown.

    Never raises: the error path of the CLI builds a logger from whatever
    the user typed, and must not fail a second time.
    """
    if not isinstance(level, str):
        return DEFAULT_LOG_LEVEL
    name = level.strip().lower()
    name = _LEVEL_ALIASES.get(name, name)
    if name not in LOG_LEVELS:
        return DEFAULT_LOG_LEVEL
    return name


class Logger:
    """Threshold-filtered logger writing through Rich consoles.

    Parameters
    ----------
    level:
        Threshold name; see ``LOG_LEVELS``.
    allow_clear_screen:
        When ``False``, ``clear_screen`` and ``info(..., clear=True)`` never
        clear the terminal.
    console, err_console:
        Consoles for info and warn/error output. Default to stdout and
        stderr consoles.
    """

    def __init__(
        self,
        level: str = DEFAULT_LOG_LEVEL,
        *,
        allow_clear_screen: bool = True,
        console: Console | None = None,
        err_console: Console | None = None,
    ) -> None:
        self.level = normalize_log_level(level)
        self.allow_clear_screen = allow_clear_screen
        self.console = console or Console(highlight=False)
        self.err_console = err_console or Console(stderr=True, highlight=False)
        self.has_warned = False
        self._warned_messages: set[str] = set()

    def _enabled(self, level: str) -> bool:
        return LOG_LEVELS[self.level] >= LOG_LEVELS[level]

    def info(self, message: str | Text, *, clear: bool = False) -> None:
        if not self._enabled("info"):
            return
        if clear:
            self.clear_screen()
        self.console.print(message)

    def warn(self, message: str | Text) -> None:
        self.has_warned = True
        if not self._enabled("warn"):
            return
        self.err_console.print(_styled(message, "yellow"))

    def warn_once(self, message: str) -> None:
        if message in self._warned_messages:
            return
        self._warned_messages.add(message)
        self.warn(message)

    def error(self, message: str | Text) -> None:
        if not self._enabled("error"):
            return
        self.err_console.print(message)

    def clear_screen(self) -> None:
        if self.allow_clear_screen and self.console.is_terminal:
            self.console.clear()


def _styled(message: str | Text, style: str) -> Text:
    if isinstance(message, Text):
        return message
    return Text(message, style=style)


def create_logger(
    level: str | None = DEFAULT_LOG_LEVEL,
    *,
    allow_clear_screen: bool = True,
) -> Logger:
    """Return a ``Logger`` at ``level``; invalid levels fall back to ``info``."""
    return Logger(normalize_log_level(level), allow_clear_screen=allow_clear_screen)
