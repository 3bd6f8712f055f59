"""Debug diagnostics switchboard for ``--debug`` and ``--filter``.

Every pavo module logs diagnostics through ``logging.getLogger(__name__)``.
Those records are silent unless the user asks for them:

``--debug``
    DEBUG output for the whole ``pavo`` namespace.
``--debug server,config``
    DEBUG output for ``pavo.server`` and ``pavo.config`` only.
``--filter <text>``
    Keep only records whose message contains ``text``.
"""
from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER = "pavo"

_HANDLER_NAME = "pavo-debug"

_enabled_children: set[str] = set()


class SubstringFilter(logging.Filter):
    """Pass records whose rendered message contains ``needle``."""

    def __init__(self, needle: str) -> None:
        super().__init__()
        self.needle = needle

    def filter(self, record: logging.LogRecord) -> bool:
        return self.needle in record.getMessage()


def debug_namespaces(debug: bool | str | None) -> list[str]:
    """Return the logger names enabled by a ``--debug`` value."""
    if debug is None or debug is False:
        return []
    if debug is True:
        return [ROOT_LOGGER]
    names = []
    for part in str(debug).split(","):
        part = part.strip()
        if not part:
            continue
        if part in ("*", ROOT_LOGGER, f"{ROOT_LOGGER}:*"):
            return [ROOT_LOGGER]
        part = part.removeprefix(f"{ROOT_LOGGER}:").removeprefix(f"{ROOT_LOGGER}.")
        names.append(f"{ROOT_LOGGER}.{part}")
    return names or [ROOT_LOGGER]


def configure_debug(
    debug: bool | str | None = None,
    filter: str | None = None,  # noqa: A002
    *,
    console: Console | None = None,
) -> list[str]:
    """Install the debug handler and return the enabled logger names.

    Calling it again replaces the previous configuration.
    """
    root = logging.getLogger(ROOT_LOGGER)
    for handler in list(root.handlers):
        if handler.get_name() == _HANDLER_NAME:
            root.removeHandler(handler)
    root.propagate = False
    for name in _enabled_children:
        logging.getLogger(name).setLevel(logging.NOTSET)
    _enabled_children.clear()

    namespaces = debug_namespaces(debug)
    if not namespaces:
        root.setLevel(logging.WARNING)
        return []

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        markup=False,
        rich_tracebacks=True,
    )
    handler.set_name(_HANDLER_NAME)
    if filter:
        handler.addFilter(SubstringFilter(filter))
    root.addHandler(handler)

    if namespaces == [ROOT_LOGGER]:
        root.setLevel(logging.DEBUG)
    else:
        root.setLevel(logging.WARNING)
        for name in namespaces:
            logging.getLogger(name).setLevel(logging.DEBUG)
            _enabled_children.add(name)
    return namespaces
