"""Separation of tool-wide options from command-specific options.

The raw option bag produced by the parser mixes both kinds. Subsystems
receive only the command-specific part; the tool-wide part is consumed by
the dispatcher itself (config file, root, log level, debug output).
"""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any

# Long names, short aliases, and the ``--`` bucket of arguments that
# followed the option terminator. ``mode`` is tool-wide even though only
# ``serve`` and ``build`` declare the flag.
GLOBAL_OPTION_KEYS: frozenset[str] = frozenset(
    {
        "--",
        "debug",
        "d",
        "filter",
        "f",
        "config",
        "c",
        "root",
        "r",
        "base",
        "mode",
        "m",
        "logLevel",
        "l",
        "clearScreen",
    }
)


def clean_options(options: Mapping[str, Any]) -> dict[str, Any]:
    """Return a new dict holding every key of ``options`` that is not global.

    ``options`` is not modified, and ``clean_options`` applied to its own
    result returns an equal dict.
    """
    return {key: value for key, value in options.items() if key not in GLOBAL_OPTION_KEYS}


def global_options(options: Mapping[str, Any]) -> dict[str, Any]:
    """The complement of ``clean_options``."""
    return {key: value for key, value in options.items() if key in GLOBAL_OPTION_KEYS}


def split_options(options: Mapping[str, Any]) -> tuple[dict[str, Any], dict[str, Any]]:
    """Partition ``options`` into ``(global, command_specific)``."""
    return global_options(options), clean_options(options)
