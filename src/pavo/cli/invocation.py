"""The parsed form of one pavo command line."""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum, auto
from types import MappingProxyType
from typing import Any


class DispatchState(Enum):
    """Lifecycle of a single process run; transitions only move forward."""

    IDLE = auto()
    PARSED = auto()
    DISPATCHING = auto()
    SUCCEEDED = auto()
    FAILED = auto()


@dataclass(frozen=True)
class ResolvedInvocation:
    """Command selection plus options, handed from the parser to the dispatcher.

    Parameters
    ----------
    command:
        Selected command name.
    root:
        Project root from the positional argument or ``--root``; ``None``
        means the current working directory.
    global_options:
        Tool-wide options that were given, keyed by canonical name.
    specific:
        Command-specific options that were given, keyed by canonical name.
        Never contains a tool-wide key.
    positional:
        Positional arguments after ``root``.
    passthrough:
        Arguments that followed a bare ``--``.
    """

    command: str
    root: str | None = None
    global_options: Mapping[str, Any] = field(default_factory=dict)
    specific: Mapping[str, Any] = field(default_factory=dict)
    positional: tuple[str, ...] = ()
    passthrough: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        # frozen dataclass: freeze the mappings too
        object.__setattr__(self, "global_options", MappingProxyType(dict(self.global_options)))
        object.__setattr__(self, "specific", MappingProxyType(dict(self.specific)))
        object.__setattr__(self, "positional", tuple(self.positional))
        object.__setattr__(self, "passthrough", tuple(self.passthrough))

    @property
    def log_level(self) -> str | None:
        return self.global_options.get("logLevel")
