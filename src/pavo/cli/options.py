"""Option schema registry for the pavo CLI.

Each command owns an independent list of flags; a separate list of
tool-wide flags is shared by every command. Flags are declared in the
same compact syntax the help text shows::

    registry = OptionRegistry()
    registry.add_global("-c, --config <file>", "[string] use specified config file")

    (
        registry.command("build", "build for production")
        .option("--outDir <dir>", "[string] output directory (default: dist)")
        .option("--sourcemap", "[boolean] output source maps for build")
    )

``<value>`` declares a flag that requires a value, ``[value]`` one whose
value is optional, and no placeholder a boolean flag. Numeric flags pass
``kind=ValueKind.NUMBER`` explicitly.

Nothing here enforces uniqueness across commands: two commands may both
declare ``--mode``, and a command may re-declare a global flag. When a
command's effective flag list is assembled, globals come first and a
command declaration whose name is already taken is skipped.
"""
from __future__ import annotations

import logging
import re
from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum, auto

logger = logging.getLogger(__name__)

_FLAG_RE = re.compile(
    r"^\s*(?:-(?P<alias>[A-Za-z]),\s*)?--(?P<name>[A-Za-z][\w-]*)"
    r"(?:\s+(?P<placeholder>[<\[][^>\]]+[>\]]))?\s*$"
)


class ValueKind(Enum):
    """How a flag's value is read from the command line.

    BOOLEAN
        Present means ``True``; ``--no-<name>`` means ``False``.
    STRING
        A value must follow the flag.
    OPTIONAL_STRING
        ``True`` without a value, the string when one follows.
    NUMBER
        A value must follow; integral text becomes an ``int``, other
        numeric text a ``float``.
    """

    BOOLEAN = auto()
    STRING = auto()
    OPTIONAL_STRING = auto()
    NUMBER = auto()

    @property
    def takes_value(self) -> bool:
        return self is not ValueKind.BOOLEAN


class CommandAlreadyRegisteredError(ValueError):
    """Raised when a command name is registered twice."""

    def __init__(self, name: str) -> None:
        self.command_name = name
        super().__init__(
            f"Command {name!r} is already registered. "
            "Declare additional options on the existing schema instead."
        )


class CommandNotRegisteredError(KeyError):
    """Raised when looking up a command that has no schema."""

    def __init__(self, name: str) -> None:
        self.command_name = name
        super().__init__(f"Command {name!r} is not registered.")


def kebab_case(name: str) -> str:
    """``outDir`` -> ``out-dir``."""
    return re.sub(r"(?<=[a-z0-9])([A-Z])", r"-\1", name).lower()


@dataclass(frozen=True)
class OptionSpec:
    """One declared flag.

    Parameters
    ----------
    name:
        Canonical long name; also the key in parsed option bags.
    kind:
        How the value is read.
    description:
        One-line help text.
    alias:
        Optional single-letter short alias.
    metavar:
        Placeholder shown in help, e.g. ``file`` for ``<file>``.
    envvar:
        Environment variable consulted when the flag is not given.
    """

    name: str
    kind: ValueKind
    description: str
    alias: str | None = None
    metavar: str | None = None
    envvar: str | None = None

    @classmethod
    def parse(
        cls,
        flags: str,
        description: str,
        kind: ValueKind | None = None,
        envvar: str | None = None,
    ) -> OptionSpec:
        """Build a spec from a declaration such as ``"-m, --mode <mode>"``.

        Raises
        ------
        ValueError
            If ``flags`` is not in the supported syntax, or ``kind``
            contradicts the placeholder.
        """
        match = _FLAG_RE.match(flags)
        if match is None:
            raise ValueError(f"Cannot parse flag declaration {flags!r}")
        placeholder = match.group("placeholder")
        if placeholder is None:
            inferred = ValueKind.BOOLEAN
        elif placeholder.startswith("["):
            inferred = ValueKind.OPTIONAL_STRING
        else:
            inferred = ValueKind.STRING
        if kind is None:
            kind = inferred
        elif kind.takes_value != inferred.takes_value:
            raise ValueError(f"Flag {flags!r} cannot be declared as {kind.name}")
        return cls(
            name=match.group("name"),
            kind=kind,
            description=description,
            alias=match.group("alias"),
            metavar=placeholder[1:-1] if placeholder else None,
            envvar=envvar,
        )

    @property
    def long_flags(self) -> tuple[str, ...]:
        """``--outDir`` plus its kebab-case spelling when that differs."""
        flags = [f"--{self.name}"]
        kebab = kebab_case(self.name)
        if kebab != self.name:
            flags.append(f"--{kebab}")
        return tuple(flags)

    @property
    def keys(self) -> tuple[str, ...]:
        """Every key this flag may appear under in a raw option bag."""
        return (self.name, self.alias) if self.alias else (self.name,)


@dataclass
class CommandSchema:
    """Flags declared by one command; every command accepts an optional ``[root]``."""

    name: str
    description: str
    options: list[OptionSpec] = field(default_factory=list)

    def option(
        self, flags: str, description: str, *, kind: ValueKind | None = None
    ) -> CommandSchema:
        """Declare a flag on this command and return the schema for chaining."""
        spec = OptionSpec.parse(flags, description, kind)
        self.options.append(spec)
        logger.debug("declared %s on command %r", flags, self.name)
        return self


class OptionRegistry:
    """Holds the global flags and every command's schema.

    Parameters
    ----------
    default_command:
        Command selected when argv does not start with a registered name.
    """

    def __init__(self, default_command: str | None = None) -> None:
        self.default_command = default_command
        self._globals: list[OptionSpec] = []
        self._commands: dict[str, CommandSchema] = {}

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def add_global(
        self,
        flags: str,
        description: str,
        *,
        kind: ValueKind | None = None,
        envvar: str | None = None,
    ) -> OptionRegistry:
        self._globals.append(OptionSpec.parse(flags, description, kind, envvar))
        return self

    def command(
        self,
        name: str,
        description: str,
        *,
        default: bool = False,
    ) -> CommandSchema:
        """Register a command and return its schema.

        Raises
        ------
        CommandAlreadyRegisteredError
            If ``name`` already has a schema.
        """
        if name in self._commands:
            raise CommandAlreadyRegisteredError(name)
        schema = CommandSchema(name=name, description=description)
        self._commands[name] = schema
        if default:
            self.default_command = name
        return schema

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    @property
    def global_options(self) -> list[OptionSpec]:
        return list(self._globals)

    def get(self, name: str) -> CommandSchema:
        try:
            return self._commands[name]
        except KeyError:
            raise CommandNotRegisteredError(name) from None

    def list_commands(self) -> list[str]:
        return list(self._commands)

    def effective_options(self, name: str) -> list[OptionSpec]:
        """Globals first, then the command's own flags not already present."""
        seen: set[str] = set()
        merged: list[OptionSpec] = []
        for spec in [*self._globals, *self.get(name).options]:
            if spec.name in seen:
                logger.debug("skipping duplicate --%s on command %r", spec.name, name)
                continue
            seen.add(spec.name)
            merged.append(spec)
        return merged

    def aliases(self, name: str) -> dict[str, str]:
        """Short alias to canonical name for ``name``'s effective flags."""
        return {spec.alias: spec.name for spec in self.effective_options(name) if spec.alias}

    def __contains__(self, name: object) -> bool:
        return name in self._commands

    def __iter__(self) -> Iterator[CommandSchema]:
        return iter(self._commands.values())

    def __len__(self) -> int:
        return len(self._commands)

    def __repr__(self) -> str:
        return (
            f"OptionRegistry(default={self.default_command!r}, "
            f"commands={self.list_commands()}, globals={len(self._globals)})"
        )


def default_registry() -> OptionRegistry:
    """The flags of the pavo CLI."""
    registry = OptionRegistry()
    (
        registry.add_global(
            "-c, --config <file>", "[string] use specified config file", envvar="PAVO_CONFIG"
        )
        .add_global("-r, --root <path>", "[string] use specified root directory")
        .add_global("--base <path>", "[string] public base path (default: /)")
        .add_global(
            "-l, --logLevel <level>",
            "[string] silent | error | warn | all",
            envvar="PAVO_LOG_LEVEL",
        )
        .add_global("--clearScreen", "[boolean] allow/disable clear screen when logging")
        .add_global("-d, --debug [feat]", "[string | boolean] show debug logs")
        .add_global("-f, --filter <filter>", "[string] filter debug logs")
    )

    (
        registry.command("serve", "start dev server", default=True)
        .option("--host [host]", "[string] specify hostname")
        .option("--port <port>", "[number] specify port", kind=ValueKind.NUMBER)
        .option("--https", "[boolean] use TLS + HTTP/2")
        .option("--open [path]", "[boolean | string] open browser on startup")
        .option("--cors", "[boolean] enable CORS")
        .option("--strictPort", "[boolean] exit if specified port is already in use")
        .option("-m, --mode <mode>", "[string] set env mode")
        .option("--force", "[boolean] force the optimizer to ignore the cache and re-bundle")
    )

    (
        registry.command("build", "build for production")
        .option("--target <target>", "[string] transpile target (default: 'modules')")
        .option("--outDir <dir>", "[string] output directory (default: dist)")
        .option(
            "--assetsDir <dir>",
            "[string] directory under outDir to place assets in (default: assets)",
        )
        .option(
            "--assetsInlineLimit <number>",
            "[number] static asset base64 inline threshold in bytes (default: 4096)",
            kind=ValueKind.NUMBER,
        )
        .option("--ssr [entry]", "[string] build specified entry for server-side rendering")
        .option("--sourcemap", "[boolean] output source maps for build (default: false)")
        .option(
            "--minify [minifier]",
            '[boolean | "terser" | "esbuild"] enable/disable minification, '
            "or specify minifier to use (default: terser)",
        )
        .option("--manifest", "[boolean] emit build manifest json")
        .option("--ssrManifest", "[boolean] emit ssr manifest json")
        .option("--emptyOutDir", "[boolean] force empty outDir when it's outside of root")
        .option("-m, --mode <mode>", "[string] set env mode")
    )

    (
        registry.command("optimize", "pre-bundle dependencies").option(
            "--force", "[boolean] force the optimizer to ignore the cache and re-bundle"
        )
    )

    (
        registry.command("preview", "locally preview production build")
        .option("--port <port>", "[number] specify port", kind=ValueKind.NUMBER)
        .option("--open [path]", "[boolean | string] open browser on startup")
    )
    return registry
