"""Argument parsing for the pavo CLI, built on click.

The option registry is turned into click commands here. Parsing a
command line produces a ``ResolvedInvocation``; nothing in this module
imports or runs a subsystem.

Parsing rules beyond what click does on its own:

- Only options that were actually given (on the command line or through
  their environment variable) appear in the option bag. An absent flag is
  an absent key, never ``None`` or ``False``.
- Unknown flags are not rejected. ``--name=value`` yields the string,
  ``--no-name`` yields ``False``, ``--name value`` takes the following
  token and a bare ``--name`` or ``-x`` yields ``True``. Kebab-case
  names are camelCased (``--foo-bar`` becomes ``fooBar``).
- The first positional argument is the project root.
- Arguments after a bare ``--`` are not parsed at all.
"""
from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Sequence
from typing import Any

import click
from click.core import ParameterSource

from pavo.cli.filters import clean_options, global_options
from pavo.cli.invocation import ResolvedInvocation
from pavo.cli.options import OptionRegistry, OptionSpec, ValueKind, default_registry
from pavo.errors import ParseError, UnknownCommand

OPTION_TERMINATOR = "--"

PASSTHROUGH_META_KEY = "pavo.passthrough"

CONTEXT_SETTINGS: dict[str, Any] = {
    "ignore_unknown_options": True,
    "help_option_names": ["-h", "--help"],
}

_GIVEN_SOURCES = (ParameterSource.COMMANDLINE, ParameterSource.ENVIRONMENT)


class NumberType(click.ParamType):
    """Integer when the text is integral, float otherwise."""

    name = "number"

    def convert(self, value: Any, param: click.Parameter | None, ctx: click.Context | None) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return value
        text = str(value).strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            return float(text)
        except ValueError:
            self.fail(f"{value!r} is not a valid number.", param, ctx)


class OptionalStringType(click.ParamType):
    """A string, or ``True`` when the flag was given without a value."""

    name = "text"

    def convert(self, value: Any, param: click.Parameter | None, ctx: click.Context | None) -> Any:
        if isinstance(value, bool):
            return value
        return str(value)


def camel_case(name: str) -> str:
    """``foo-bar`` -> ``fooBar``."""
    return re.sub(r"-([a-zA-Z0-9])", lambda m: m.group(1).upper(), name)


def to_click_option(spec: OptionSpec) -> click.Option:
    """Translate one registry entry into a click option."""
    short = [f"-{spec.alias}"] if spec.alias else []
    if spec.kind is ValueKind.BOOLEAN:
        decls = [f"{flag}/--no-{flag[2:]}" for flag in spec.long_flags]
        return click.Option(
            [*decls, *short, spec.name],
            is_flag=True,
            default=None,
            envvar=spec.envvar,
            help=spec.description,
        )

    decls = [*spec.long_flags, *short, spec.name]
    if spec.kind is ValueKind.OPTIONAL_STRING:
        return click.Option(
            decls,
            is_flag=False,
            flag_value=True,
            type=OptionalStringType(),
            envvar=spec.envvar,
            metavar=f"[{spec.metavar}]",
            help=spec.description,
        )
    return click.Option(
        decls,
        type=NumberType() if spec.kind is ValueKind.NUMBER else click.STRING,
        envvar=spec.envvar,
        metavar=f"<{spec.metavar}>",
        help=spec.description,
    )


def build_command(
    registry: OptionRegistry,
    name: str,
    callback: Callable[..., Any] | None = None,
) -> click.Command:
    """Build the click command for ``name`` with global flags included."""
    schema = registry.get(name)
    params: list[click.Parameter] = [
        to_click_option(spec) for spec in registry.effective_options(name)
    ]
    params.append(click.Argument(["args"], nargs=-1, type=click.UNPROCESSED, metavar="[ROOT]"))
    return click.Command(
        name,
        params=params,
        callback=callback,
        help=schema.description,
        short_help=schema.description,
        context_settings=dict(CONTEXT_SETTINGS),
    )


def split_passthrough(argv: Sequence[str]) -> tuple[list[str], list[str]]:
    """Split argv at the first bare ``--``."""
    args = list(argv)
    if OPTION_TERMINATOR in args:
        index = args.index(OPTION_TERMINATOR)
        return args[:index], args[index + 1 :]
    return args, []


def _declared_flags(registry: OptionRegistry) -> dict[str, OptionSpec]:
    """Every declared flag spelling, globals first; first declaration wins."""
    flags: dict[str, OptionSpec] = {}
    specs = [*registry.global_options, *(s for schema in registry for s in schema.options)]
    for spec in specs:
        spellings = list(spec.long_flags)
        if spec.kind is ValueKind.BOOLEAN:
            spellings += [f"--no-{flag[2:]}" for flag in spec.long_flags]
        if spec.alias:
            spellings.append(f"-{spec.alias}")
        for spelling in spellings:
            flags.setdefault(spelling, spec)
    return flags


def find_command(args: Sequence[str], registry: OptionRegistry) -> int | None:
    """Index of the command name that follows leading declared flags, if any.

    Declared flags and their values are skipped to reach the first
    positional token. ``None`` when that token is not a command, or when an
    undeclared flag comes first and its arity cannot be known. An optional
    value is never taken from a token that names a command, so
    ``-d build`` runs ``build`` with debug output on.
    """
    flags = _declared_flags(registry)
    index = 0
    while index < len(args):
        token = args[index]
        if token == "-" or not token.startswith("-"):
            return index if token in registry else None
        name, inline, _ = token.partition("=")
        spec = flags.get(name)
        if spec is None and not token.startswith("--") and len(token) > 2:
            # short alias with its value attached: -lwarn
            spec = flags.get(token[:2])
            if spec is None or not spec.kind.takes_value:
                return None
            inline = token[2:]
        if spec is None:
            return None
        index += 1
        if inline or not spec.kind.takes_value:
            continue
        if spec.kind is ValueKind.OPTIONAL_STRING:
            following = args[index] if index < len(args) else "-"
            if not following.startswith("-") and following not in registry:
                index += 1
            continue
        index += 1
    return None


def move_command_first(args: Sequence[str], registry: OptionRegistry) -> list[str]:
    """``-l warn build`` -> ``build -l warn``; other argv is returned as is."""
    args = list(args)
    index = find_command(args, registry)
    if index:
        args.insert(0, args.pop(index))
    return args


def select_command(args: Sequence[str], registry: OptionRegistry) -> tuple[str, list[str]]:
    """Pick the command named by the first positional token, else the default.

    Raises
    ------
    UnknownCommand
        If the first token is not a command and there is no default.
    """
    args = move_command_first(args, registry)
    if args and args[0] in registry:
        return args[0], list(args[1:])
    if registry.default_command is None:
        raise UnknownCommand(args[0] if args else "", registry.list_commands())
    return registry.default_command, list(args)


def parse_extra_args(tokens: Iterable[str]) -> tuple[dict[str, Any], list[str]]:
    """Separate unknown flags from positionals in click's leftover tokens."""
    unknown: dict[str, Any] = {}
    positional: list[str] = []
    pending = list(tokens)
    while pending:
        token = pending.pop(0)
        if token.startswith("--") and len(token) > 2:
            body = token[2:]
            if "=" in body:
                key, value = body.split("=", 1)
                unknown[camel_case(key)] = value
            elif body.startswith("no-"):
                unknown[camel_case(body[3:])] = False
            elif pending and not pending[0].startswith("-"):
                unknown[camel_case(body)] = pending.pop(0)
            else:
                unknown[camel_case(body)] = True
        elif token.startswith("-") and len(token) > 1 and not _looks_numeric(token):
            for letter in token[1:]:
                unknown[letter] = True
        else:
            positional.append(token)
    return unknown, positional


def _looks_numeric(token: str) -> bool:
    try:
        float(token)
    except ValueError:
        return False
    return True


def invocation_from_context(
    ctx: click.Context, passthrough: Sequence[str] = ()
) -> ResolvedInvocation:
    """Build the invocation from a parsed click context."""
    options: dict[str, Any] = {}
    for param in ctx.command.params:
        if not isinstance(param, click.Option) or param.name is None:
            continue
        if ctx.get_parameter_source(param.name) in _GIVEN_SOURCES:
            options[param.name] = ctx.params[param.name]

    unknown, positional = parse_extra_args(ctx.params.get("args") or ())
    for key, value in unknown.items():
        options.setdefault(key, value)
    if passthrough:
        options[OPTION_TERMINATOR] = list(passthrough)

    root = positional.pop(0) if positional else options.get("root")
    return ResolvedInvocation(
        command=ctx.command.name or "",
        root=root,
        global_options=global_options(options),
        specific=clean_options(options),
        positional=tuple(positional),
        passthrough=tuple(passthrough),
    )


def parse_argv(
    argv: Sequence[str], registry: OptionRegistry | None = None
) -> ResolvedInvocation:
    """Parse ``argv`` (without the program name) into an invocation.

    Raises
    ------
    ParseError
        If click rejects the command line (missing value, bad number).
    UnknownCommand
        If no command matches and the registry has no default.
    """
    registry = registry or default_registry()
    args, passthrough = split_passthrough(argv)
    name, rest = select_command(args, registry)
    command = build_command(registry, name)
    try:
        ctx = command.make_context(name, rest)
    except click.UsageError as exc:
        raise ParseError(exc.format_message(), ctx=exc.ctx) from exc
    with ctx:
        return invocation_from_context(ctx, passthrough)
