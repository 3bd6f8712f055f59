"""CLI entry point for pavo.

Invoked as::

    pavo [ROOT] [OPTIONS]            # same as `pavo serve`
    pavo COMMAND [ROOT] [OPTIONS]

or, during development::

    python -m pavo.cli.main

Commands
--------
serve       Start the dev server (default)
build       Build for production
optimize    Pre-bundle dependencies
preview     Locally preview a production build

Global options (``--config``, ``--root``, ``--base``, ``--logLevel``,
``--clearScreen``, ``--debug``, ``--filter``) are accepted by every
command, before or after the command name's arguments.
"""
from __future__ import annotations

import asyncio
from typing import Any

import click

from pavo import __version__
from pavo.cli.dispatcher import Dispatcher
from pavo.cli.options import OptionRegistry, default_registry
from pavo.cli.parser import (
    CONTEXT_SETTINGS,
    PASSTHROUGH_META_KEY,
    build_command,
    invocation_from_context,
    move_command_first,
    split_passthrough,
)


class DefaultCommandGroup(click.Group):
    """Group that falls back to ``default_command`` for unknown first tokens.

    ``pavo``, ``pavo ./app`` and ``pavo --port 4000`` all run ``serve``.
    Declared flags may come before the command name, so
    ``pavo --logLevel warn build`` runs ``build``.
    Arguments after a bare ``--`` are set aside in ``ctx.meta`` before
    click sees them.
    """

    def __init__(self, *args: Any, registry: OptionRegistry, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.registry = registry
        self.default_command = registry.default_command

    def parse_args(self, ctx: click.Context, args: list[str]) -> list[str]:
        args, passthrough = split_passthrough(args)
        ctx.meta[PASSTHROUGH_META_KEY] = passthrough
        args = move_command_first(args, self.registry)
        group_flags = {*ctx.help_option_names, "-v", "--version"}
        if self.default_command and (
            not args or (args[0] not in self.commands and args[0] not in group_flags)
        ):
            args = [self.default_command, *args]
        return super().parse_args(ctx, args)


@click.pass_context
def _run_command(ctx: click.Context, **_params: Any) -> None:
    invocation = invocation_from_context(ctx, ctx.meta.get(PASSTHROUGH_META_KEY, ()))
    asyncio.run(Dispatcher().dispatch(invocation))


def create_cli(registry: OptionRegistry | None = None) -> click.Group:
    """Build the ``pavo`` click group from ``registry``."""
    registry = registry or default_registry()

    @click.group(
        cls=DefaultCommandGroup,
        registry=registry,
        context_settings=dict(CONTEXT_SETTINGS),
    )
    @click.version_option(__version__, "-v", "--version", prog_name="pavo")
    def cli() -> None:
        """pavo: dev server, production build, dependency pre-bundling and preview."""

    for schema in registry:
        cli.add_command(build_command(registry, schema.name, callback=_run_command))
    return cli


cli = create_cli()


def main() -> None:
    cli(prog_name="pavo")


if __name__ == "__main__":
    main()
