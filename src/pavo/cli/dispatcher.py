"""Command dispatch.

Each command maps to a ``CommandHandler``: an async function that imports
the subsystem it needs through the dispatcher's loader, builds the
subsystem's input from the invocation and awaits it. Subsystem modules
are imported only inside the selected handler, so ``pavo build`` never
loads the dev server and vice versa.

A handler that raises is reported by ``pavo.cli.reporting.terminate``
with the handler's context line; the process then exits with status 1.
"""
from __future__ import annotations

import importlib
import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from types import ModuleType
from typing import Any

from pavo.cli.filters import clean_options
from pavo.cli.invocation import DispatchState, ResolvedInvocation
from pavo.cli.reporting import terminate
from pavo.debug import configure_debug
from pavo.errors import SubsystemError, UnknownCommand

logger = logging.getLogger(__name__)

Loader = Callable[[str], ModuleType]
Terminator = Callable[[SubsystemError, str | None], Any]


@dataclass(frozen=True)
class CommandHandler:
    """How one command is run.

    Parameters
    ----------
    name:
        Command name the handler answers to.
    context:
        First line of the error report when the handler fails.
    run:
        ``async run(invocation, load)``; ``load`` imports a module by name.
    """

    name: str
    context: str
    run: Callable[[ResolvedInvocation, Loader], Awaitable[None]]


def command_payload(invocation: ResolvedInvocation) -> dict[str, Any]:
    """Command-specific options minus global keys and ``None`` values."""
    return {k: v for k, v in clean_options(invocation.specific).items() if v is not None}


def _inline_config(load: Loader, invocation: ResolvedInvocation, **sections: Any) -> Any:
    g = invocation.global_options
    return load("pavo.config").InlineConfig(
        root=invocation.root,
        base=g.get("base"),
        mode=g.get("mode"),
        config_file=g.get("config"),
        log_level=g.get("logLevel"),
        clear_screen=g.get("clearScreen"),
        **sections,
    )


def _resolver_config(load: Loader, invocation: ResolvedInvocation, **sections: Any) -> Any:
    g = invocation.global_options
    return load("pavo.config").InlineConfig(
        root=invocation.root,
        base=g.get("base"),
        config_file=g.get("config"),
        log_level=g.get("logLevel"),
        **sections,
    )


async def run_serve(invocation: ResolvedInvocation, load: Loader) -> None:
    server_module = load("pavo.server")
    inline = _inline_config(load, invocation, server=command_payload(invocation))
    server = await server_module.create_server(inline)
    await server.listen()
    await server.serve_forever()


async def run_build(invocation: ResolvedInvocation, load: Loader) -> None:
    builder = load("pavo.builder")
    await builder.build(_inline_config(load, invocation, build=command_payload(invocation)))


async def run_optimize(invocation: ResolvedInvocation, load: Loader) -> None:
    optimizer = load("pavo.optimizer")
    config_module = load("pavo.config")
    config = await config_module.resolve_config(
        _resolver_config(load, invocation), "build", "development"
    )
    force = bool(invocation.specific.get("force"))
    await optimizer.optimize_deps(config, force=force, as_command=True)


async def run_preview(invocation: ResolvedInvocation, load: Loader) -> None:
    preview_module = load("pavo.preview_server")
    config_module = load("pavo.config")
    config = await config_module.resolve_config(
        _resolver_config(load, invocation, server={"open": invocation.specific.get("open")}),
        "serve",
        "development",
    )
    server = await preview_module.preview(config, invocation.specific.get("port"))
    await server.serve_forever()


HANDLERS: dict[str, CommandHandler] = {
    handler.name: handler
    for handler in (
        CommandHandler("serve", "error when starting dev server", run_serve),
        CommandHandler("build", "error during build", run_build),
        CommandHandler("optimize", "error when optimizing deps", run_optimize),
        CommandHandler("preview", "error when starting preview server", run_preview),
    )
}


class Dispatcher:
    """Runs exactly one invocation.

    Parameters
    ----------
    handlers:
        Command name to handler. Defaults to ``HANDLERS``.
    loader:
        Imports subsystem modules; ``importlib.import_module`` by default.
    terminator:
        Called with the wrapped error and the log level when a handler
        fails. The default ``terminate`` exits the process.
    """

    def __init__(
        self,
        handlers: Mapping[str, CommandHandler] | None = None,
        *,
        loader: Loader = importlib.import_module,
        terminator: Terminator = terminate,
    ) -> None:
        self.handlers = dict(HANDLERS if handlers is None else handlers)
        self.loader = loader
        self.terminator = terminator
        self.state = DispatchState.IDLE

    def _load(self, name: str) -> ModuleType:
        logger.debug("loading %s", name)
        return self.loader(name)

    async def dispatch(self, invocation: ResolvedInvocation) -> None:
        """Run the handler for ``invocation.command``.

        Raises
        ------
        UnknownCommand
            If no handler is registered for the command.
        RuntimeError
            If this dispatcher has already run an invocation.
        """
        if self.state is not DispatchState.IDLE:
            raise RuntimeError(f"dispatcher already used (state: {self.state.name})")
        self.state = DispatchState.PARSED

        handler = self.handlers.get(invocation.command)
        if handler is None:
            self.state = DispatchState.FAILED
            raise UnknownCommand(invocation.command, list(self.handlers))

        configure_debug(
            invocation.global_options.get("debug"), invocation.global_options.get("filter")
        )
        logger.debug("dispatching %r with root=%r", handler.name, invocation.root)

        self.state = DispatchState.DISPATCHING
        try:
            await handler.run(invocation, self._load)
        except Exception as exc:
            self.state = DispatchState.FAILED
            error = SubsystemError(handler.name, handler.context)
            error.__cause__ = exc
            self.terminator(error, invocation.log_level)
            return
        self.state = DispatchState.SUCCEEDED
