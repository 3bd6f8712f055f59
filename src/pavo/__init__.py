"""pavo: command-line front end for a front-end development toolchain.

Public API
----------
The stable public surface is everything exported from this module. Every
function imports its subsystem on first call, so importing ``pavo`` stays
cheap regardless of which subsystem a caller needs.

Example
-------
::

    import asyncio
    import pavo
    from pavo.config import InlineConfig

    async def main():
        config = await pavo.resolve_config(InlineConfig(root="app"), "build")
        await pavo.optimize_deps(config, force=True)
        await pavo.build(InlineConfig(root="app", build={"outDir": "public"}))

    asyncio.run(main())

    pavo.__version__
    '0.1.0'
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Any

__version__: str = "0.1.0"

if TYPE_CHECKING:
    from pavo.builder import BuildResult
    from pavo.config import InlineConfig, ResolvedConfig
    from pavo.logger import Logger
    from pavo.server import DevServer


async def create_server(inline: "InlineConfig") -> "DevServer":
    """Create a dev server; call ``listen()`` on the result to start it."""
    from pavo.server import create_server as _create_server

    return await _create_server(inline)


async def build(inline: "InlineConfig") -> "BuildResult":
    """Run a production build."""
    from pavo.builder import build as _build

    return await _build(inline)


async def optimize_deps(
    config: "ResolvedConfig", force: bool = False, as_command: bool = False
) -> dict[str, Any] | None:
    """Refresh the dependency pre-bundle metadata when it is stale."""
    from pavo.optimizer import optimize_deps as _optimize_deps

    return await _optimize_deps(config, force=force, as_command=as_command)


async def preview(config: "ResolvedConfig", port: int | None = None) -> "DevServer":
    """Serve a finished build and return the listening server."""
    from pavo.preview_server import preview as _preview

    return await _preview(config, port)


async def resolve_config(
    inline: "InlineConfig", command: str, default_mode: str = "development"
) -> "ResolvedConfig":
    """Resolve command-line values against the config file and defaults.

    Parameters
    ----------
    inline:
        Values given on the command line.
    command:
        ``"serve"`` or ``"build"``.
    default_mode:
        Mode used when nothing else sets one.
    """
    from pavo.config import resolve_config as _resolve_config

    return await _resolve_config(inline, command, default_mode)  # type: ignore[arg-type]


def create_logger(level: str | None = "info", *, allow_clear_screen: bool = True) -> "Logger":
    """Return the user-facing logger at ``level``."""
    from pavo.logger import create_logger as _create_logger

    return _create_logger(level, allow_clear_screen=allow_clear_screen)


__all__ = [
    "__version__",
    "create_server",
    "build",
    "optimize_deps",
    "preview",
    "resolve_config",
    "create_logger",
]
