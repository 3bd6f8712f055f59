"""Preview server for a finished production build."""
from __future__ import annotations

from pavo.config import ResolvedConfig
from pavo.errors import ServerError
from pavo.server import DevServer

DEFAULT_PREVIEW_PORT = 5000


async def preview(config: ResolvedConfig, port: int | None = None) -> DevServer:
    """Serve ``build.outDir`` of ``config`` and return the listening server.

    Raises
    ------
    ServerError
        If the build output directory does not exist.
    """
    out_dir = config.root / config.build.get("outDir", "dist")
    if not out_dir.is_dir():
        raise ServerError(
            f"The directory {out_dir} does not exist. Did you run `pavo build`?"
        )
    server = DevServer(config, serve_dir=out_dir, default_port=DEFAULT_PREVIEW_PORT)
    return await server.listen(port)
