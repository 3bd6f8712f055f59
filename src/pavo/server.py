"""Development server.

A small asyncio HTTP/1.1 static file server rooted at the project root.
The same class backs the preview server (``pavo.preview_server``), which
serves the build output directory instead.
"""
from __future__ import annotations

import asyncio
import logging
import mimetypes
from pathlib import Path
from typing import Any
from urllib.parse import unquote, urlsplit

from rich.markup import escape

from pavo.config import InlineConfig, ResolvedConfig, resolve_config
from pavo.errors import ServerError

logger = logging.getLogger(__name__)

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 3000

# Ports tried after the requested one when strictPort is off.
PORT_ATTEMPTS = 20

_REASONS = {200: "OK", 404: "Not Found", 405: "Method Not Allowed", 400: "Bad Request"}


def resolve_host(host: str | bool | None) -> str:
    """``--host`` with no value (``True``) listens on all interfaces."""
    if host is True:
        return "0.0.0.0"
    if not host:
        return DEFAULT_HOST
    return str(host)


class DevServer:
    """Static file server bound to one ``ResolvedConfig``.

    Parameters
    ----------
    config:
        Resolved configuration; ``config.server`` supplies ``host``,
        ``port``, ``strictPort``, ``cors`` and ``open``.
    serve_dir:
        Directory whose files are served. Defaults to ``config.root``.
    default_port:
        Port used when ``config.server`` has none.
    """

    def __init__(
        self,
        config: ResolvedConfig,
        *,
        serve_dir: Path | None = None,
        default_port: int = DEFAULT_PORT,
    ) -> None:
        self.config = config
        self.serve_dir = (serve_dir or config.root).resolve()
        self.default_port = default_port
        self.port: int | None = None
        self._server: asyncio.base_events.Server | None = None

    @property
    def options(self) -> dict[str, Any]:
        return self.config.server

    @property
    def host(self) -> str:
        return resolve_host(self.options.get("host"))

    @property
    def url(self) -> str:
        host = "localhost" if self.host in ("0.0.0.0", "::") else self.host
        return f"http://{host}:{self.port}{self.config.base}"

    async def listen(self, port: int | None = None) -> DevServer:
        """Bind the server and start accepting connections.

        Raises
        ------
        ServerError
            If the port is taken and ``strictPort`` is set, or no port in
            the fallback range is free.
        """
        if self.options.get("https"):
            self.config.logger.warn("https is not supported by the pavo dev server; serving http")
        start = int(port or self.options.get("port") or self.default_port)
        strict = bool(self.options.get("strictPort"))
        attempts = 1 if strict else PORT_ATTEMPTS
        last_error: OSError | None = None
        for candidate in range(start, start + attempts):
            try:
                self._server = await asyncio.start_server(self._handle, self.host, candidate)
            except OSError as exc:
                last_error = exc
                logger.debug("port %d unavailable: %s", candidate, exc)
                continue
            self.port = candidate
            break
        else:
            if strict:
                raise ServerError(f"Port {start} is already in use") from last_error
            raise ServerError(
                f"No free port in range {start}-{start + attempts - 1}"
            ) from last_error

        self.config.logger.info(f"  ready at [bold]{escape(self.url)}[/bold]", clear=True)
        open_path = self.options.get("open")
        if open_path:
            self.open_browser(open_path)
        return self

    def open_browser(self, path: str | bool) -> None:
        import click

        url = self.url
        if isinstance(path, str):
            url = url.rstrip("/") + "/" + path.lstrip("/")
        logger.debug("opening %s", url)
        click.launch(url)

    async def serve_forever(self) -> None:
        """Hold the process open until the server is closed or the task is cancelled."""
        if self._server is None:
            raise ServerError("server is not listening; call listen() first")
        try:
            await self._server.serve_forever()
        except asyncio.CancelledError:
            logger.debug("server on port %s stopped", self.port)
            raise

    async def close(self) -> None:
        if self._server is not None:
            self._server.close()
            await self._server.wait_closed()
            self._server = None

    def resolve_path(self, request_path: str) -> Path | None:
        """Map a URL path to a file under ``serve_dir``; ``None`` if absent."""
        path = unquote(urlsplit(request_path).path)
        base = self.config.base
        if path.startswith(base):
            path = "/" + path[len(base):]
        target = (self.serve_dir / path.lstrip("/")).resolve()
        if target != self.serve_dir and self.serve_dir not in target.parents:
            return None
        if target.is_dir():
            target = target / "index.html"
        return target if target.is_file() else None

    async def _handle(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        try:
            request_line = (await reader.readline()).decode("latin-1").strip()
            while (await reader.readline()) not in (b"\r\n", b"\n", b""):
                pass
            parts = request_line.split()
            if len(parts) != 3:
                await self._respond(writer, 400, b"bad request")
                return
            method, target, _ = parts
            if method not in ("GET", "HEAD"):
                await self._respond(writer, 405, b"method not allowed")
                return
            file_path = self.resolve_path(target)
            if file_path is None:
                await self._respond(writer, 404, b"not found")
                return
            body = await asyncio.to_thread(file_path.read_bytes)
            content_type = mimetypes.guess_type(file_path.name)[0] or "application/octet-stream"
            await self._respond(writer, 200, b"" if method == "HEAD" else body, content_type)
            logger.debug("%s %s -> %s", method, target, file_path)
        finally:
            writer.close()

    async def _respond(
        self,
        writer: asyncio.StreamWriter,
        status: int,
        body: bytes,
        content_type: str = "text/plain; charset=utf-8",
    ) -> None:
        headers = [
            f"HTTP/1.1 {status} {_REASONS.get(status, '')}",
            f"Content-Type: {content_type}",
            f"Content-Length: {len(body)}",
            "Connection: close",
        ]
        if self.options.get("cors"):
            headers.append("Access-Control-Allow-Origin: *")
        writer.write(("\r\n".join(headers) + "\r\n\r\n").encode("latin-1") + body)
        await writer.drain()


async def create_server(inline: InlineConfig) -> DevServer:
    """Resolve a serve config, pre-bundle dependencies and build a server.

    The returned server is not listening yet; call ``listen()``.
    """
    config = await resolve_config(inline, "serve", "development")
    from pavo.optimizer import optimize_deps

    await optimize_deps(config, force=bool(config.server.get("force")))
    return DevServer(config)
