from __future__ import annotations

import logging
import socket
import ssl
from typing import Any

import uvicorn

from .config import EdgeConfig
from .errors import HandshakeError, StartupError

logger = logging.getLogger("uvicorn.error")


def server_config(app: Any, config: EdgeConfig, port: int, **kwargs: Any) -> uvicorn.Config:
    return uvicorn.Config(
        app,
        host=config.bind_host,
        port=port,
        log_level=config.log_level,
        access_log=config.access_log,
        timeout_keep_alive=config.keep_alive_timeout,
        server_header=False,
        **kwargs,
    )


class TlsListener:
    """uvicorn server terminating TLS in front of an ASGI application."""

    def __init__(self, config: EdgeConfig, app: Any) -> None:
        self.config = config
        self.app = app
        self.server = uvicorn.Server(
            server_config(
                app,
                config,
                config.ports.secure,
                ssl_certfile=str(config.cert_file),
                ssl_keyfile=str(config.key_file),
            )
        )

    @property
    def ssl_context(self) -> ssl.SSLContext:
        return self.server.config.ssl

    def load(self) -> None:
        """Load certificate chain and key. Must run before serve()."""
        cfg = self.server.config
        if cfg.loaded:
            return
        for path in (self.config.cert_file, self.config.key_file):
            if not path.is_file():
                raise StartupError(f"TLS material not found: {path}")
        try:
            cfg.load()
        except (OSError, ssl.SSLError) as exc:
            raise StartupError(
                f"cannot load TLS material from {self.config.cert_file} / {self.config.key_file}: {exc}"
            ) from exc
        cfg.ssl.minimum_version = ssl.TLSVersion.TLSv1_2
        logger.info("Loaded TLS certificate %s", self.config.cert_file)

    async def serve(self, sock: socket.socket) -> None:
        self.load()
        await self.server.serve(sockets=[sock])


def handle_loop_exception(loop, context: dict) -> None:
    """Event loop exception handler; a failed handshake only costs its connection."""
    exc = context.get("exception")
    if isinstance(exc, ssl.SSLError):
        logger.debug("%s", HandshakeError(f"TLS handshake failed: {exc}"))
        return
    loop.default_exception_handler(context)
