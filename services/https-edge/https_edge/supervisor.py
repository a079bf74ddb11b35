"""Runs the redirect listener and the TLS listener side by side.

Both uvicorn servers live in one event loop as separate tasks. The redirect
listener comes up first, then the TLS material is loaded and the TLS
listener starts. When either server stops, the other one is told to exit.

Failure policy: anything that stops the TLS listener raises StartupError.
A redirect listener failure does the same when ``fail_fast`` is set; without
it the failure is logged and TLS keeps serving.
"""
from __future__ import annotations

import asyncio
import logging
import socket
import threading
from typing import Any, Dict, Optional

import uvicorn

from .app import create_app
from .config import EdgeConfig
from .errors import StartupError
from .redirect import create_redirect_app
from .tls import TlsListener, handle_loop_exception, server_config

logger = logging.getLogger("uvicorn.error")

REDIRECT = "redirect"
TLS = "tls"


def bind_socket(host: str, port: int) -> socket.socket:
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM)
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    try:
        sock.bind((host, port))
    except OSError as exc:
        sock.close()
        raise StartupError(f"cannot bind {host}:{port}: {exc}") from exc
    return sock


class EdgeSupervisor:
    def __init__(
        self,
        config: EdgeConfig,
        app: Any = None,
        redirect_sock: Optional[socket.socket] = None,
        secure_sock: Optional[socket.socket] = None,
    ) -> None:
        self.config = config
        self.app = app if app is not None else create_app()
        self.redirect_app = create_redirect_app(
            config.ports,
            mode=config.rewrite_mode,
            trust_forwarded_host=config.trust_forwarded_host,
        )
        self.redirect_server = uvicorn.Server(server_config(self.redirect_app, config, config.ports.plain))
        self.tls = TlsListener(config, self.app)
        self.started = threading.Event()
        self.redirect_port: Optional[int] = None
        self.secure_port: Optional[int] = None
        self._redirect_sock = redirect_sock
        self._secure_sock = secure_sock
        self._stopping = False

    def stop(self) -> None:
        """Ask both servers to exit; safe to call from another thread."""
        self._stopping = True
        self.redirect_server.should_exit = True
        self.tls.server.should_exit = True

    def run(self) -> None:
        asyncio.run(self.serve())

    async def serve(self) -> None:
        asyncio.get_running_loop().set_exception_handler(handle_loop_exception)
        tasks: Dict[asyncio.Task, str] = {}

        try:
            sock = self._redirect_sock or bind_socket(self.config.bind_host, self.config.ports.plain)
        except StartupError as exc:
            if self.config.fail_fast:
                raise
            logger.error("Redirect listener unavailable, serving TLS only: %s", exc)
        else:
            self.redirect_port = sock.getsockname()[1]
            logger.info("Redirecting http://%s:%d to https", self.config.bind_host, self.redirect_port)
            tasks[asyncio.create_task(self.redirect_server.serve(sockets=[sock]), name=REDIRECT)] = REDIRECT

        try:
            self.tls.load()
            secure_sock = self._secure_sock or bind_socket(self.config.bind_host, self.config.ports.secure)
        except StartupError:
            await self._shutdown(tasks)
            raise
        self.secure_port = secure_sock.getsockname()[1]
        logger.info("Serving https://%s:%d", self.config.bind_host, self.secure_port)
        tasks[asyncio.create_task(self.tls.serve(secure_sock), name=TLS)] = TLS

        watcher = asyncio.create_task(self._watch_started(tasks))
        try:
            await self._supervise(tasks)
        finally:
            watcher.cancel()

    async def _supervise(self, tasks: Dict[asyncio.Task, str]) -> None:
        pending = set(tasks)
        while pending:
            done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
            for task in done:
                name = tasks[task]
                server = self._server(name)
                exc = None if task.cancelled() else task.exception()
                if exc is None and (self._stopping or (server.should_exit and server.started)):
                    # stop() or a signal; take the other server down with it
                    await self._shutdown(tasks)
                    continue

                if name == REDIRECT and not self.config.fail_fast:
                    if exc is not None:
                        logger.error("Redirect listener failed, TLS keeps serving", exc_info=exc)
                    else:
                        logger.error("Redirect listener exited, TLS keeps serving")
                    continue

                await self._shutdown(tasks)
                if exc is not None:
                    raise StartupError(f"{name} listener failed: {exc}") from exc
                raise StartupError(f"{name} listener exited unexpectedly")

    def _server(self, name: str) -> uvicorn.Server:
        return self.redirect_server if name == REDIRECT else self.tls.server

    async def _shutdown(self, tasks: Dict[asyncio.Task, str]) -> None:
        self.stop()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def _watch_started(self, tasks: Dict[asyncio.Task, str]) -> None:
        while not all(self._is_up(task, name) for task, name in tasks.items()):
            await asyncio.sleep(0.05)
        self.started.set()

    def _is_up(self, task: asyncio.Task, name: str) -> bool:
        if self._server(name).started:
            return True
        # a dead redirect listener is not waited for when TLS serves alone
        return name == REDIRECT and task.done() and not self.config.fail_fast
