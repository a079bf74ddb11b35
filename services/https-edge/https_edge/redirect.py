"""Plaintext listener application: redirects every request to https.

Every method and every path gets the same treatment: 301 with a Location
built by rewrite(), or an empty 400 when the Host value cannot be rewritten.

The host comes from, in order: the RFC 7239 ``Forwarded: host=`` parameter and
``X-Forwarded-Host`` (both only when forwarded headers are trusted), then
``Host``. ASGI servers drop the authority of an absolute-form request line,
so there is no fallback past the Host header; a request without one gets 400.
"""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, Request, Response

from .config import REWRITE_MODES, PortPair
from .errors import ConfigError, RewriteError
from .rewrite import rewrite

logger = logging.getLogger("uvicorn.error")


def forwarded_host(value: str) -> Optional[str]:
    """``host`` parameter of the first element of a Forwarded header."""
    first = value.split(",", 1)[0]
    for pair in first.split(";"):
        key, sep, param = pair.partition("=")
        if sep and key.strip().lower() == "host":
            return param.strip().strip('"') or None
    return None


def request_host(request: Request, trust_forwarded_host: bool = True) -> Optional[str]:
    if trust_forwarded_host:
        forwarded = request.headers.get("forwarded")
        if forwarded:
            host = forwarded_host(forwarded)
            if host:
                return host
        forwarded = request.headers.get("x-forwarded-host")
        if forwarded:
            # proxies append; the client-facing value comes first
            return forwarded.split(",", 1)[0].strip()
    return request.headers.get("host")


def request_target(request: Request) -> str:
    raw_path = request.scope.get("raw_path")
    if raw_path:
        target = raw_path.split(b"?", 1)[0].decode("latin-1")
    else:
        target = request.scope.get("path", "")
    query = request.scope.get("query_string", b"")
    if query:
        target = f"{target}?{query.decode('latin-1')}"
    return target


def create_redirect_app(ports: PortPair, mode: str = "substring", trust_forwarded_host: bool = True) -> FastAPI:
    if mode not in REWRITE_MODES:
        raise ConfigError(f"unknown rewrite mode {mode!r}; expected one of {', '.join(REWRITE_MODES)}")

    app = FastAPI(title="https-edge redirect", docs_url=None, redoc_url=None, openapi_url=None)

    @app.middleware("http")
    async def redirect_to_https(request: Request, call_next) -> Response:
        host = request_host(request, trust_forwarded_host)
        target = request_target(request)
        try:
            location = rewrite(host or "", target, ports, mode)
        except RewriteError as exc:
            logger.warning("failed to convert URI to HTTPS: %s (host=%r, target=%r)", exc, host, target)
            return Response(status_code=400)
        return Response(status_code=301, headers={"location": location})

    return app
