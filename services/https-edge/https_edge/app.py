"""Default application served behind the TLS listener.

Any ASGI application can take its place; see EdgeSupervisor(app=...).
"""
from __future__ import annotations

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: str
    service: str


def create_app() -> FastAPI:
    app = FastAPI(title="https-edge", version="0.1", docs_url=None, redoc_url=None, openapi_url=None)

    @app.get("/", response_class=PlainTextResponse)
    async def hello() -> str:
        return "Hello, World!"

    @app.get("/healthz", response_model=HealthResponse)
    async def healthz() -> HealthResponse:
        """Liveness check (compatible with gateway expectations)."""
        return HealthResponse(status="healthy", service="https-edge")

    return app


app = create_app()
