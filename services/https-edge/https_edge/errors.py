"""Exceptions raised by the edge.

RewriteError and its subclasses are per-request and never leave the
redirect listener. StartupError is fatal to the process.
"""
from __future__ import annotations

from typing import Optional


class EdgeError(Exception):
    pass


class RewriteError(EdgeError):
    """Inbound plaintext request could not be turned into an https URI."""

    def __init__(self, message: str, host: Optional[str] = None, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.host = host
        self.cause = cause

    def __str__(self) -> str:
        msg = super().__str__()
        if self.cause is not None:
            return f"{msg}: {self.cause}"
        return msg


class InvalidAuthority(RewriteError):
    pass


class UriAssembly(RewriteError):
    pass


class StartupError(EdgeError):
    """A listener could not be brought up (bind failure, bad TLS material)."""


class ConfigError(StartupError):
    pass


class HandshakeError(EdgeError):
    """TLS negotiation failed on a single connection."""
