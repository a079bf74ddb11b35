from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional

from .errors import ConfigError

SERVICE_DIR = Path(__file__).resolve().parents[1]
DEFAULT_CERT_DIR = SERVICE_DIR / "self_signed_certs"

REWRITE_MODES = ("substring", "structural")
LOG_LEVELS = ("critical", "error", "warning", "info", "debug", "trace")


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.environ.get(name)
    if value is None:
        return default
    value = value.strip()
    return value if value else default


def _int_env(name: str, default: int) -> int:
    raw = _env(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _float_env(name: str, default: float) -> float:
    raw = _env(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _bool_env(name: str, default: bool = False) -> bool:
    raw = _env(name)
    if raw is None:
        return default
    return raw.lower() in {"1", "true", "yes", "y", "on"}


@dataclass(frozen=True)
class PortPair:
    plain: int = 7878
    secure: int = 3000

    def __post_init__(self) -> None:
        for name in ("plain", "secure"):
            port = getattr(self, name)
            if isinstance(port, bool) or not isinstance(port, int):
                raise ConfigError(f"{name} port must be an integer, got {port!r}")
            if not 0 < port <= 65535:
                raise ConfigError(f"{name} port out of range: {port}")
        if self.plain == self.secure:
            raise ConfigError(f"plain and secure ports must differ (both {self.plain})")


@dataclass(frozen=True)
class EdgeConfig:
    ports: PortPair = PortPair()
    bind_host: str = "127.0.0.1"
    cert_file: Path = DEFAULT_CERT_DIR / "cert.pem"
    key_file: Path = DEFAULT_CERT_DIR / "key.pem"
    rewrite_mode: str = "substring"
    # X-Forwarded-Host wins over Host when set
    trust_forwarded_host: bool = True
    fail_fast: bool = True
    log_level: str = "info"
    access_log: bool = False
    keep_alive_timeout: float = 5.0

    def __post_init__(self) -> None:
        if self.rewrite_mode not in REWRITE_MODES:
            raise ConfigError(f"unknown rewrite mode {self.rewrite_mode!r}; expected one of {', '.join(REWRITE_MODES)}")
        if self.log_level not in LOG_LEVELS:
            raise ConfigError(f"unknown log level {self.log_level!r}")
        if self.keep_alive_timeout <= 0:
            raise ConfigError("keep-alive timeout must be positive")

    @property
    def is_loopback(self) -> bool:
        return self.bind_host in {"127.0.0.1", "::1", "localhost"}

    def with_overrides(self, **changes) -> "EdgeConfig":
        """Return a copy with every non-None keyword applied."""
        changes = {k: v for k, v in changes.items() if v is not None}
        if "plain" in changes or "secure" in changes:
            changes["ports"] = PortPair(
                plain=changes.pop("plain", self.ports.plain),
                secure=changes.pop("secure", self.ports.secure),
            )
        for key in ("cert_file", "key_file"):
            if key in changes:
                changes[key] = Path(changes[key])
        return replace(self, **changes)


def load_config() -> EdgeConfig:
    cert_file = _env("HTTPS_EDGE_CERT_FILE")
    key_file = _env("HTTPS_EDGE_KEY_FILE")
    return EdgeConfig(
        ports=PortPair(
            plain=_int_env("HTTPS_EDGE_HTTP_PORT", 7878),
            secure=_int_env("HTTPS_EDGE_HTTPS_PORT", 3000),
        ),
        bind_host=_env("HTTPS_EDGE_HOST", "127.0.0.1") or "127.0.0.1",
        cert_file=Path(cert_file) if cert_file else DEFAULT_CERT_DIR / "cert.pem",
        key_file=Path(key_file) if key_file else DEFAULT_CERT_DIR / "key.pem",
        rewrite_mode=(_env("HTTPS_EDGE_REWRITE_MODE", "substring") or "substring").lower(),
        trust_forwarded_host=_bool_env("HTTPS_EDGE_TRUST_FORWARDED_HOST", True),
        fail_fast=_bool_env("HTTPS_EDGE_FAIL_FAST", True),
        log_level=(_env("HTTPS_EDGE_LOG_LEVEL", "info") or "info").lower(),
        access_log=_bool_env("HTTPS_EDGE_ACCESS_LOG", False),
        keep_alive_timeout=_float_env("HTTPS_EDGE_KEEP_ALIVE_S", 5.0),
    )
