"""Run the edge: ``python -m https_edge`` or ``https-edge``.

Settings come from HTTPS_EDGE_* environment variables; flags override them.
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .config import REWRITE_MODES, LOG_LEVELS, load_config
from .errors import ConfigError, StartupError
from .supervisor import EdgeSupervisor

logger = logging.getLogger("uvicorn.error")


def parse_args(argv=None) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="https-edge", description="Redirect plaintext HTTP to a TLS endpoint and serve it.")
    p.add_argument("--host", dest="bind_host", help="bind address for both listeners (default 127.0.0.1)")
    p.add_argument("--http-port", dest="plain", type=int, help="plaintext redirect port (default 7878)")
    p.add_argument("--https-port", dest="secure", type=int, help="TLS port (default 3000)")
    p.add_argument("--cert-file", type=Path, help="PEM certificate chain")
    p.add_argument("--key-file", type=Path, help="PEM private key")
    p.add_argument("--rewrite-mode", choices=REWRITE_MODES)
    p.add_argument("--log-level", choices=LOG_LEVELS)
    p.add_argument("--access-log", action="store_true", default=None)
    p.add_argument(
        "--no-fail-fast",
        dest="fail_fast",
        action="store_false",
        default=None,
        help="keep serving TLS if the redirect listener dies",
    )
    return p.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    try:
        config = load_config().with_overrides(**vars(args))
    except ConfigError as exc:
        print(f"https-edge: {exc}", file=sys.stderr)
        return 2

    host = config.bind_host
    print(f"Starting https-edge: http://{host}:{config.ports.plain} -> https://{host}:{config.ports.secure}")
    if not config.is_loopback:
        print(f"WARNING: https-edge is binding to {host}, not loopback. Ensure firewall/ACLs restrict access.")

    supervisor = EdgeSupervisor(config)
    try:
        supervisor.run()
    except StartupError as exc:
        logger.error("https-edge stopped: %s", exc)
        return 1
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":
    sys.exit(main())
