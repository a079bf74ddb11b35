"""Plaintext request -> https URI.

Two host rewriting modes are supported:

- ``substring``: every occurrence of the plaintext port's decimal text in the
  Host value is replaced by the secure port. A host with no explicit port is
  left as is. Note that a hostname containing the port digits
  (``host7878.example.com``) is rewritten too.
- ``structural``: the authority is parsed first and only a port field equal to
  the plaintext port is replaced.

Path and query are carried over byte for byte; an empty target becomes ``/``.
"""
from __future__ import annotations

import ipaddress
import re
from typing import NamedTuple, Optional

from .config import PortPair
from .errors import InvalidAuthority, UriAssembly

SCHEME = "https"

_UNRESERVED_SUB_DELIMS = r"A-Za-z0-9\-._~!$&'()*+,;="
_PCT_ENCODED = r"%[0-9A-Fa-f]{2}"

_AUTHORITY_RE = re.compile(
    r"^(?:(?P<userinfo>(?:[" + _UNRESERVED_SUB_DELIMS + r":]|" + _PCT_ENCODED + r")*)@)?"
    r"(?P<host>\[[^\]]*\]|(?:[" + _UNRESERVED_SUB_DELIMS + r"]|" + _PCT_ENCODED + r")+)"
    r"(?::(?P<port>[0-9]*))?$"
)

# Visible ASCII minus "#"; fragments never reach the server.
_TARGET_RE = re.compile(r"^/[\x21\x22\x24-\x7e]*$")
_ABSOLUTE_FORM_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*://[^/?#]*")


class Authority(NamedTuple):
    userinfo: Optional[str]
    host: str
    port: Optional[int]

    def __str__(self) -> str:
        text = self.host
        if self.userinfo is not None:
            text = f"{self.userinfo}@{text}"
        if self.port is not None:
            text = f"{text}:{self.port}"
        return text


def parse_authority(text: str) -> Authority:
    """Parse ``[userinfo@]host[:port]``; raise InvalidAuthority if malformed."""
    if not text:
        raise InvalidAuthority("invalid authority", host=text, cause=ValueError("empty authority"))

    match = _AUTHORITY_RE.match(text)
    if match is None:
        raise InvalidAuthority(
            "invalid authority", host=text, cause=ValueError(f"{text!r} contains characters not allowed in an authority")
        )

    host = match.group("host")
    if host.startswith("["):
        literal = host[1:-1]
        try:
            ipaddress.IPv6Address(literal.split("%25", 1)[0])
        except ValueError as exc:
            raise InvalidAuthority("invalid authority", host=text, cause=exc) from exc

    port: Optional[int] = None
    raw_port = match.group("port")
    if raw_port:
        port = int(raw_port)
        if port > 65535:
            raise InvalidAuthority("invalid authority", host=text, cause=ValueError(f"port {port} out of range"))

    return Authority(match.group("userinfo"), host, port)


def substitute_port(host: str, ports: PortPair, mode: str = "substring") -> str:
    if mode == "substring":
        return host.replace(str(ports.plain), str(ports.secure))
    if mode == "structural":
        authority = parse_authority(host)
        if authority.port == ports.plain:
            authority = authority._replace(port=ports.secure)
        return str(authority)
    raise ValueError(f"unknown rewrite mode: {mode!r}")


def path_and_query(target: Optional[str]) -> str:
    """Strip scheme and authority from an absolute-form target; default to ``/``."""
    if not target:
        return "/"
    match = _ABSOLUTE_FORM_RE.match(target)
    if match is not None:
        target = target[match.end():]
        if not target or target.startswith("?"):
            target = "/" + target
    return target


def rewrite(host: str, target: Optional[str], ports: PortPair, mode: str = "substring") -> str:
    """Build the https URI a plaintext request should be redirected to.

    ``host`` is the raw Host header value, ``target`` the request target
    (path plus optional query). Raises InvalidAuthority when the rewritten
    host is not a valid authority and UriAssembly when the final URI cannot
    be formed.
    """
    pq = path_and_query(target)
    https_host = substitute_port(host or "", ports, mode)
    parse_authority(https_host)

    if not _TARGET_RE.match(pq):
        raise UriAssembly(
            "cannot assemble https URI",
            host=host,
            cause=ValueError(f"invalid path and query {pq!r}"),
        )
    return f"{SCHEME}://{https_host}{pq}"
